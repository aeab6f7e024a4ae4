"""Ordered composition of resolvers."""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import FileKind
from ..errors import NotFoundError, ResolveError
from ..identity import FileIdentity
from ..resolved import Resolved
from .base import FileResolver

logger = logging.getLogger(__name__)


class ResolverChain(FileResolver):
    """Tries member resolvers in order; first success wins.

    ``NotFoundError`` moves on to the next member. Any other error stops the
    chain: a resolver that claimed the file and failed is not masked by the
    ones after it. Register fast resolvers before network-backed ones.
    """

    def __init__(self, resolvers: Optional[Iterable[FileResolver]] = None):
        self._resolvers: List[FileResolver] = list(resolvers or [])

    def add(self, resolver: FileResolver) -> "ResolverChain":
        """Append a resolver; returns self for chaining."""
        self._resolvers.append(resolver)
        return self

    @property
    def resolvers(self) -> List[FileResolver]:
        return list(self._resolvers)

    def __len__(self) -> int:
        return len(self._resolvers)

    def __iter__(self) -> Iterator[FileResolver]:
        return iter(self._resolvers)

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        for resolver in self._resolvers:
            try:
                resolved = resolver.resolve(identity, kind)
            except NotFoundError:
                continue
            except ResolveError as exc:
                exc.with_context(identity=identity, resolver=resolver.name)
                logger.warning(
                    "Resolver %s failed for %s: %s",
                    resolver.name,
                    identity,
                    exc.message,
                    extra=extra_context(
                        event="resolve_error",
                        component="resolver_chain",
                        outcome=exc.kind,
                    ),
                )
                raise
            if is_debug_enabled(logger):
                logger.debug("Resolved %s via %s", identity, resolver.name)
            return resolved
        raise NotFoundError(f"File not found: {identity}", identity=identity, resolver=self.name)

    def __repr__(self) -> str:
        return f"ResolverChain({self._resolvers!r})"
