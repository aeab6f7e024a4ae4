"""Base class every file origin implements."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..constants import FileKind
from ..identity import FileIdentity, IdentityLike
from ..resolved import Binary, Resolved, Source

if TYPE_CHECKING:
    from ..cache.memory import InMemoryCache


class FileResolver(ABC):
    """Answers "give me this file" for the identities it owns.

    Implementations raise ``NotFoundError`` when the identity is not theirs
    so a chain can move on; any other ``ResolveError`` means the identity
    was recognized and serving it failed.
    """

    @property
    def name(self) -> str:
        """Short label used in logs and error context."""
        return type(self).__name__

    @abstractmethod
    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        """Return the file as ``kind``.

        Args:
            identity: File to look up.
            kind: SOURCE for decoded text, BINARY for raw bytes.

        Raises:
            ResolveError: NotFoundError or a propagating error kind.
        """

    def resolve_source(self, identity: IdentityLike) -> Source:
        """Resolve and decode as program text."""
        resolved = self.resolve(FileIdentity.coerce(identity), FileKind.SOURCE)
        return _expect(self, resolved, Source)

    def resolve_binary(self, identity: IdentityLike) -> Binary:
        """Resolve as raw bytes."""
        resolved = self.resolve(FileIdentity.coerce(identity), FileKind.BINARY)
        return _expect(self, resolved, Binary)

    def into_cached(self) -> "InMemoryCache":
        """Wrap in an in-memory cache for both sources and binaries.

        Wrapping an already cached resolver works but only adds overhead.
        """
        from ..cache.memory import InMemoryCache  # pylint: disable=import-outside-toplevel

        return InMemoryCache(self)

    def __repr__(self) -> str:
        return f"{self.name}()"


def _expect(resolver: FileResolver, resolved: Resolved, expected: type):
    if not isinstance(resolved, expected):
        raise TypeError(
            f"{resolver.name} returned {type(resolved).__name__} when {expected.__name__} was requested"
        )
    return resolved
