"""Error taxonomy for file resolution.

``NotFoundError`` means "not mine, ask someone else" and is the only kind a
``ResolverChain`` swallows. Every other kind means the resolver recognized
the request and failed to serve it.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .identity import FileIdentity


class ResolveError(Exception):
    """Base class for all resolution failures."""

    kind = "error"

    def __init__(
        self,
        message: str,
        *,
        identity: Optional["FileIdentity"] = None,
        resolver: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.identity = identity
        self.resolver = resolver

    def with_context(
        self, *, identity: Optional["FileIdentity"] = None, resolver: Optional[str] = None
    ) -> "ResolveError":
        """Fill in identity/resolver if they are not already set; returns self."""
        if self.identity is None:
            self.identity = identity
        if self.resolver is None:
            self.resolver = resolver
        return self

    def __str__(self) -> str:
        parts = [self.message]
        if self.identity is not None:
            parts.append(f"file={self.identity}")
        if self.resolver:
            parts.append(f"resolver={self.resolver}")
        return " | ".join(parts)


class NotFoundError(ResolveError):
    """The resolver has no answer for this identity."""

    kind = "not_found"


class ForbiddenError(ResolveError):
    """A path escapes its sandbox or an archive tries to write outside it."""

    kind = "forbidden"


class NetworkError(ResolveError):
    """Registry could not be reached within the retry budget."""

    kind = "network"

    def __init__(self, message: str, *, attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts


class DecodeError(ResolveError):
    """Content could not be decoded (corrupt archive, invalid UTF-8)."""

    kind = "decode"


class ResolverIOError(ResolveError):
    """Local filesystem failure other than a missing file."""

    kind = "io"


class ConfigError(ValueError):
    """Invalid resolver configuration."""
