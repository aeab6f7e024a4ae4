"""In-memory cache decorator for any resolver."""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from ..constants import FileKind
from ..identity import FileIdentity
from ..resolved import Resolved
from ..resolvers.base import FileResolver


class InMemoryCache(FileResolver):
    """Wraps a resolver and remembers every successful answer.

    Hits are plain dict reads and take no lock. A miss calls the inner
    resolver without holding the lock, so two threads missing the same
    identity may both fetch it; the last write wins and both values are
    equal for a deterministic inner resolver. Errors are never cached.
    """

    def __init__(
        self,
        inner: FileResolver,
        *,
        cache_sources: bool = True,
        cache_binaries: bool = True,
    ):
        """Initialize the cache.

        Args:
            inner: Resolver to delegate misses to.
            cache_sources: Remember SOURCE lookups.
            cache_binaries: Remember BINARY lookups.
        """
        self.inner = inner
        self._caches: Dict[FileKind, Optional[Dict[FileIdentity, Resolved]]] = {
            FileKind.SOURCE: {} if cache_sources else None,
            FileKind.BINARY: {} if cache_binaries else None,
        }
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def name(self) -> str:
        return f"InMemoryCache[{self.inner.name}]"

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        cache = self._caches[kind]
        if cache is None:
            return self.inner.resolve(identity, kind)

        cached = cache.get(identity)
        if cached is not None:
            self._hits += 1
            return cached

        resolved = self.inner.resolve(identity, kind)
        with self._lock:
            self._misses += 1
            cache[identity] = resolved
        return resolved

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            for cache in self._caches.values():
                if cache is not None:
                    cache.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            "source_entries": len(self._caches[FileKind.SOURCE] or {}),
            "binary_entries": len(self._caches[FileKind.BINARY] or {}),
            "hits": self._hits,
            "misses": self._misses,
        }

    def __repr__(self) -> str:
        return f"InMemoryCache({self.inner!r})"
