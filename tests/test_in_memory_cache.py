"""Tests for the in-memory cache decorator."""
import threading

import pytest

from docresolve.cache.memory import InMemoryCache
from docresolve.constants import FileKind
from docresolve.errors import NetworkError, NotFoundError
from docresolve.resolved import Binary, Source
from docresolve.resolvers.base import FileResolver


class CountingResolver(FileResolver):
    """Serves every path; counts calls; can fail the first N calls."""

    def __init__(self, fail_first=0, error=None):
        self.calls = 0
        self.fail_first = fail_first
        self.error = error or NetworkError("flaky")
        self._lock = threading.Lock()

    def resolve(self, identity, kind=FileKind.BINARY):
        with self._lock:
            self.calls += 1
            call = self.calls
        if call <= self.fail_first:
            raise self.error
        if kind is FileKind.SOURCE:
            return Source(f"text of {identity.path}")
        return Binary(str(identity.path).encode())


class TestInMemoryCache:
    """Memoization of successful lookups."""

    def test_inner_consulted_once(self):
        """Repeated lookups hit the inner resolver exactly once."""
        inner = CountingResolver()
        cache = InMemoryCache(inner)
        results = [cache.resolve_source("/a.typ") for _ in range(5)]
        assert inner.calls == 1
        assert all(r == results[0] for r in results)
        assert cache.stats()["hits"] == 4

    def test_kinds_are_cached_separately(self):
        """Source and binary lookups of one file are separate entries."""
        inner = CountingResolver()
        cache = InMemoryCache(inner)
        assert isinstance(cache.resolve_source("/a.typ"), Source)
        assert isinstance(cache.resolve_binary("/a.typ"), Binary)
        cache.resolve_binary("/a.typ")
        assert inner.calls == 2

    def test_errors_are_not_cached(self):
        """A failure is retried on the next lookup."""
        inner = CountingResolver(fail_first=1)
        cache = InMemoryCache(inner)
        with pytest.raises(NetworkError):
            cache.resolve_source("/a.typ")
        assert cache.resolve_source("/a.typ").text == "text of /a.typ"
        assert inner.calls == 2

    def test_not_found_is_not_cached(self):
        """Misses are asked again too."""
        inner = CountingResolver(fail_first=1, error=NotFoundError("miss"))
        cache = InMemoryCache(inner)
        with pytest.raises(NotFoundError):
            cache.resolve_binary("/a.png")
        cache.resolve_binary("/a.png")
        assert inner.calls == 2

    def test_binary_caching_can_be_disabled(self):
        """With cache_binaries=False every binary lookup is delegated."""
        inner = CountingResolver()
        cache = InMemoryCache(inner, cache_binaries=False)
        cache.resolve_binary("/a.png")
        cache.resolve_binary("/a.png")
        cache.resolve_source("/a.typ")
        cache.resolve_source("/a.typ")
        assert inner.calls == 3

    def test_clear(self):
        """clear() forgets every entry."""
        inner = CountingResolver()
        cache = InMemoryCache(inner)
        cache.resolve_source("/a.typ")
        cache.clear()
        cache.resolve_source("/a.typ")
        assert inner.calls == 2
        assert cache.stats()["source_entries"] == 1

    def test_name_wraps_inner(self):
        """The name identifies the wrapped resolver."""
        assert InMemoryCache(CountingResolver()).name == "InMemoryCache[CountingResolver]"

    def test_concurrent_readers_see_equal_values(self):
        """Concurrent lookups of the same identity all get the same content."""
        inner = CountingResolver()
        cache = InMemoryCache(inner)
        results = []

        def worker():
            results.append(cache.resolve_source("/shared.typ"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r == Source("text of /shared.typ") for r in results)
        assert cache.resolve_source("/shared.typ") == Source("text of /shared.typ")


class TestIntoCached:
    """FileResolver.into_cached wraps with a default cache."""

    def test_into_cached(self):
        """The wrapper caches both kinds."""
        inner = CountingResolver()
        cache = inner.into_cached()
        assert isinstance(cache, InMemoryCache)
        cache.resolve_binary("/a.png")
        cache.resolve_binary("/a.png")
        assert inner.calls == 1
