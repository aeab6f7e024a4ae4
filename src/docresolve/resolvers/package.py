"""Resolver downloading packages from a remote registry.

Flow on a miss: build the archive URL, GET it with retries, validate and
materialize the archive into the configured store, then serve the file from
the store. The store decides where packages live (disk or memory); the
resolver only knows whether a whole package is present.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import requests

from ..cache.package_store import FileSystemCache, InMemoryPackageCache, PackageStore
from ..common.http_client import HttpStatusError, build_session, fetch_bytes
from ..common.logging_utils import Timer, extra_context, safe_url
from ..constants import Constants, FileKind
from ..errors import NetworkError, NotFoundError, ResolveError
from ..identity import FileIdentity, PackageSpec
from ..resolved import Resolved
from .base import FileResolver

logger = logging.getLogger(__name__)


def package_url(registry_url: str, spec: PackageSpec) -> str:
    """Archive URL: {registry}/{namespace}/{name}-{version}.tar.gz."""
    return f"{registry_url.rstrip('/')}/{spec.namespace}/{spec.name}-{spec.version}.tar.gz"


class PackageResolver(FileResolver):
    """Serves package-qualified identities from a remote registry."""

    def __init__(
        self,
        store: Optional[PackageStore] = None,
        *,
        session: Optional[requests.Session] = None,
        registry_url: str = Constants.REGISTRY_URL,
        namespaces: Sequence[str] = Constants.REGISTRY_NAMESPACES,
        request_retry_count: int = Constants.HTTP_RETRY_MAX,
        timeout: float = Constants.REQUEST_TIMEOUT,
        retry_delay: float = Constants.HTTP_RETRY_BASE_DELAY_SEC,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.store = store if store is not None else FileSystemCache()
        self.session = session if session is not None else build_session()
        self.registry_url = registry_url
        self.namespaces = tuple(namespaces)
        self.request_retry_count = request_retry_count
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._sleep = sleep

    @staticmethod
    def builder() -> "PackageResolverBuilder":
        return PackageResolverBuilder()

    def with_store(self, store: PackageStore) -> "PackageResolver":
        """Return a copy with the same session and settings backed by another store."""
        return PackageResolver(
            store,
            session=self.session,
            registry_url=self.registry_url,
            namespaces=self.namespaces,
            request_retry_count=self.request_retry_count,
            timeout=self.timeout,
            retry_delay=self.retry_delay,
            sleep=self._sleep,
        )

    def serves(self, spec: PackageSpec) -> bool:
        """Only registry namespaces are fetched; others belong to local resolvers."""
        return spec.namespace in self.namespaces

    def fetch_archive(self, spec: PackageSpec) -> bytes:
        """Download the package archive.

        Raises:
            NotFoundError: the registry does not know this package/version.
            NetworkError: retries exhausted.
        """
        url = package_url(self.registry_url, spec)
        logger.info("Downloading package %s", spec)
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        with Timer() as t:
            try:
                data = fetch_bytes(
                    url,
                    session=self.session,
                    retries=self.request_retry_count,
                    timeout=self.timeout,
                    base_delay=self.retry_delay,
                    **kwargs,
                )
            except HttpStatusError as exc:
                if 400 <= exc.status_code < 500:
                    raise NotFoundError(
                        f"Package {spec} not available from registry (status {exc.status_code})",
                        resolver=self.name,
                    ) from exc
                raise NetworkError(str(exc), attempts=1, resolver=self.name) from exc
        logger.debug(
            "Package downloaded",
            extra=extra_context(
                event="package_download",
                component="package_resolver",
                outcome="success",
                duration_ms=t.duration_ms(),
                target=safe_url(url),
                size=len(data),
            ),
        )
        return data

    def materialize(self, spec: PackageSpec) -> None:
        """Make sure the whole package is present in the store."""
        if self.store.contains(spec):
            return
        self.store.store_archive(spec, self.fetch_archive(spec))

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        spec = identity.package
        if spec is None or not self.serves(spec):
            raise NotFoundError(f"{identity} is not a registry package file", identity=identity, resolver=self.name)

        try:
            cached = self.store.lookup(spec, identity, kind)
            if cached is not None:
                return cached
            self.materialize(spec)
            resolved = self.store.lookup(spec, identity, kind)
        except ResolveError as exc:
            if not isinstance(exc, NotFoundError):
                logger.error(
                    "Failed to resolve %s: %s",
                    identity,
                    exc.message,
                    extra=extra_context(
                        event="resolve_error",
                        component="package_resolver",
                        outcome=exc.kind,
                    ),
                )
            raise exc.with_context(identity=identity, resolver=self.name)

        if resolved is None:
            raise NotFoundError(f"Package {spec} missing after download", identity=identity, resolver=self.name)
        return resolved

    def into_cached(self):
        """Disk-stored packages get source and binary memory caches; memory-stored ones only sources."""
        from ..cache.memory import InMemoryCache  # pylint: disable=import-outside-toplevel

        if isinstance(self.store, InMemoryPackageCache):
            return InMemoryCache(self, cache_binaries=False)
        return InMemoryCache(self)

    def __repr__(self) -> str:
        return f"PackageResolver(registry={self.registry_url!r}, store={self.store!r})"


class PackageResolverBuilder:
    """Fluent construction of a ``PackageResolver``."""

    def __init__(self):
        self._store: Optional[PackageStore] = None
        self._session: Optional[requests.Session] = None
        self._registry_url = Constants.REGISTRY_URL
        self._namespaces: Sequence[str] = Constants.REGISTRY_NAMESPACES
        self._retry_count = Constants.HTTP_RETRY_MAX
        self._timeout: float = Constants.REQUEST_TIMEOUT

    def request_retry_count(self, count: int) -> "PackageResolverBuilder":
        self._retry_count = count
        return self

    def session(self, session: requests.Session) -> "PackageResolverBuilder":
        self._session = session
        return self

    def registry_url(self, url: str) -> "PackageResolverBuilder":
        self._registry_url = url
        return self

    def namespaces(self, *namespaces: str) -> "PackageResolverBuilder":
        self._namespaces = namespaces
        return self

    def timeout(self, seconds: float) -> "PackageResolverBuilder":
        self._timeout = seconds
        return self

    def cache(self, store: PackageStore) -> "PackageResolverBuilder":
        self._store = store
        return self

    def with_file_system_cache(self, path: Optional[Union[str, Path]] = None) -> "PackageResolverBuilder":
        return self.cache(FileSystemCache(path))

    def with_in_memory_cache(self) -> "PackageResolverBuilder":
        return self.cache(InMemoryPackageCache())

    def build(self) -> PackageResolver:
        return PackageResolver(
            self._store,
            session=self._session,
            registry_url=self._registry_url,
            namespaces=self._namespaces,
            request_retry_count=self._retry_count,
            timeout=self._timeout,
        )
