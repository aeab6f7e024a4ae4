"""Whole-package stores used by ``PackageResolver``.

A store answers "is this package materialized" and serves files out of a
materialized package. Granularity is the package: once the archive is in,
every file of it is available without touching the network again.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Set, Union

from ..common.logging_utils import extra_context
from ..common.paths import default_package_cache_dir
from ..constants import FileKind
from ..errors import ConfigError, NotFoundError, ResolveError, ResolverIOError
from ..identity import FileIdentity, PackageSpec, VirtualPath
from ..resolved import Resolved, from_bytes
from ..resolvers.filesystem import read_file, sandboxed_path
from .archive import extract_tar_gz, read_tar_gz_members

logger = logging.getLogger(__name__)


def _published_dir_mode() -> int:
    """Mode a freshly created directory would get under the current umask."""
    mask = os.umask(0)
    os.umask(mask)
    return 0o777 & ~mask


class PackageStore(ABC):
    """Storage strategy for downloaded package archives."""

    @abstractmethod
    def contains(self, spec: PackageSpec) -> bool:
        """True if the whole package is available."""

    @abstractmethod
    def lookup(self, spec: PackageSpec, identity: FileIdentity, kind: FileKind) -> Optional[Resolved]:
        """Serve a file of a stored package.

        Returns:
            None when the package is not stored at all.

        Raises:
            NotFoundError: the package is stored but has no such file.
        """

    @abstractmethod
    def store_archive(self, spec: PackageSpec, data: bytes) -> None:
        """Materialize a .tar.gz payload; all-or-nothing."""

    @abstractmethod
    def clear(self, spec: Optional[PackageSpec] = None) -> None:
        """Forget one package, or everything."""


class FileSystemCache(PackageStore):
    """Extracted packages on disk under ``<root>/<namespace>/<name>/<version>``.

    Survives process restarts. Extraction happens in a sibling staging
    directory that is renamed into place, so readers never see a partially
    extracted package.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.root = Path(path) if path else default_package_cache_dir()
        self.shared_root = not path

    def package_dir(self, spec: PackageSpec) -> Path:
        return self.root.joinpath(*spec.subdir())

    def contains(self, spec: PackageSpec) -> bool:
        return self.package_dir(spec).is_dir()

    def lookup(self, spec: PackageSpec, identity: FileIdentity, kind: FileKind) -> Optional[Resolved]:
        package_dir = self.package_dir(spec)
        if not package_dir.is_dir():
            return None
        path = sandboxed_path(package_dir, identity, type(self).__name__)
        return from_bytes(identity, read_file(path, identity, type(self).__name__), kind)

    def store_archive(self, spec: PackageSpec, data: bytes) -> None:
        target = self.package_dir(spec)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            staging = tempfile.mkdtemp(prefix=f".{spec.version}-", suffix=".partial", dir=target.parent)
        except OSError as exc:
            raise ResolverIOError(f"Could not prepare cache directory {target.parent}: {exc}") from exc

        try:
            count = extract_tar_gz(data, staging)
            # mkdtemp creates the directory with mode 0700
            os.chmod(staging, _published_dir_mode())
        except ResolveError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise ResolverIOError(f"Could not extract {spec} into {staging}: {exc}") from exc

        try:
            os.rename(staging, target)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            if target.is_dir():
                # Another writer published the same package first.
                logger.debug("Package %s already published by a concurrent writer", spec)
                return
            raise ResolverIOError(f"Could not publish {spec} to {target}: {exc}") from exc

        logger.info(
            "Cached package %s (%d files)",
            spec,
            count,
            extra=extra_context(
                event="package_cached",
                component="filesystem_cache",
                outcome="success",
                target=str(target),
            ),
        )

    def clear(self, spec: Optional[PackageSpec] = None, *, force: bool = False) -> None:
        """Remove one package, or the whole cache root.

        The default root is the per-user package cache other tools use too;
        wiping all of it requires ``force=True``.

        Raises:
            ConfigError: clearing the shared default root without force.
        """
        if spec is not None:
            shutil.rmtree(self.package_dir(spec), ignore_errors=True)
            return
        if self.shared_root and not force:
            raise ConfigError(
                f"Refusing to clear the shared package cache {self.root}; pass force=True or clear a single package"
            )
        shutil.rmtree(self.root, ignore_errors=True)

    def __repr__(self) -> str:
        return f"FileSystemCache({str(self.root)!r})"


class InMemoryPackageCache(PackageStore):
    """Every file of each downloaded package kept in memory, keyed by identity."""

    def __init__(self):
        self._files: Dict[FileIdentity, bytes] = {}
        self._packages: Set[PackageSpec] = set()
        self._lock = threading.Lock()

    def contains(self, spec: PackageSpec) -> bool:
        return spec in self._packages

    def lookup(self, spec: PackageSpec, identity: FileIdentity, kind: FileKind) -> Optional[Resolved]:
        if spec not in self._packages:
            return None
        data = self._files.get(identity)
        if data is None:
            raise NotFoundError(
                f"{identity.path} is not part of package {spec}",
                identity=identity,
                resolver=type(self).__name__,
            )
        return from_bytes(identity, data, kind)

    def store_archive(self, spec: PackageSpec, data: bytes) -> None:
        members = read_tar_gz_members(data)
        entries = {FileIdentity(VirtualPath(path), spec): content for path, content in members.items()}
        with self._lock:
            self._files.update(entries)
            self._packages.add(spec)
        logger.info("Loaded package %s into memory (%d files)", spec, len(entries))

    def clear(self, spec: Optional[PackageSpec] = None) -> None:
        with self._lock:
            if spec is None:
                self._files.clear()
                self._packages.clear()
                return
            self._packages.discard(spec)
            for identity in [i for i in self._files if i.package == spec]:
                del self._files[identity]

    def __repr__(self) -> str:
        return f"InMemoryPackageCache({len(self._packages)} packages)"
