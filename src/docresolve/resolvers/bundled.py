"""Resolver serving packages bundled ahead of time into a directory."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Union

from ..constants import FileKind
from ..errors import ForbiddenError, NotFoundError, ResolverIOError
from ..identity import FileIdentity
from ..resolved import Resolved, from_bytes
from .base import FileResolver

logger = logging.getLogger(__name__)


def _collect_files(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            full = Path(dirpath) / filename
            key = full.relative_to(root).as_posix()
            with open(full, "rb") as fh:
                files[key] = fh.read()
    return files


class BundledPackageResolver(FileResolver):
    """Serves ``<namespace>/<name>/<version>/<path>`` from a bundle directory.

    The bundle is read into memory once at construction; lookups never touch
    the disk afterwards. See ``docresolve.bundler`` for producing bundles.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        try:
            self._files = _collect_files(self.directory)
        except OSError as exc:
            raise ResolverIOError(f"Could not load bundle {self.directory}: {exc}", resolver=self.name) from exc
        logger.debug("Loaded %d bundled files from %s", len(self._files), self.directory)

    @staticmethod
    def file_key(identity: FileIdentity) -> str:
        """Bundle-relative key, same layout as the package directories."""
        if identity.package is None:
            return identity.path.rootless()
        return "/".join(identity.package.subdir() + identity.path.parts)

    def __len__(self) -> int:
        return len(self._files)

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        if identity.path.escapes_root():
            raise ForbiddenError(f"Path {identity.path} escapes the bundle", identity=identity, resolver=self.name)
        data = self._files.get(self.file_key(identity))
        if data is None:
            raise NotFoundError(f"{identity} is not bundled", identity=identity, resolver=self.name)
        return from_bytes(identity, data, kind)

    def __repr__(self) -> str:
        return f"BundledPackageResolver({str(self.directory)!r}, {len(self._files)} files)"
