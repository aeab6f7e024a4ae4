"""Resolver reading files from a sandboxed directory tree."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..common.logging_utils import extra_context, is_debug_enabled
from ..common.paths import default_local_package_dir
from ..constants import FileKind
from ..errors import DecodeError, ForbiddenError, NotFoundError, ResolverIOError
from ..identity import FileIdentity
from ..resolved import Resolved, from_bytes
from .base import FileResolver

logger = logging.getLogger(__name__)


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:  # different drives on Windows
        return False


def sandboxed_path(root: Path, identity: FileIdentity, resolver: Optional[str] = None) -> Path:
    """Map identity.path below root, refusing anything that lands outside it.

    Symlinks are followed before the check, so a link pointing out of the
    tree is rejected the same way as a ``..`` escape.

    Raises:
        ForbiddenError: the path escapes root.
    """
    if identity.path.escapes_root():
        raise ForbiddenError(
            f"Path {identity.path} escapes the root directory", identity=identity, resolver=resolver
        )
    real_root = os.path.realpath(root)
    candidate = os.path.realpath(os.path.join(real_root, *identity.path.parts))
    if not _is_within(candidate, real_root):
        raise ForbiddenError(
            f"Path {identity.path} resolves outside {real_root}", identity=identity, resolver=resolver
        )
    return Path(candidate)


def read_file(path: Path, identity: FileIdentity, resolver: Optional[str] = None) -> bytes:
    """Read bytes, translating OS errors into resolution errors."""
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFoundError(f"No such file: {path}", identity=identity, resolver=resolver) from exc
    except PermissionError as exc:
        raise ForbiddenError(f"Permission denied: {path}", identity=identity, resolver=resolver) from exc
    except IsADirectoryError as exc:
        raise ResolverIOError(f"Is a directory: {path}", identity=identity, resolver=resolver) from exc
    except OSError as exc:
        raise ResolverIOError(f"Could not read {path}: {exc}", identity=identity, resolver=resolver) from exc


class FileSystemResolver(FileResolver):
    """Serves files below ``root``; package files come from a local package root.

    Local packages follow ``<local root>/<namespace>/<name>/<version>/``.
    Every call hits the disk; wrap with ``into_cached()`` for repeated use.
    """

    def __init__(self, root: Union[str, Path], local_package_root: Optional[Union[str, Path]] = None):
        self.root = Path(root)
        self._local_package_root = Path(local_package_root) if local_package_root else None

    def local_package_root(self, path: Union[str, Path]) -> "FileSystemResolver":
        """Return a copy that looks for packages under ``path``."""
        return FileSystemResolver(self.root, path)

    @property
    def package_root(self) -> Path:
        return self._local_package_root or default_local_package_dir()

    def base_dir(self, identity: FileIdentity) -> Path:
        """Directory the identity's path is relative to."""
        if identity.package is None:
            return self.root
        return self.package_root.joinpath(*identity.package.subdir())

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        path = sandboxed_path(self.base_dir(identity), identity, self.name)
        if is_debug_enabled(logger):
            logger.debug(
                "Reading file",
                extra=extra_context(
                    event="fs_read",
                    component="filesystem_resolver",
                    action="read",
                    target=str(path),
                    kind=kind.value,
                ),
            )
        data = read_file(path, identity, self.name)
        try:
            return from_bytes(identity, data, kind)
        except DecodeError as exc:
            raise exc.with_context(resolver=self.name)

    def __repr__(self) -> str:
        return f"FileSystemResolver(root={str(self.root)!r}, local_package_root={str(self.package_root)!r})"
