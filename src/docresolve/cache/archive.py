"""Safe decoding and extraction of gzip-compressed tar archives.

The whole archive is read and checked before anything is written, so a bad
member never leaves a partial tree behind.
"""
from __future__ import annotations

import gzip
import io
import logging
import os
import posixpath
import re
import tarfile
import zlib
from pathlib import Path
from typing import Dict, List, Tuple, Union

from ..errors import DecodeError, ForbiddenError

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def _safe_member_path(name: str) -> str:
    """Normalized relative path of an archive member, or ForbiddenError."""
    raw = name.replace("\\", "/")
    if raw.startswith("/") or _DRIVE_RE.match(raw):
        raise ForbiddenError(f"Archive member has an absolute path: {name!r}")
    normalized = posixpath.normpath(raw)
    if normalized == ".." or normalized.startswith("../"):
        raise ForbiddenError(f"Archive member escapes the package directory: {name!r}")
    return "" if normalized == "." else normalized


def _link_target(member: tarfile.TarInfo, member_path: str) -> str:
    """Archive-relative path a link member points to."""
    link = member.linkname.replace("\\", "/")
    if link.startswith("/") or _DRIVE_RE.match(link):
        raise ForbiddenError(f"Archive link {member.name!r} points to an absolute path")
    if member.issym():
        link = posixpath.join(posixpath.dirname(member_path), link)
    normalized = posixpath.normpath(link)
    if normalized == ".." or normalized.startswith("../"):
        raise ForbiddenError(f"Archive link {member.name!r} points outside the package directory")
    return normalized


def _decompress(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(f"Malformed gzip stream: {exc}") from exc


def read_archive(data: bytes) -> Tuple[Dict[str, bytes], List[str]]:
    """Decode a .tar.gz payload into validated files and directories.

    Links are resolved to copies of the regular file they point to; links to
    anything else, devices and fifos are skipped.

    Returns:
        (files, directories): files maps relative path to content.

    Raises:
        DecodeError: corrupt gzip or tar stream.
        ForbiddenError: a member or link would land outside the target.
    """
    raw = _decompress(data)
    files: Dict[str, bytes] = {}
    directories: List[str] = []
    links: List[Tuple[str, str]] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tar:
            for member in tar.getmembers():
                path = _safe_member_path(member.name)
                if member.isdir():
                    if path:
                        directories.append(path)
                elif member.isfile():
                    if not path:
                        raise DecodeError(f"Archive file member has an empty name: {member.name!r}")
                    fh = tar.extractfile(member)
                    files[path] = fh.read() if fh is not None else b""
                elif member.issym() or member.islnk():
                    links.append((path, _link_target(member, path)))
                else:
                    logger.debug("Skipping special archive member %s", member.name)
    except tarfile.TarError as exc:
        raise DecodeError(f"Malformed tar archive: {exc}") from exc

    for path, target in links:
        if target in files:
            files[path] = files[target]
        else:
            logger.debug("Skipping archive link %s -> %s", path, target)
    return files, directories


def read_tar_gz_members(data: bytes) -> Dict[str, bytes]:
    """Validated regular files of a .tar.gz payload keyed by relative path."""
    files, _ = read_archive(data)
    return files


def extract_tar_gz(data: bytes, dest: Union[str, Path]) -> int:
    """Extract a .tar.gz payload below dest after validating every member.

    Returns:
        int: Number of files written.
    """
    files, directories = read_archive(data)
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    for directory in directories:
        dest.joinpath(*directory.split("/")).mkdir(parents=True, exist_ok=True)
    for path, content in files.items():
        target = dest.joinpath(*path.split("/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as fh:
            fh.write(content)
    logger.debug("Extracted %d files into %s", len(files), os.fspath(dest))
    return len(files)
