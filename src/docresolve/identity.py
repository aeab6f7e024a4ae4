"""Addressing scheme for virtual files: paths, package specs and identities."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import semantic_version

_IDENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SPEC_RE = re.compile(r"^@([^/\s]+)/([^:\s]+):(\S+)$")


@dataclass(frozen=True, order=True)
class PackageVersion:
    """Exact major.minor.patch version; no ranges, no pre-releases."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str) -> "PackageVersion":
        """Parse "1.2.3" into a PackageVersion.

        Raises:
            ValueError: text is not a plain three-part version.
        """
        try:
            parsed = semantic_version.Version(text.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid package version '{text}': {exc}") from exc
        if parsed.prerelease or parsed.build:
            raise ValueError(f"Package version must be exact major.minor.patch: '{text}'")
        return cls(parsed.major, parsed.minor, parsed.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class PackageSpec:
    """namespace + name + exact version of a package."""

    namespace: str
    name: str
    version: PackageVersion

    def __post_init__(self):
        if not _IDENT_RE.match(self.namespace or ""):
            raise ValueError(f"Invalid package namespace '{self.namespace}'")
        if not _IDENT_RE.match(self.name or ""):
            raise ValueError(f"Invalid package name '{self.name}'")
        version = self.version
        if isinstance(version, str):
            version = PackageVersion.parse(version)
        elif isinstance(version, tuple):
            parts_ok = all(isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in version)
            if len(version) != 3 or not parts_ok:
                raise ValueError(f"Package version must be (major, minor, patch), got {version!r}")
            version = PackageVersion(*version)
        if not isinstance(version, PackageVersion):
            raise ValueError(f"Invalid package version {version!r}")
        object.__setattr__(self, "version", version)

    @classmethod
    def parse(cls, text: str) -> "PackageSpec":
        """Parse the import notation "@namespace/name:1.2.3"."""
        m = _SPEC_RE.match(text.strip())
        if not m:
            raise ValueError(f"Invalid package specifier '{text}', expected @namespace/name:x.y.z")
        namespace, name, version = m.groups()
        return cls(namespace, name, PackageVersion.parse(version))

    def subdir(self) -> Tuple[str, str, str]:
        """Path components of the package below a package root."""
        return (self.namespace, self.name, str(self.version))

    def __str__(self) -> str:
        return f"@{self.namespace}/{self.name}:{self.version}"


class VirtualPath:
    """Rooted, slash-separated path inside a project or package.

    ``name/..`` pairs are collapsed; a ``..`` with nothing left to pop stays
    as a leading segment so sandbox checks can see the escape attempt.
    """

    __slots__ = ("_parts",)

    def __init__(self, path: Union[str, "VirtualPath"]):
        if isinstance(path, VirtualPath):
            self._parts: Tuple[str, ...] = path._parts
            return
        parts = []
        for segment in str(path).replace("\\", "/").split("/"):
            if segment in ("", "."):
                continue
            if segment == ".." and parts and parts[-1] != "..":
                parts.pop()
                continue
            parts.append(segment)
        self._parts = tuple(parts)

    @property
    def parts(self) -> Tuple[str, ...]:
        return self._parts

    def escapes_root(self) -> bool:
        """True if the path still climbs above its root after normalization."""
        return bool(self._parts) and self._parts[0] == ".."

    def rootless(self) -> str:
        return "/".join(self._parts)

    def __str__(self) -> str:
        return "/" + self.rootless()

    def __repr__(self) -> str:
        return f"VirtualPath({str(self)!r})"

    def __eq__(self, other) -> bool:
        if isinstance(other, VirtualPath):
            return self._parts == other._parts
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._parts)


IdentityLike = Union["FileIdentity", str, Tuple[PackageSpec, str]]


@dataclass(frozen=True)
class FileIdentity:
    """Unique, immutable key of a virtual file."""

    path: VirtualPath
    package: Optional[PackageSpec] = None

    def __post_init__(self):
        if not isinstance(self.path, VirtualPath):
            object.__setattr__(self, "path", VirtualPath(self.path))

    @classmethod
    def new(cls, path: str, package: Optional[PackageSpec] = None) -> "FileIdentity":
        return cls(VirtualPath(path), package)

    @classmethod
    def coerce(cls, value: IdentityLike) -> "FileIdentity":
        """Accept an identity, a plain path, or a (PackageSpec, path) pair."""
        if isinstance(value, FileIdentity):
            return value
        if isinstance(value, str):
            return cls(VirtualPath(value))
        if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], PackageSpec):
            return cls(VirtualPath(value[1]), value[0])
        raise TypeError(f"Cannot build a FileIdentity from {value!r}")

    def __str__(self) -> str:
        if self.package is None:
            return str(self.path)
        return f"{self.package}{self.path}"
