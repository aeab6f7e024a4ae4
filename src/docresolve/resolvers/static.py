"""Resolvers serving content supplied at construction time."""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple, Union

from ..constants import FileKind
from ..errors import NotFoundError
from ..identity import FileIdentity, IdentityLike
from ..resolved import Binary, Resolved, Source
from .base import FileResolver

SourceEntry = Tuple[IdentityLike, Union[str, Source]]
BinaryEntry = Tuple[IdentityLike, Union[bytes, bytearray, Binary]]


def _as_source(value) -> Source:
    return value if isinstance(value, Source) else Source(str(value))


def _as_binary(value) -> Binary:
    return value if isinstance(value, Binary) else Binary(bytes(value))


class StaticResolver(FileResolver):
    """Immutable identity -> content map; no I/O.

    A value is only served in the representation it was registered with:
    sources are not handed out as bytes and bytes are not decoded.
    """

    def __init__(self, entries: Mapping[FileIdentity, Resolved]):
        self._entries = MappingProxyType(
            {FileIdentity.coerce(k): v for k, v in dict(entries).items()}
        )

    @classmethod
    def from_sources(cls, sources: Iterable[SourceEntry]) -> "StaticResolver":
        """Build from (path-or-identity, text) pairs."""
        return cls({FileIdentity.coerce(i): _as_source(s) for i, s in sources})

    @classmethod
    def from_binaries(cls, binaries: Iterable[BinaryEntry]) -> "StaticResolver":
        """Build from (path-or-identity, bytes) pairs."""
        return cls({FileIdentity.coerce(i): _as_binary(b) for i, b in binaries})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity) -> bool:
        return FileIdentity.coerce(identity) in self._entries

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        value = self._entries.get(identity)
        if value is None or value.kind is not kind:
            raise NotFoundError(f"{identity} not preloaded", identity=identity, resolver=self.name)
        return value

    def __repr__(self) -> str:
        return f"StaticResolver({len(self._entries)} entries)"


class MainSourceResolver(FileResolver):
    """Serves the single main template handed to a session as a string."""

    def __init__(self, identity: IdentityLike, text: str):
        self.identity = FileIdentity.coerce(identity)
        self._source = Source(text)

    def resolve(self, identity: FileIdentity, kind: FileKind = FileKind.BINARY) -> Resolved:
        if kind is FileKind.SOURCE and identity == self.identity:
            return self._source
        raise NotFoundError(f"{identity} is not the main source", identity=identity, resolver=self.name)

    def __repr__(self) -> str:
        return f"MainSourceResolver({self.identity})"
