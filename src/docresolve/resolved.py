"""Resolution results: program text or opaque bytes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .constants import FileKind
from .errors import DecodeError
from .identity import FileIdentity

_BOM = "\ufeff"


@dataclass(frozen=True)
class Source:
    """A file decoded as program text."""

    text: str

    @property
    def kind(self) -> FileKind:
        return FileKind.SOURCE


@dataclass(frozen=True)
class Binary:
    """A file served as raw bytes (images, fonts, data)."""

    data: bytes

    @property
    def kind(self) -> FileKind:
        return FileKind.BINARY


Resolved = Union[Source, Binary]


def bytes_to_source(identity: FileIdentity, data: bytes) -> Source:
    """Decode UTF-8 bytes into a Source, dropping a leading BOM."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"File is not valid UTF-8: {exc.reason}", identity=identity) from exc
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    return Source(text)


def from_bytes(identity: FileIdentity, data: bytes, kind: FileKind) -> Resolved:
    """Build the representation the caller asked for from raw bytes."""
    if kind is FileKind.SOURCE:
        return bytes_to_source(identity, data)
    return Binary(bytes(data))


def convert(identity: FileIdentity, resolved: Resolved, kind: FileKind) -> Resolved:
    """Coerce a stored value into the requested kind."""
    if kind is FileKind.SOURCE:
        if isinstance(resolved, Source):
            return resolved
        return bytes_to_source(identity, resolved.data)
    if isinstance(resolved, Binary):
        return resolved
    return Binary(resolved.text.encode("utf-8"))
