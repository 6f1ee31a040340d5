"""Attachments stored in a database and the references entries hold to them."""

from __future__ import annotations

import base64
import binascii
import gzip
import zlib
from dataclasses import dataclass
from typing import Callable, Optional

__all__ = [
    "Binary",
    "BinaryReference",
    "Binaries",
    "with_kdbx4_binary",
    "with_kdbx31_binary",
    "new_binary_reference",
]

_GZIP_HEADER_SIZE = 10


def _decode_base64(content: bytes) -> Optional[bytes]:
    """Return the decoded content, or None if it is not standard base64."""
    cleaned = content.replace(b"\r", b"").replace(b"\n", b"")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        return None


def _gunzip(data: bytes) -> bytes:
    """Decompress one or more gzip members, keeping what a truncated stream yields."""
    if not data:
        raise ValueError("invalid gzip data: empty input")
    out = bytearray()
    remaining = data
    while True:
        decompressor = zlib.decompressobj(wbits=31)
        try:
            out += decompressor.decompress(remaining)
        except zlib.error as exc:
            raise ValueError(f"invalid gzip data: {exc}") from exc
        if not decompressor.eof:
            break
        remaining = decompressor.unused_data
        if len(remaining) < _GZIP_HEADER_SIZE:
            break
    return bytes(out)


@dataclass
class BinaryReference:
    """A named reference from an entry to a binary, by ID."""

    name: str = ""
    id: int = 0

    def __str__(self) -> str:
        return f"ID: {self.id}, File Name: {self.name}"


@dataclass
class Binary:
    """A binary attachment.

    In the 3.1 format the content is base64 text, usually of gzip data; in
    format 4 it is stored as is. ``memory_protection`` is used by format 4 only.
    """

    id: int = 0
    memory_protection: int = 0
    content: bytes = b""
    compressed: bool = False
    is_kdbx4: bool = False

    def get_content_bytes(self) -> bytes:
        """Return the plain content, decoding and decompressing as needed."""
        decoded = _decode_base64(self.content)
        if decoded is None:
            decoded = bytes(self.content)
        if self.compressed:
            return _gunzip(decoded)
        return decoded

    def get_content_string(self) -> str:
        """Return the plain content as text."""
        return self.get_content_bytes().decode("utf-8", errors="surrogateescape")

    def set_content(self, content: bytes) -> None:
        """Encode (and compress, when enabled) ``content`` and store it."""
        payload = bytes(content)
        if self.compressed:
            payload = gzip.compress(payload, mtime=0)
        self.content = payload if self.is_kdbx4 else base64.b64encode(payload)

    def create_reference(self, name: str) -> BinaryReference:
        """Create a reference to this binary under the file name ``name``."""
        return new_binary_reference(name, self.id)

    def __str__(self) -> str:
        return (
            f"ID: {self.id}, MemoryProtection: {self.memory_protection:x}, "
            f"Compressed:{self.compressed}, Content:{bytes(self.content).hex()}"
        )


BinaryOption = Callable[[Binary], None]


def with_kdbx4_binary(binary: Binary) -> None:
    """Make a binary follow the format 4 layout: raw and uncompressed."""
    binary.compressed = False
    binary.is_kdbx4 = True


def with_kdbx31_binary(binary: Binary) -> None:
    """Make a binary follow the 3.1 layout: gzip compressed and base64 encoded."""
    binary.compressed = True
    binary.is_kdbx4 = False


def new_binary_reference(name: str, binary_id: int) -> BinaryReference:
    """Create a reference with the given file name and binary ID."""
    return BinaryReference(name=name, id=binary_id)


class Binaries(list):
    """An ordered collection of binaries."""

    def find(self, binary_id: int) -> Optional[Binary]:
        """Return the binary with the given ID, or None."""
        return next((binary for binary in self if binary.id == binary_id), None)

    def add(self, content: bytes, *args: BinaryOption) -> Binary:
        """Add a binary holding ``content`` and return it.

        A binary whose stored content equals ``content`` is returned instead
        of adding a new one. Each option in ``args`` adjusts the new binary
        before its content is set.
        """
        content = bytes(content)
        for binary in self:
            if bytes(binary.content) == content:
                return binary

        binary = Binary(compressed=True)
        for option in args:
            option(binary)
        binary.id = self[-1].id + 1 if self else 0
        binary.set_content(content)
        self.append(binary)
        return binary