"""The inner header of format 4 databases: stream settings and binaries."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

from kdbxkit.binary import Binaries, Binary
from kdbxkit.streams import StreamID

__all__ = [
    "InnerHeaderType",
    "UnknownInnerHeaderIDError",
    "InnerHeader",
    "new_kdbx4_inner_header",
]

INNER_RANDOM_STREAM_KEY_LENGTH = 64


class InnerHeaderType(enum.IntEnum):
    """Field identifiers of the inner header."""

    TERMINATOR = 0x00
    IRS_ID = 0x01
    IRS_KEY = 0x02
    BINARY = 0x03


class UnknownInnerHeaderIDError(ValueError):
    """Raised when the inner header holds a field with an unknown ID."""

    def __init__(self, header_id: int) -> None:
        super().__init__(f"unknown inner header ID of {header_id}")
        self.header_id = header_id


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) < size:
        raise EOFError("unexpected end of inner header")
    return data


@dataclass
class InnerHeader:
    """Inner random stream settings and binaries of a format 4 database."""

    inner_random_stream_id: int = 0
    inner_random_stream_key: Optional[bytes] = None
    binaries: Binaries = field(default_factory=Binaries)

    def read_from(self, stream: BinaryIO) -> None:
        """Read fields from ``stream`` up to and including the terminator."""
        binary_count = 0
        while True:
            header_type = _read_exact(stream, 1)[0]
            (length,) = struct.unpack("<i", _read_exact(stream, 4))
            if length < 0:
                raise ValueError(f"invalid inner header field length {length}")
            data = _read_exact(stream, length)

            if header_type == InnerHeaderType.TERMINATOR:
                return
            if header_type == InnerHeaderType.IRS_ID:
                if len(data) < 4:
                    raise ValueError("inner random stream ID is too short")
                (self.inner_random_stream_id,) = struct.unpack("<I", data[:4])
            elif header_type == InnerHeaderType.IRS_KEY:
                self.inner_random_stream_key = data
            elif header_type == InnerHeaderType.BINARY:
                protection = data[0] if data else 0
                self.binaries.append(
                    Binary(
                        id=binary_count,
                        memory_protection=protection,
                        content=data[1:],
                        is_kdbx4=True,
                    )
                )
                binary_count += 1
            else:
                raise UnknownInnerHeaderIDError(header_type)

    def write_to(self, stream: BinaryIO) -> None:
        """Write all fields and the terminator to ``stream``."""
        _write_field(stream, InnerHeaderType.IRS_ID, struct.pack("<I", self.inner_random_stream_id))
        _write_field(stream, InnerHeaderType.IRS_KEY, self.inner_random_stream_key or b"")
        for binary in self.binaries:
            payload = bytes([binary.memory_protection]) + bytes(binary.content)
            _write_field(stream, InnerHeaderType.BINARY, payload)
        stream.write(bytes([InnerHeaderType.TERMINATOR]))
        stream.write(struct.pack("<I", 0))

    def __str__(self) -> str:
        key = (self.inner_random_stream_key or b"").hex()
        binaries = "[" + " ".join(str(b) for b in self.binaries) + "]"
        return (
            f"1) InnerRandomStreamID: {self.inner_random_stream_id}\n"
            f"2) InnerRandomStreamKey: {key}\n"
            f"3) Binaries: {binaries}\n"
        )


def _write_field(stream: BinaryIO, header_id: int, data: bytes) -> None:
    """Write one field; empty fields are left out."""
    if data:
        stream.write(bytes([header_id]))
        stream.write(struct.pack("<I", len(data)))
        stream.write(bytes(data))


def new_kdbx4_inner_header() -> InnerHeader:
    """Create an inner header with a ChaCha20 stream and a fresh random key."""
    return InnerHeader(
        inner_random_stream_id=StreamID.CHACHA20,
        inner_random_stream_key=os.urandom(INNER_RANDOM_STREAM_KEY_LENGTH),
    )