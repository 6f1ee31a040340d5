import io
import os
import struct

import pytest

from kdbxkit.binary import Binaries, with_kdbx4_binary
from kdbxkit.inner_header import (
    InnerHeader,
    InnerHeaderType,
    UnknownInnerHeaderIDError,
    new_kdbx4_inner_header,
)
from kdbxkit.streams import StreamID


def _round_trip(header: InnerHeader) -> InnerHeader:
    buffer = io.BytesIO()
    header.write_to(buffer)
    buffer.seek(0)
    decoded = InnerHeader()
    decoded.read_from(buffer)
    return decoded


def test_write_to_wire_bytes():
    header = InnerHeader(inner_random_stream_id=3, inner_random_stream_key=b"k")
    buffer = io.BytesIO()
    header.write_to(buffer)
    assert buffer.getvalue() == (
        b"\x01\x04\x00\x00\x00\x03\x00\x00\x00"
        b"\x02\x01\x00\x00\x00k"
        b"\x00\x00\x00\x00\x00"
    )


def test_round_trip_preserves_fields_and_binaries():
    header = new_kdbx4_inner_header()
    header.binaries.add(b"first", with_kdbx4_binary)
    header.binaries.add(b"second", with_kdbx4_binary)
    header.binaries[1].memory_protection = 1

    decoded = _round_trip(header)

    assert decoded.inner_random_stream_id == StreamID.CHACHA20
    assert decoded.inner_random_stream_key == header.inner_random_stream_key
    assert [b.id for b in decoded.binaries] == [0, 1]
    assert [b.get_content_bytes() for b in decoded.binaries] == [b"first", b"second"]
    assert [b.memory_protection for b in decoded.binaries] == [0, 1]
    assert all(b.is_kdbx4 for b in decoded.binaries)


def test_large_binary_round_trip():
    header = new_kdbx4_inner_header()
    data = os.urandom(1024 * 1024)
    binary = header.binaries.add(data, with_kdbx4_binary)
    decoded = _round_trip(header)
    assert decoded.binaries.find(binary.id).get_content_bytes() == data


def test_new_kdbx4_inner_header_defaults():
    header = new_kdbx4_inner_header()
    assert header.inner_random_stream_id == StreamID.CHACHA20
    assert len(header.inner_random_stream_key) == 64
    assert list(header.binaries) == []


def test_empty_key_is_not_written():
    header = InnerHeader(inner_random_stream_id=2, inner_random_stream_key=b"")
    decoded = _round_trip(header)
    assert decoded.inner_random_stream_id == 2
    assert decoded.inner_random_stream_key is None


def test_unknown_header_id_raises():
    data = bytes([7]) + struct.pack("<i", 1) + b"x"
    with pytest.raises(UnknownInnerHeaderIDError) as info:
        InnerHeader().read_from(io.BytesIO(data))
    assert info.value.header_id == 7


def test_truncated_input_raises():
    data = bytes([InnerHeaderType.IRS_KEY]) + struct.pack("<i", 10) + b"abc"
    with pytest.raises(EOFError):
        InnerHeader().read_from(io.BytesIO(data))


def test_reading_stops_after_terminator():
    header = InnerHeader(inner_random_stream_id=3, inner_random_stream_key=b"key")
    buffer = io.BytesIO()
    header.write_to(buffer)
    buffer.write(b"<xml/>")
    buffer.seek(0)
    decoded = InnerHeader()
    decoded.read_from(buffer)
    assert buffer.read() == b"<xml/>"
    assert decoded.inner_random_stream_key == b"key"


def test_string_lists_fields():
    header = InnerHeader(inner_random_stream_id=3, inner_random_stream_key=b"\xab", binaries=Binaries())
    text = str(header)
    assert text.startswith("1) InnerRandomStreamID: 3\n2) InnerRandomStreamKey: ab\n")
    assert text.endswith("3) Binaries: []\n")