import base64
import gzip
import os

import pytest

from kdbxkit.binary import (
    Binaries,
    Binary,
    BinaryReference,
    new_binary_reference,
    with_kdbx31_binary,
    with_kdbx4_binary,
)


def test_binary_kdbx31():
    binaries = Binaries()

    binary = binaries.add(b"test", with_kdbx31_binary)
    binary.id = 4

    binary2 = binaries.add(b"replace me", with_kdbx31_binary)
    binary2.set_content(b"Hello world!")
    assert binary2.id == 5

    assert binaries.find(2) is None

    references = [binary.create_reference("example.txt")]
    assert references[0].id == 4
    assert binaries.find(references[0].id).get_content_bytes() == b"test"
    assert binaries.find(references[0].id).get_content_string() == "test"

    found = binaries.find(binary2.id)
    assert found.get_content_bytes() == b"Hello world!"
    assert found.get_content_string() == "Hello world!"


def test_binary_kdbx4_large_content_round_trip():
    binaries = Binaries()
    random_data = os.urandom(1024 * 1024)
    binary = binaries.add(random_data, with_kdbx4_binary)
    found = binaries.find(binary.id)
    assert found.get_content_bytes() == random_data


def test_add_assigns_sequential_ids():
    binaries = Binaries()
    added = [binaries.add(f"test {i}".encode(), with_kdbx31_binary) for i in range(5)]
    assert [b.id for b in added] == [0, 1, 2, 3, 4]
    assert len(binaries) == 5
    for i, binary in enumerate(added):
        ref = binary.create_reference("test")
        assert binaries.find(ref.id).get_content_string() == f"test {i}"


def test_add_returns_existing_binary_with_equal_content():
    binaries = Binaries()
    first = binaries.add(b"payload", with_kdbx4_binary)
    again = binaries.add(b"payload", with_kdbx4_binary)
    assert again is first
    assert len(binaries) == 1


def test_kdbx4_content_is_stored_raw():
    binary = Binary()
    with_kdbx4_binary(binary)
    binary.set_content(b"abc")
    assert binary.content == b"abc"
    assert binary.compressed is False
    assert binary.is_kdbx4 is True


def test_kdbx31_content_is_base64_of_gzip():
    binary = Binary()
    with_kdbx31_binary(binary)
    binary.set_content(b"some attachment data")
    assert gzip.decompress(base64.b64decode(binary.content)) == b"some attachment data"


def test_uncompressed_base64_content():
    binary = Binary(content=base64.b64encode(b"plain text"), compressed=False)
    assert binary.get_content_bytes() == b"plain text"


def test_add_without_options_compresses_and_encodes():
    binaries = Binaries()
    binary = binaries.add(b"default")
    assert binary.compressed is True
    assert binary.is_kdbx4 is False
    assert binary.get_content_bytes() == b"default"


def test_invalid_gzip_raises():
    binary = Binary(content=b"notgzip", compressed=True)
    with pytest.raises(ValueError):
        binary.get_content_bytes()


def test_truncated_gzip_returns_decompressed_data():
    original = b"0123456789" * 500
    packed = gzip.compress(original)
    binary = Binary(content=packed[:-8], compressed=True, is_kdbx4=True)
    assert binary.get_content_bytes() == original


def test_reference_string_and_factory():
    ref = new_binary_reference("a.txt", 3)
    assert ref == BinaryReference(name="a.txt", id=3)
    assert str(ref) == "ID: 3, File Name: a.txt"