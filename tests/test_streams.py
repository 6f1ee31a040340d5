import pytest

from kdbxkit.streams import (
    CipherKind,
    InsecureStream,
    StreamID,
    UnsupportedEncrypterTypeError,
    UnsupportedStreamTypeError,
    new_encrypter_manager,
    new_stream_manager,
)

TEST_MESSAGE = b"test message"


def test_insecure():
    key = bytes(64)
    crypted = new_stream_manager(StreamID.NONE, key).pack(TEST_MESSAGE)
    decrypted = new_stream_manager(StreamID.NONE, key).unpack(crypted)
    assert decrypted == TEST_MESSAGE
    assert crypted == "test message"


def test_chacha():
    key = bytes(64)
    crypted = new_stream_manager(StreamID.CHACHA20, key).pack(TEST_MESSAGE)
    decrypted = new_stream_manager(StreamID.CHACHA20, key).unpack(crypted)
    assert decrypted == TEST_MESSAGE
    assert crypted != "test message"


def test_salsa():
    key = bytes(32)
    crypted = new_stream_manager(StreamID.SALSA20, key).pack(TEST_MESSAGE)
    decrypted = new_stream_manager(StreamID.SALSA20, key).unpack(crypted)
    assert decrypted == TEST_MESSAGE


def test_stream_id_accepts_plain_ints():
    crypted = new_stream_manager(3, bytes(64)).pack(TEST_MESSAGE)
    assert new_stream_manager(StreamID.CHACHA20, bytes(64)).unpack(crypted) == TEST_MESSAGE


@pytest.mark.parametrize("stream_id", [StreamID.ARC4, 1, 7, -1])
def test_unsupported_stream(stream_id):
    with pytest.raises(UnsupportedStreamTypeError, match="Type of stream manager unsupported"):
        new_stream_manager(stream_id, bytes(32))


def test_stream_state_runs_on():
    manager = new_stream_manager(StreamID.SALSA20, bytes(32))
    first = manager.pack(TEST_MESSAGE)
    second = manager.pack(TEST_MESSAGE)
    assert first != second
    reader = new_stream_manager(StreamID.SALSA20, bytes(32))
    assert reader.unpack(first) == TEST_MESSAGE
    assert reader.unpack(second) == TEST_MESSAGE


def test_insecure_stream_round_trip_non_ascii():
    stream = InsecureStream()
    payload = "héllo".encode("utf-8")
    assert stream.unpack(stream.pack(payload)) == payload


@pytest.mark.parametrize("kind", [CipherKind.AES, CipherKind.TWOFISH])
def test_block_encrypter_round_trip(kind):
    key = bytes(range(32))
    iv = bytes(range(16))
    data = b"0123456789abcdef" * 4
    manager = new_encrypter_manager(kind, key, iv)
    encrypted = manager.encrypt(data)
    assert encrypted != data
    assert len(encrypted) == len(data)
    assert manager.decrypt(encrypted) == data


def test_chacha_encrypter_round_trip():
    key = bytes(range(32))
    iv = bytes(range(12))
    data = b"some payload of odd length"
    encrypted = new_encrypter_manager(CipherKind.CHACHA20, key, iv).encrypt(data)
    assert encrypted != data
    assert new_encrypter_manager(CipherKind.CHACHA20, key, iv).decrypt(encrypted) == data


def test_unsupported_encrypter():
    with pytest.raises(UnsupportedEncrypterTypeError, match="Type of encrypter unsupported"):
        new_encrypter_manager("rc4", bytes(32), bytes(16))