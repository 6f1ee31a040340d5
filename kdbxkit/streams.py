"""Managers that choose the payload cipher and the protected-field stream."""

from __future__ import annotations

import enum
from typing import Protocol

from kdbxkit.ciphers import AESEncrypter, TwofishEncrypter, ChaChaStream, chacha_stream_from_key
from kdbxkit.salsa import SalsaStream

__all__ = [
    "StreamID",
    "CipherKind",
    "UnsupportedEncrypterTypeError",
    "UnsupportedStreamTypeError",
    "InsecureStream",
    "EncrypterManager",
    "StreamManager",
    "new_encrypter_manager",
    "new_stream_manager",
]


class StreamID(enum.IntEnum):
    """Identifiers of the inner random stream that protects field values."""

    NONE = 0
    ARC4 = 1  # recognised, but not supported
    SALSA20 = 2
    CHACHA20 = 3


class CipherKind(enum.Enum):
    """Ciphers that can encrypt the database payload."""

    AES = "aes"
    TWOFISH = "twofish"
    CHACHA20 = "chacha20"


class UnsupportedEncrypterTypeError(ValueError):
    """Raised when no payload cipher can be built for the requested kind."""

    def __init__(self, message: str = "Type of encrypter unsupported") -> None:
        super().__init__(message)


class UnsupportedStreamTypeError(ValueError):
    """Raised when the inner random stream ID is not supported."""

    def __init__(self, message: str = "Type of stream manager unsupported") -> None:
        super().__init__(message)


class Encrypter(Protocol):
    def encrypt(self, data: bytes) -> bytes: ...

    def decrypt(self, data: bytes) -> bytes: ...


class Stream(Protocol):
    def pack(self, payload: bytes) -> str: ...

    def unpack(self, payload: str) -> bytes: ...


class InsecureStream:
    """A stream that leaves protected values as they are."""

    def unpack(self, payload: str) -> bytes:
        return payload.encode("utf-8", errors="surrogateescape")

    def pack(self, payload: bytes) -> str:
        return bytes(payload).decode("utf-8", errors="surrogateescape")


class EncrypterManager:
    """Holds the cipher that encrypts and decrypts the database payload."""

    def __init__(self, encrypter: Encrypter) -> None:
        self.encrypter = encrypter

    def encrypt(self, data: bytes) -> bytes:
        return self.encrypter.encrypt(data)

    def decrypt(self, data: bytes) -> bytes:
        return self.encrypter.decrypt(data)


class StreamManager:
    """Holds the stream that packs and unpacks protected field values."""

    def __init__(self, stream: Stream) -> None:
        self.stream = stream

    def pack(self, payload: bytes) -> str:
        """Encrypt a plain value into its stored text form."""
        return self.stream.pack(payload)

    def unpack(self, payload: str) -> bytes:
        """Decrypt a stored value into its plain bytes."""
        return self.stream.unpack(payload)


def new_encrypter_manager(cipher: CipherKind, key: bytes, iv: bytes) -> EncrypterManager:
    """Build the payload cipher of the given kind from a key and IV."""
    if cipher is CipherKind.CHACHA20:
        return EncrypterManager(ChaChaStream(key, iv))
    if cipher is CipherKind.TWOFISH:
        return EncrypterManager(TwofishEncrypter(key, iv))
    if cipher is CipherKind.AES:
        return EncrypterManager(AESEncrypter(key, iv))
    raise UnsupportedEncrypterTypeError()


def new_stream_manager(stream_id: int, key: bytes) -> StreamManager:
    """Build the protected-field stream for an inner random stream ID."""
    try:
        kind = StreamID(stream_id)
    except ValueError:
        raise UnsupportedStreamTypeError() from None
    if kind is StreamID.NONE:
        return StreamManager(InsecureStream())
    if kind is StreamID.SALSA20:
        return StreamManager(SalsaStream(key))
    if kind is StreamID.CHACHA20:
        return StreamManager(chacha_stream_from_key(key))
    raise UnsupportedStreamTypeError()