"""Salsa20 keystream for protecting field values."""

from __future__ import annotations

import base64
import hashlib
import struct

from kdbxkit.ciphers import _b64decode_lenient

__all__ = ["SalsaStream"]

_MASK32 = 0xFFFFFFFF
_BLOCK_SIZE = 64
_IV = bytes((0xE8, 0x30, 0x09, 0x4B, 0x97, 0x20, 0x5D, 0x2A))
_SIGMA = (0x61707865, 0x3320646E, 0x79622D32, 0x6B206574)

# Each step: target index, then the two indices summed, then the rotation.
_DOUBLE_ROUND = (
    (4, 0, 12, 7), (8, 4, 0, 9), (12, 8, 4, 13), (0, 12, 8, 18),
    (9, 5, 1, 7), (13, 9, 5, 9), (1, 13, 9, 13), (5, 1, 13, 18),
    (14, 10, 6, 7), (2, 14, 10, 9), (6, 2, 14, 13), (10, 6, 2, 18),
    (3, 15, 11, 7), (7, 3, 15, 9), (11, 7, 3, 13), (15, 11, 7, 18),
    (1, 0, 3, 7), (2, 1, 0, 9), (3, 2, 1, 13), (0, 3, 2, 18),
    (6, 5, 4, 7), (7, 6, 5, 9), (4, 7, 6, 13), (5, 4, 7, 18),
    (11, 10, 9, 7), (8, 11, 10, 9), (9, 8, 11, 13), (10, 9, 8, 18),
    (12, 15, 14, 7), (13, 12, 15, 9), (14, 13, 12, 13), (15, 14, 13, 18),
)


def _rotl32(value: int, shift: int) -> int:
    value &= _MASK32
    return ((value << shift) | (value >> (32 - shift))) & _MASK32


class SalsaStream:
    """Salsa20 keyed with SHA-256 of the given key and a fixed nonce.

    The keystream runs on across calls; ``state`` holds the sixteen words of
    the cipher state, with the block counter in words 8 and 9.
    """

    def __init__(self, key: bytes) -> None:
        key_words = struct.unpack("<8I", hashlib.sha256(bytes(key)).digest())
        nonce_words = struct.unpack("<2I", _IV)
        self.state: list[int] = [
            _SIGMA[0], *key_words[0:4],
            _SIGMA[1], *nonce_words, 0, 0,
            _SIGMA[2], *key_words[4:8],
            _SIGMA[3],
        ]
        self._buffer = bytearray()

    def _generate_block(self) -> bytes:
        x = list(self.state)
        for _ in range(10):
            for target, first, second, shift in _DOUBLE_ROUND:
                x[target] ^= _rotl32(x[first] + x[second], shift)
        block = struct.pack(
            "<16I", *((a + b) & _MASK32 for a, b in zip(x, self.state))
        )
        self.state[8] = (self.state[8] + 1) & _MASK32
        if self.state[8] == 0:
            self.state[9] = (self.state[9] + 1) & _MASK32
        return block

    def _fetch(self, length: int) -> bytes:
        while length > len(self._buffer):
            self._buffer += self._generate_block()
        data = bytes(self._buffer[:length])
        del self._buffer[:length]
        return data

    def _xor(self, data: bytes) -> bytes:
        return bytes(a ^ b for a, b in zip(data, self._fetch(len(data))))

    def unpack(self, payload: str) -> bytes:
        """Decode base64 text and decrypt it."""
        return self._xor(_b64decode_lenient(payload))

    def pack(self, payload: bytes) -> str:
        """Encrypt bytes and return them as base64 text."""
        return base64.b64encode(self._xor(bytes(payload))).decode("ascii")