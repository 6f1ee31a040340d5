"""Block and stream ciphers used to encrypt database payloads.

AES and Twofish run in CBC mode, restarting from the configured IV on every
call. ChaCha20 is a stateful stream whose keystream carries on from one call
to the next.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import struct

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

__all__ = [
    "Twofish",
    "AESEncrypter",
    "TwofishEncrypter",
    "ChaChaStream",
    "chacha_stream_from_key",
]

_MASK32 = 0xFFFFFFFF
_BLOCK_SIZE = 16


def _rol(value: int, shift: int) -> int:
    value &= _MASK32
    return ((value << shift) | (value >> (32 - shift))) & _MASK32


def _ror(value: int, shift: int) -> int:
    value &= _MASK32
    return ((value >> shift) | (value << (32 - shift))) & _MASK32


def _xor_bytes(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right))


def _split_blocks(data: bytes, size: int = _BLOCK_SIZE):
    if len(data) % size:
        raise ValueError("input not full blocks")
    for start in range(0, len(data), size):
        yield data[start:start + size]


def _b64decode_lenient(text: str) -> bytes:
    """Decode standard base64, keeping whatever decodes before an error."""
    cleaned = text.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        pass
    decoded = bytearray()
    for start in range(0, len(cleaned), 4):
        chunk = cleaned[start:start + 4]
        try:
            decoded += base64.b64decode(chunk, validate=True)
        except (binascii.Error, ValueError):
            break
        if chunk.endswith("="):
            break
    return bytes(decoded)


# --- Twofish -----------------------------------------------------------------

def _gf_mul(a: int, b: int, poly: int) -> int:
    result = 0
    while b:
        if b & 1:
            result ^= a
        a <<= 1
        if a & 0x100:
            a ^= poly
        b >>= 1
    return result


def _build_q(tables: tuple[tuple[int, ...], ...]) -> bytes:
    t0, t1, t2, t3 = tables

    def ror4(x: int) -> int:
        return ((x >> 1) | (x << 3)) & 0xF

    out = bytearray()
    for x in range(256):
        a0, b0 = x >> 4, x & 0xF
        a1 = a0 ^ b0
        b1 = a0 ^ ror4(b0) ^ ((a0 << 3) & 0xF)
        a2, b2 = t0[a1], t1[b1]
        a3 = a2 ^ b2
        b3 = a2 ^ ror4(b2) ^ ((a2 << 3) & 0xF)
        a4, b4 = t2[a3], t3[b3]
        out.append((b4 << 4) | a4)
    return bytes(out)


_Q0 = _build_q((
    (8, 1, 7, 13, 6, 15, 3, 2, 0, 11, 5, 9, 14, 12, 10, 4),
    (14, 12, 11, 8, 1, 2, 3, 5, 15, 4, 10, 6, 7, 0, 9, 13),
    (11, 10, 5, 14, 6, 13, 9, 0, 12, 8, 15, 3, 2, 4, 7, 1),
    (13, 7, 15, 4, 1, 2, 6, 14, 9, 11, 3, 0, 8, 5, 12, 10),
))
_Q1 = _build_q((
    (2, 8, 11, 13, 15, 7, 6, 14, 3, 1, 9, 4, 0, 10, 12, 5),
    (1, 14, 2, 11, 4, 12, 3, 7, 6, 13, 10, 5, 15, 9, 0, 8),
    (4, 12, 7, 5, 1, 6, 9, 10, 0, 14, 13, 8, 2, 11, 3, 15),
    (11, 9, 5, 1, 12, 3, 13, 14, 6, 4, 7, 15, 2, 0, 8, 10),
))

# Permutations applied per byte position, outermost key layer first.
_CHAINS = (
    (_Q1, _Q1, _Q0, _Q0, _Q1),
    (_Q0, _Q1, _Q1, _Q0, _Q0),
    (_Q0, _Q0, _Q0, _Q1, _Q1),
    (_Q1, _Q0, _Q1, _Q1, _Q0),
)

_MDS = (
    (0x01, 0xEF, 0x5B, 0x5B),
    (0x5B, 0xEF, 0xEF, 0x01),
    (0xEF, 0x5B, 0x01, 0xEF),
    (0xEF, 0x01, 0xEF, 0x5B),
)
_MDS_POLY = 0x169

_RS = (
    (0x01, 0xA4, 0x55, 0x87, 0x5A, 0x58, 0xDB, 0x9E),
    (0xA4, 0x56, 0x82, 0xF3, 0x1E, 0xC6, 0x68, 0xE5),
    (0x02, 0xA1, 0xFC, 0xC1, 0x47, 0xAE, 0x3D, 0x19),
    (0xA4, 0x55, 0x87, 0x5A, 0x58, 0xDB, 0x9E, 0x03),
)
_RS_POLY = 0x14D

_MDS_COLUMNS = tuple(
    tuple(
        sum(_gf_mul(_MDS[row][column], y, _MDS_POLY) << (8 * row) for row in range(4))
        for y in range(256)
    )
    for column in range(4)
)


def _h_byte(position: int, value: int, key_bytes: list[bytes]) -> int:
    chain = _CHAINS[position][4 - len(key_bytes):]
    for permutation, key_word in zip(chain, reversed(key_bytes)):
        value = permutation[value] ^ key_word[position]
    return chain[-1][value]


def _h_word(word: int, key_words: list[int]) -> int:
    key_bytes = [w.to_bytes(4, "little") for w in key_words]
    result = 0
    for position, value in enumerate(word.to_bytes(4, "little")):
        result ^= _MDS_COLUMNS[position][_h_byte(position, value, key_bytes)]
    return result


class Twofish:
    """The Twofish block cipher for 128, 192 or 256 bit keys."""

    block_size = _BLOCK_SIZE

    def __init__(self, key: bytes) -> None:
        key = bytes(key)
        if len(key) not in (16, 24, 32):
            raise ValueError(f"invalid Twofish key size {len(key)}")
        k = len(key) // 8
        words = list(struct.unpack(f"<{2 * k}I", key))
        even, odd = words[0::2], words[1::2]

        sbox_words = []
        for chunk_start in range(0, len(key), 8):
            chunk = key[chunk_start:chunk_start + 8]
            column = bytearray()
            for rs_row in _RS:
                value = 0
                for coefficient, byte in zip(rs_row, chunk):
                    value ^= _gf_mul(coefficient, byte, _RS_POLY)
                column.append(value)
            sbox_words.append(int.from_bytes(column, "little"))
        sbox_key = [w.to_bytes(4, "little") for w in reversed(sbox_words)]

        rho = 0x01010101
        subkeys: list[int] = []
        for i in range(20):
            a = _h_word((2 * i * rho) & _MASK32, even)
            b = _rol(_h_word(((2 * i + 1) * rho) & _MASK32, odd), 8)
            subkeys.append((a + b) & _MASK32)
            subkeys.append(_rol((a + 2 * b) & _MASK32, 9))
        self._k = subkeys

        self._s = [
            [_MDS_COLUMNS[position][_h_byte(position, x, sbox_key)] for x in range(256)]
            for position in range(4)
        ]

    def _g(self, x: int) -> int:
        s0, s1, s2, s3 = self._s
        return s0[x & 0xFF] ^ s1[(x >> 8) & 0xFF] ^ s2[(x >> 16) & 0xFF] ^ s3[x >> 24]

    def _round_function(self, r0: int, r1: int, rnd: int) -> tuple[int, int]:
        t0 = self._g(r0)
        t1 = self._g(_rol(r1, 8))
        f0 = (t0 + t1 + self._k[2 * rnd + 8]) & _MASK32
        f1 = (t0 + 2 * t1 + self._k[2 * rnd + 9]) & _MASK32
        return f0, f1

    def encrypt_block(self, block: bytes) -> bytes:
        """Encrypt one 16-byte block."""
        if len(block) != _BLOCK_SIZE:
            raise ValueError("Twofish blocks are 16 bytes")
        k = self._k
        r0, r1, r2, r3 = (w ^ key for w, key in zip(struct.unpack("<4I", block), k[:4]))
        for rnd in range(16):
            f0, f1 = self._round_function(r0, r1, rnd)
            r2 = _ror(r2 ^ f0, 1)
            r3 = _rol(r3, 1) ^ f1
            r0, r1, r2, r3 = r2, r3, r0, r1
        return struct.pack("<4I", r2 ^ k[4], r3 ^ k[5], r0 ^ k[6], r1 ^ k[7])

    def decrypt_block(self, block: bytes) -> bytes:
        """Decrypt one 16-byte block."""
        if len(block) != _BLOCK_SIZE:
            raise ValueError("Twofish blocks are 16 bytes")
        k = self._k
        c0, c1, c2, c3 = struct.unpack("<4I", block)
        r0, r1, r2, r3 = c2 ^ k[6], c3 ^ k[7], c0 ^ k[4], c1 ^ k[5]
        for rnd in reversed(range(16)):
            r0, r1, r2, r3 = r2, r3, r0, r1
            f0, f1 = self._round_function(r0, r1, rnd)
            r2 = _rol(r2, 1) ^ f0
            r3 = _ror(r3 ^ f1, 1)
        return struct.pack("<4I", r0 ^ k[0], r1 ^ k[1], r2 ^ k[2], r3 ^ k[3])


# --- CBC encrypters ------------------------------------------------------------

def _check_iv(iv: bytes) -> bytes:
    iv = bytes(iv)
    if len(iv) != _BLOCK_SIZE:
        raise ValueError("IV length must equal block size")
    return iv


class AESEncrypter:
    """AES in CBC mode without padding."""

    def __init__(self, key: bytes, iv: bytes) -> None:
        self._algorithm = algorithms.AES(bytes(key))
        self._iv = _check_iv(iv)

    def _cipher(self) -> Cipher:
        return Cipher(self._algorithm, modes.CBC(self._iv))

    def encrypt(self, data: bytes) -> bytes:
        if len(data) % _BLOCK_SIZE:
            raise ValueError("input not full blocks")
        encryptor = self._cipher().encryptor()
        return encryptor.update(bytes(data)) + encryptor.finalize()

    def decrypt(self, data: bytes) -> bytes:
        if len(data) % _BLOCK_SIZE:
            raise ValueError("input not full blocks")
        decryptor = self._cipher().decryptor()
        return decryptor.update(bytes(data)) + decryptor.finalize()


class TwofishEncrypter:
    """Twofish in CBC mode without padding."""

    def __init__(self, key: bytes, iv: bytes) -> None:
        self._cipher = Twofish(key)
        self._iv = _check_iv(iv)

    def encrypt(self, data: bytes) -> bytes:
        out = bytearray()
        previous = self._iv
        for block in _split_blocks(bytes(data)):
            previous = self._cipher.encrypt_block(_xor_bytes(block, previous))
            out += previous
        return bytes(out)

    def decrypt(self, data: bytes) -> bytes:
        out = bytearray()
        previous = self._iv
        for block in _split_blocks(bytes(data)):
            out += _xor_bytes(self._cipher.decrypt_block(block), previous)
            previous = block
        return bytes(out)


# --- ChaCha20 --------------------------------------------------------------------

_SIGMA = (0x61707865, 0x3320646E, 0x79622D32, 0x6B206574)


def _quarter_round(x: list[int], a: int, b: int, c: int, d: int) -> None:
    x[a] = (x[a] + x[b]) & _MASK32
    x[d] = _rol(x[d] ^ x[a], 16)
    x[c] = (x[c] + x[d]) & _MASK32
    x[b] = _rol(x[b] ^ x[c], 12)
    x[a] = (x[a] + x[b]) & _MASK32
    x[d] = _rol(x[d] ^ x[a], 8)
    x[c] = (x[c] + x[d]) & _MASK32
    x[b] = _rol(x[b] ^ x[c], 7)


def _hchacha20(key: bytes, nonce: bytes) -> bytes:
    x = list(_SIGMA) + list(struct.unpack("<8I", key)) + list(struct.unpack("<4I", nonce))
    for _ in range(10):
        _quarter_round(x, 0, 4, 8, 12)
        _quarter_round(x, 1, 5, 9, 13)
        _quarter_round(x, 2, 6, 10, 14)
        _quarter_round(x, 3, 7, 11, 15)
        _quarter_round(x, 0, 5, 10, 15)
        _quarter_round(x, 1, 6, 11, 12)
        _quarter_round(x, 2, 7, 8, 13)
        _quarter_round(x, 3, 4, 9, 14)
    return struct.pack("<8I", *x[0:4], *x[12:16])


class ChaChaStream:
    """A ChaCha20 keystream used both as a payload cipher and a field stream.

    The keystream position advances with every call, so encryption and
    decryption share the same running state.
    """

    def __init__(self, key: bytes, iv: bytes) -> None:
        key, iv = bytes(key), bytes(iv)
        if len(key) != 32:
            raise ValueError("chacha20: wrong key size")
        if len(iv) == 24:
            key = _hchacha20(key, iv[:16])
            iv = bytes(4) + iv[16:]
        elif len(iv) != 12:
            raise ValueError("chacha20: wrong nonce size")
        algorithm = algorithms.ChaCha20(key, bytes(4) + iv)
        self._keystream = Cipher(algorithm, mode=None).encryptor()

    def decrypt(self, data: bytes) -> bytes:
        return self._keystream.update(bytes(data))

    def encrypt(self, data: bytes) -> bytes:
        return self.decrypt(data)

    def unpack(self, payload: str) -> bytes:
        """Decode base64 text and decrypt it."""
        return self.decrypt(_b64decode_lenient(payload))

    def pack(self, payload: bytes) -> str:
        """Encrypt bytes and return them as base64 text."""
        return base64.b64encode(self.encrypt(payload)).decode("ascii")


def chacha_stream_from_key(key: bytes) -> ChaChaStream:
    """Build the protected-field stream whose key and nonce come from SHA-512 of key."""
    digest = hashlib.sha512(bytes(key)).digest()
    return ChaChaStream(digest[:32], digest[32:44])