"""Splitting of the encrypted payload into hashed or authenticated blocks."""

from __future__ import annotations

import hashlib
import hmac
import struct

__all__ = [
    "HMACVerificationError",
    "BlockHMACBuilder",
    "decompose_content_blocks4",
    "decompose_content_blocks31",
    "compose_content_blocks4",
    "compose_content_blocks31",
]

# Block size of 1 MiB.
BLOCK_SPLIT_RATE = 1048576

_HASH_SIZE = 32


class HMACVerificationError(ValueError):
    """Raised when a block's HMAC does not match its content."""


class BlockHMACBuilder:
    """Derives per-block HMAC-SHA256 values from the master seed and key."""

    def __init__(self, master_seed: bytes, transformed_key: bytes) -> None:
        self.base_key = hashlib.sha512(
            bytes(master_seed) + bytes(transformed_key) + b"\x01"
        ).digest()

    def build_hmac(self, index: int, length: int, data: bytes) -> bytes:
        """Return the HMAC of one block."""
        index_bytes = struct.pack("<Q", index)
        block_key = hashlib.sha512(index_bytes + self.base_key).digest()
        mac = hmac.new(block_key, digestmod=hashlib.sha256)
        mac.update(index_bytes)
        mac.update(struct.pack("<I", length))
        mac.update(bytes(data))
        return mac.digest()


def _take(content: bytes, offset: int, size: int) -> bytes:
    end = offset + size
    if end > len(content):
        raise ValueError("block content is truncated")
    return content[offset:end]


def decompose_content_blocks4(
    content: bytes, master_seed: bytes, transformed_key: bytes
) -> bytes:
    """Join HMAC-LENGTH-DATA blocks, verifying each block's HMAC."""
    builder = BlockHMACBuilder(master_seed, transformed_key)
    content = bytes(content)
    result = bytearray()
    offset = 0
    index = 0
    while True:
        block_hmac = _take(content, offset, _HASH_SIZE)
        offset += _HASH_SIZE
        (length,) = struct.unpack("<I", _take(content, offset, 4))
        offset += 4
        data = _take(content, offset, length)
        offset += length

        expected = builder.build_hmac(index, length, data)
        if not hmac.compare_digest(expected, block_hmac):
            raise HMACVerificationError(f"failed to verify HMAC for block {index}")

        result += data
        if length == 0:
            break
        index += 1
    return bytes(result)


def decompose_content_blocks31(content: bytes) -> bytes:
    """Join INDEX-SHA-LENGTH-DATA blocks up to the terminating empty block."""
    content = bytes(content)
    result = bytearray()
    offset = 0
    while True:
        offset += 4  # block index
        _take(content, offset, _HASH_SIZE)
        offset += _HASH_SIZE
        (length,) = struct.unpack("<I", _take(content, offset, 4))
        offset += 4
        if length == 0:
            break
        result += _take(content, offset, length)
        offset += length
    return bytes(result)


def compose_content_blocks4(
    content: bytes, master_seed: bytes, transformed_key: bytes
) -> bytes:
    """Split content into HMAC-LENGTH-DATA blocks ending with an empty block."""
    builder = BlockHMACBuilder(master_seed, transformed_key)
    content = bytes(content)
    out = bytearray()
    offset = 0
    index = 0
    while True:
        data = content[offset:offset + BLOCK_SPLIT_RATE]
        out += builder.build_hmac(index, len(data), data)
        out += struct.pack("<I", len(data))
        out += data
        offset += len(data)
        if not data:
            break
        index += 1
    out += bytes(_HASH_SIZE)
    out += struct.pack("<I", 0)
    return bytes(out)


def compose_content_blocks31(content: bytes) -> bytes:
    """Split content into INDEX-SHA-LENGTH-DATA blocks ending with an empty block."""
    content = bytes(content)
    out = bytearray()
    index = 0
    for offset in range(0, len(content), BLOCK_SPLIT_RATE):
        data = content[offset:offset + BLOCK_SPLIT_RATE]
        out += struct.pack("<I", index)
        out += hashlib.sha256(data).digest()
        out += struct.pack("<I", len(data))
        out += data
        index += 1
    out += struct.pack("<I", index)
    out += bytes(_HASH_SIZE)
    out += struct.pack("<I", 0)
    return bytes(out)