# kdbxkit

This package provides building blocks for KDBX (KeePass 3.1 and 4)
password database files. It is written in pure Python, and its only
dependency is `cryptography`.

- **Payload ciphers** (`kdbxkit.ciphers`): `AESEncrypter` and
  `TwofishEncrypter` run in CBC mode without padding. `ChaChaStream` runs
  ChaCha20 and accepts a 12 or 24 byte nonce. The module also has a
  standalone `Twofish` block cipher with `encrypt_block` and
  `decrypt_block`.
- **Protected-field streams**: `SalsaStream` (`kdbxkit.salsa`) and
  `chacha_stream_from_key` (`kdbxkit.ciphers`) protect field values.
  `InsecureStream` (`kdbxkit.streams`) leaves values as they are. Each
  stream has two methods. `pack(bytes) -> str` encrypts and then encodes as
  base64. `unpack(str) -> bytes` reverses it.
- **Managers** (`kdbxkit.streams`):
  - `new_encrypter_manager(cipher, key, iv)` takes a `CipherKind`: `AES`,
    `TWOFISH` or `CHACHA20`.
  - `new_stream_manager(stream_id, key)` takes a `StreamID`: `NONE`,
    `SALSA20` or `CHACHA20`. It raises `UnsupportedStreamTypeError` for
    `ARC4` and for unknown IDs.
- **Block framing** (`kdbxkit.blocks`):
  - `compose_content_blocks31` and `decompose_content_blocks31` handle the
    3.1 INDEX-SHA256-LENGTH-DATA scheme.
  - `compose_content_blocks4` and `decompose_content_blocks4` handle the
    format 4 HMAC-LENGTH-DATA scheme. Block HMACs come from
    `BlockHMACBuilder`.
  - Blocks are at most 1 MiB.
- **Binaries** (`kdbxkit.binary`): `Binaries` is a list of `Binary`
  attachments. An entry refers to a binary by ID through a
  `BinaryReference`.
  - `with_kdbx31_binary` stores content gzip-compressed and
    base64-encoded.
  - `with_kdbx4_binary` stores content raw.
- **Inner header** (`kdbxkit.inner_header`): `InnerHeader` reads and
  writes the format 4 inner header with `read_from` and `write_to`. The
  inner header holds the stream ID, the stream key and the binaries.
  `new_kdbx4_inner_header()` creates one with a ChaCha20 stream and a
  random 64-byte key.

## Installation

```
pip install kdbxkit
```

## Protecting field values

```python
from kdbxkit.streams import StreamID, new_stream_manager

key = bytes(64)
writer = new_stream_manager(StreamID.CHACHA20, key)
packed = writer.pack(b"test message")      # base64 text

reader = new_stream_manager(StreamID.CHACHA20, key)
assert reader.unpack(packed) == b"test message"
```

Streams keep state, and the keystream carries on from one call to the
next. Unpack values in the same order they were packed, and start each
pass with a fresh manager.

## Encrypting a payload

```python
import os
from kdbxkit.streams import CipherKind, new_encrypter_manager

key, iv = os.urandom(32), os.urandom(16)
manager = new_encrypter_manager(CipherKind.AES, key, iv)
ciphertext = manager.encrypt(b"sixteen byte msg")
assert manager.decrypt(ciphertext) == b"sixteen byte msg"
```

The AES and Twofish encrypters start again from the IV on every call.
They raise `ValueError` unless the data length is a multiple of 16 bytes,
so the caller must add any padding. ChaCha20 accepts data of any length,
and its keystream advances with every call.

## Block framing

```python
import os
from kdbxkit.blocks import compose_content_blocks4, decompose_content_blocks4

payload = b"encrypted payload"
master_seed, transformed_key = os.urandom(32), os.urandom(32)

framed = compose_content_blocks4(payload, master_seed, transformed_key)
assert decompose_content_blocks4(framed, master_seed, transformed_key) == payload
```

`decompose_content_blocks4` raises `HMACVerificationError` when a block
fails verification. Both decomposers raise `ValueError` when the input is
truncated.

## Attachments

```python
from kdbxkit.binary import Binaries, with_kdbx31_binary

binaries = Binaries()
binary = binaries.add(b"Hello world", with_kdbx31_binary)
reference = binary.create_reference("hello.txt")
assert binaries.find(reference.id).get_content_string() == "Hello world"
```

`Binaries.add` numbers each new binary one above the last. If a binary
already stores exactly the given bytes, `add` returns that binary and
adds nothing.

## What this package does not do

This package has no top-level reader or writer for whole database files,
so you have to combine the pieces yourself. It does not parse or write
the outer file header. It does not derive keys from passwords or key
files, and it does not handle the XML document of groups and entries.
It has no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```