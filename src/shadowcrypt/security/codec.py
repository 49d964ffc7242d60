"""Compact binary record format for encrypted entries.

Record layout (binary, all big-endian):
- 4 bytes: protocol version (unsigned int)
- 1 byte: content salt length (L)
- L bytes: content salt
- 4 bytes: ciphertext length (N)
- N bytes: masked ciphertext

No trailing bytes are allowed; every declared length is checked against the
remaining buffer before it is sliced.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from shadowcrypt.core.exceptions import MalformedRecordError, ProtocolVersionMismatchError


CONTENT_SALT_LENGTH = 16
VERSION_FMT = ">I"
SALT_LEN_FMT = "B"
CONTENT_LEN_FMT = ">I"
MAX_VERSION = 0xFFFFFFFF


@dataclass(frozen=True)
class EncryptedRecord:
    protocol_version: int
    content_salt: bytes
    ciphertext: bytes


def encode_record(record: EncryptedRecord) -> bytes:
    if len(record.content_salt) != CONTENT_SALT_LENGTH:
        raise ValueError(f"content salt must be {CONTENT_SALT_LENGTH} bytes")
    if not 0 <= record.protocol_version <= MAX_VERSION:
        raise ValueError("protocol version must fit in an unsigned 32-bit integer")

    out = bytearray()
    out += struct.pack(VERSION_FMT, record.protocol_version)
    out += struct.pack(SALT_LEN_FMT, len(record.content_salt))
    out += record.content_salt
    out += struct.pack(CONTENT_LEN_FMT, len(record.ciphertext))
    out += record.ciphertext
    return bytes(out)


def read_version(data: bytes) -> int:
    """Return the protocol version of ``data`` without parsing the rest."""
    size = struct.calcsize(VERSION_FMT)
    if len(data) < size:
        raise MalformedRecordError("truncated record: missing protocol version")
    (version,) = struct.unpack_from(VERSION_FMT, data, 0)
    return version


def decode_record(data: bytes, expected_version: Optional[int] = None) -> EncryptedRecord:
    """Parse ``data`` into an :class:`EncryptedRecord`.

    When ``expected_version`` is given, the version is compared as soon as it
    is read so an unknown layout is rejected before anything else is parsed.
    """
    view = memoryview(data)
    version = read_version(view)
    if expected_version is not None and version != expected_version:
        raise ProtocolVersionMismatchError(expected_version, version)
    offset = struct.calcsize(VERSION_FMT)

    if len(view) < offset + 1:
        raise MalformedRecordError("truncated record: missing content salt length")
    (salt_len,) = struct.unpack_from(SALT_LEN_FMT, view, offset)
    offset += 1
    if salt_len > len(view) - offset:
        raise MalformedRecordError("declared content salt length exceeds record size")
    salt = bytes(view[offset:offset + salt_len])
    offset += salt_len

    if len(view) - offset < struct.calcsize(CONTENT_LEN_FMT):
        raise MalformedRecordError("truncated record: missing ciphertext length")
    (ct_len,) = struct.unpack_from(CONTENT_LEN_FMT, view, offset)
    offset += struct.calcsize(CONTENT_LEN_FMT)
    if ct_len > len(view) - offset:
        raise MalformedRecordError("declared ciphertext length exceeds record size")
    ciphertext = bytes(view[offset:offset + ct_len])
    offset += ct_len

    if offset != len(view):
        raise MalformedRecordError("unexpected trailing bytes after ciphertext")

    return EncryptedRecord(protocol_version=version, content_salt=salt, ciphertext=ciphertext)
