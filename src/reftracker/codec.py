"""Binary codec for tracker metadata.

Version attribute and version-1 body fields are unsigned 32-bit integers
stored big-endian so the raw bytes read the same on every architecture.
"""

from __future__ import annotations

import struct

_U32 = struct.Struct(">I")

VERSION_SIZE = _U32.size
REFCOUNT_SIZE = _U32.size

U32_MAX = 0xFFFFFFFF


def _encode_u32(value: int, what: str) -> bytes:
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"{what} out of u32 range: {value}")
    return _U32.pack(value)


def _decode_u32(data: bytes, what: str) -> int:
    if len(data) < _U32.size:
        raise ValueError(
            f"{what} needs {_U32.size} bytes, got {len(data)}"
        )
    return _U32.unpack_from(data)[0]


def encode_version(version: int) -> bytes:
    """Encode a schema version as 4 big-endian bytes."""
    return _encode_u32(version, "version")


def decode_version(data: bytes) -> int:
    """Decode a schema version from the first 4 bytes of *data*."""
    return _decode_u32(data, "version")


def encode_refcount(refcount: int) -> bytes:
    """Encode a version-1 refcount as 4 big-endian bytes."""
    return _encode_u32(refcount, "refcount")


def decode_refcount(data: bytes) -> int:
    """Decode a version-1 refcount from the first 4 bytes of *data*."""
    return _decode_u32(data, "refcount")
