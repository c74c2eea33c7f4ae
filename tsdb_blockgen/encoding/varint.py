"""
Variable-length integers and a framing buffer for binary sections.

Varints are base-128 little-endian groups (the protobuf layout), with
zig-zag mapping for signed values. Fixed-width integers are big-endian.
"""

from __future__ import annotations

import struct

import crc32c

MAX_UINT64 = 0xFFFFFFFFFFFFFFFF


def uvarint_bytes(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a uvarint."""
    if value < 0:
        raise ValueError(f"uvarint requires a non-negative value, got {value}")
    if value > MAX_UINT64:
        raise ValueError(f"uvarint value out of range: {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def varint_bytes(value: int) -> bytes:
    """Encode a signed 64-bit integer as a zig-zag varint."""
    return uvarint_bytes(((value << 1) ^ (value >> 63)) & MAX_UINT64)


def read_uvarint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Decode a uvarint starting at ``pos``.

    Returns:
        (value, position after the varint)
    """
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("truncated uvarint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise ValueError("uvarint overflows 64 bits")


def read_varint(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Decode a zig-zag varint starting at ``pos``."""
    raw, pos = read_uvarint(data, pos)
    return (raw >> 1) ^ -(raw & 1), pos


def checksum(data: bytes) -> int:
    """CRC32 with the Castagnoli polynomial, as used by every TSDB section."""
    return crc32c.crc32c(data)


class EncodingBuffer:
    """Append-only byte buffer with the primitives used by the file writers."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def get(self) -> bytes:
        return bytes(self._buf)

    def put_be32(self, value: int) -> None:
        self._buf.extend(struct.pack(">I", value))

    def put_be64(self, value: int) -> None:
        self._buf.extend(struct.pack(">Q", value))

    def put_uvarint(self, value: int) -> None:
        self._buf.extend(uvarint_bytes(value))

    def put_varint(self, value: int) -> None:
        self._buf.extend(varint_bytes(value))

    def put_uvarint_str(self, value: str) -> None:
        encoded = value.encode("utf-8")
        self.put_uvarint(len(encoded))
        self._buf.extend(encoded)

    def put_hash(self) -> None:
        """Append the CRC32-Castagnoli of the current contents."""
        self.put_be32(checksum(bytes(self._buf)))
