"""
Bit-level stream writer and reader.

Bits are packed most-significant first. The writer appends to a
bytearray and tracks how many low bits of the last byte are still free.
"""

from __future__ import annotations


class BitWriter:
    """Append bits to a byte stream."""

    def __init__(self, prefix: bytes = b"") -> None:
        self._stream = bytearray(prefix)
        self._free = 0  # unused bits in the last byte

    @property
    def stream(self) -> bytearray:
        """The underlying buffer. Header bytes may be patched in place."""
        return self._stream

    def bytes(self) -> bytes:
        return bytes(self._stream)

    def write_bit(self, bit: bool | int) -> None:
        if self._free == 0:
            self._stream.append(0)
            self._free = 8
        if bit:
            self._stream[-1] |= 1 << (self._free - 1)
        self._free -= 1

    def write_byte(self, value: int) -> None:
        self.write_bits(value, 8)

    def write_bits(self, value: int, nbits: int) -> None:
        """Write the low ``nbits`` of ``value``."""
        value &= (1 << nbits) - 1
        while nbits > 0:
            if self._free == 0:
                self._stream.append(0)
                self._free = 8
            take = min(self._free, nbits)
            nbits -= take
            part = (value >> nbits) & ((1 << take) - 1)
            self._stream[-1] |= part << (self._free - take)
            self._free -= take


class BitReader:
    """Read bits from a byte string, starting at a byte offset."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self._pos = offset * 8  # absolute bit position

    def read_bit(self) -> int:
        byte_index, bit_index = divmod(self._pos, 8)
        if byte_index >= len(self._data):
            raise EOFError("bit stream exhausted")
        self._pos += 1
        return (self._data[byte_index] >> (7 - bit_index)) & 1

    def read_byte(self) -> int:
        return self.read_bits(8)

    def read_bits(self, nbits: int) -> int:
        value = 0
        while nbits > 0:
            byte_index, bit_index = divmod(self._pos, 8)
            if byte_index >= len(self._data):
                raise EOFError("bit stream exhausted")
            available = 8 - bit_index
            take = min(available, nbits)
            part = (self._data[byte_index] >> (available - take)) & ((1 << take) - 1)
            value = (value << take) | part
            self._pos += take
            nbits -= take
        return value
