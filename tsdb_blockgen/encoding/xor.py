"""
XOR ("Gorilla") chunk payload encoding.

Layout of the chunk bytes:

    <num samples: 2 bytes BE> <bit stream>

The first sample stores its timestamp as a varint and its value as raw
64 float bits. The second stores the timestamp delta as a uvarint. Every
later sample stores the delta-of-delta of its timestamp in one of five
bit-width classes. Values are XORed against the previous value and only
the meaningful bits are written.
"""

from __future__ import annotations

import struct
from collections.abc import Iterator

from .bstream import BitReader, BitWriter
from .varint import uvarint_bytes, varint_bytes

ENCODING_XOR = 1

# Sample count is stored in a 16 bit header.
MAX_SAMPLES = 0xFFFF

_UNSET = 0xFF


def _float_bits(value: float) -> int:
    return struct.unpack(">Q", struct.pack(">d", value))[0]


def _bits_float(bits: int) -> float:
    return struct.unpack(">d", struct.pack(">Q", bits))[0]


def _bit_range(value: int, nbits: int) -> bool:
    """Whether ``value`` fits the signed ``nbits`` class used for deltas."""
    return -((1 << (nbits - 1)) - 1) <= value <= 1 << (nbits - 1)


def _to_int64(value: int) -> int:
    value &= 0xFFFFFFFFFFFFFFFF
    return value - (1 << 64) if value >= 1 << 63 else value


class XORChunk:
    """An append-only XOR encoded chunk."""

    encoding = ENCODING_XOR

    def __init__(self) -> None:
        self._stream = BitWriter(b"\x00\x00")
        self._num = 0
        self._t = 0
        self._v = 0.0
        self._t_delta = 0
        self._leading = _UNSET
        self._trailing = 0

    @property
    def num_samples(self) -> int:
        return self._num

    def bytes(self) -> bytes:
        """The encoded payload, header included."""
        return self._stream.bytes()

    def append(self, t: int, v: float) -> None:
        """Append a sample. Timestamps must not decrease."""
        if self._num >= MAX_SAMPLES:
            raise ValueError(f"chunk is full ({MAX_SAMPLES} samples)")

        stream = self._stream
        if self._num == 0:
            for byte in varint_bytes(t):
                stream.write_byte(byte)
            stream.write_bits(_float_bits(v), 64)
            t_delta = 0
        elif self._num == 1:
            t_delta = t - self._t
            if t_delta < 0:
                raise ValueError(f"out of order sample at {t}")
            for byte in uvarint_bytes(t_delta):
                stream.write_byte(byte)
            self._write_value_delta(v)
        else:
            t_delta = t - self._t
            if t_delta < 0:
                raise ValueError(f"out of order sample at {t}")
            dod = t_delta - self._t_delta
            if dod == 0:
                stream.write_bit(0)
            elif _bit_range(dod, 14):
                stream.write_bits(0x02, 2)
                stream.write_bits(dod, 14)
            elif _bit_range(dod, 17):
                stream.write_bits(0x06, 3)
                stream.write_bits(dod, 17)
            elif _bit_range(dod, 20):
                stream.write_bits(0x0E, 4)
                stream.write_bits(dod, 20)
            else:
                stream.write_bits(0x0F, 4)
                stream.write_bits(dod, 64)
            self._write_value_delta(v)

        self._t = t
        self._v = v
        self._t_delta = t_delta
        self._num += 1
        stream.stream[0:2] = self._num.to_bytes(2, "big")

    def _write_value_delta(self, v: float) -> None:
        stream = self._stream
        delta = _float_bits(v) ^ _float_bits(self._v)
        if delta == 0:
            stream.write_bit(0)
            return
        stream.write_bit(1)

        leading = 64 - delta.bit_length()
        trailing = (delta & -delta).bit_length() - 1
        # Leading zeros are written in 5 bits.
        if leading >= 32:
            leading = 31

        if self._leading != _UNSET and leading >= self._leading and trailing >= self._trailing:
            stream.write_bit(0)
            stream.write_bits(delta >> self._trailing, 64 - self._leading - self._trailing)
            return

        self._leading, self._trailing = leading, trailing
        stream.write_bit(1)
        stream.write_bits(leading, 5)
        # 64 significant bits wraps to 0 in the 6 bit field; the reader maps it back.
        sigbits = 64 - leading - trailing
        stream.write_bits(sigbits, 6)
        stream.write_bits(delta >> trailing, sigbits)


def iter_samples(data: bytes) -> Iterator[tuple[int, float]]:
    """Decode an XOR chunk payload into ``(timestamp, value)`` pairs."""
    if len(data) < 2:
        raise ValueError("chunk payload shorter than its header")
    total = int.from_bytes(data[0:2], "big")
    reader = BitReader(data, 2)

    t = 0
    t_delta = 0
    value_bits = 0
    leading = 0
    trailing = 0

    for i in range(total):
        if i == 0:
            t = _read_varint(reader)
            value_bits = reader.read_bits(64)
        else:
            if i == 1:
                t_delta = _read_uvarint(reader)
            else:
                t_delta += _read_dod(reader)
            t += t_delta

            if reader.read_bit():
                if reader.read_bit():
                    leading = reader.read_bits(5)
                    sigbits = reader.read_bits(6) or 64
                    trailing = 64 - leading - sigbits
                sigbits = 64 - leading - trailing
                value_bits ^= reader.read_bits(sigbits) << trailing

        yield t, _bits_float(value_bits)


def decode_samples(data: bytes) -> list[tuple[int, float]]:
    """Decode an XOR chunk payload into a list of samples."""
    return list(iter_samples(data))


def _read_uvarint(reader: BitReader) -> int:
    result = 0
    shift = 0
    while True:
        byte = reader.read_byte()
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            return result
        shift += 7


def _read_varint(reader: BitReader) -> int:
    raw = _read_uvarint(reader)
    return (raw >> 1) ^ -(raw & 1)


def _read_dod(reader: BitReader) -> int:
    prefix = 0
    for _ in range(4):
        prefix <<= 1
        if not reader.read_bit():
            break
        prefix |= 1

    if prefix == 0x00:
        return 0
    if prefix == 0x0F:
        return _to_int64(reader.read_bits(64))

    size = {0x02: 14, 0x06: 17, 0x0E: 20}[prefix]
    bits = reader.read_bits(size)
    if bits > 1 << (size - 1):
        bits -= 1 << size
    return bits
