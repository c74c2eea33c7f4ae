"""
Binary encodings shared by the chunk and index writers.
"""

from .bstream import BitReader, BitWriter
from .varint import (
    EncodingBuffer,
    checksum,
    read_uvarint,
    read_varint,
    uvarint_bytes,
    varint_bytes,
)
from .xor import ENCODING_XOR, MAX_SAMPLES, XORChunk, decode_samples, iter_samples

__all__ = [
    # Chunk payloads
    "ENCODING_XOR",
    "MAX_SAMPLES",
    "XORChunk",
    "decode_samples",
    "iter_samples",
    # Bit streams
    "BitReader",
    "BitWriter",
    # Integers and framing
    "EncodingBuffer",
    "checksum",
    "read_uvarint",
    "read_varint",
    "uvarint_bytes",
    "varint_bytes",
]
