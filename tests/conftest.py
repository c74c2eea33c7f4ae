"""
Shared test configuration and fixtures.

Provides small readers for the files the generator writes (segment
records, index sections, meta.json) so tests can check what is on disk
without trusting the writers that produced it.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from tsdb_blockgen.encoding import checksum, read_uvarint, read_varint
from tsdb_blockgen.generators import IncreasingSeriesGenerator

TOC_SIZE = 6 * 8 + 4


@dataclass
class ParsedSeries:
    labels: dict[str, str]
    chunks: list[tuple[int, int, int]]  # (min_time, max_time, ref)


@dataclass
class ParsedIndex:
    magic: int
    version: int
    toc: list[int]
    symbols: list[str]
    series: dict[int, ParsedSeries] = field(default_factory=dict)
    label_indices: dict[tuple[str, ...], list[str]] = field(default_factory=dict)
    postings: dict[tuple[str, str], list[int]] = field(default_factory=dict)


def _framed_be32(data: bytes, offset: int) -> bytes:
    """Content of a ``<be32 len> <content> <crc>`` section, CRC checked."""
    (length,) = struct.unpack_from(">I", data, offset)
    content = data[offset + 4 : offset + 4 + length]
    (crc,) = struct.unpack_from(">I", data, offset + 4 + length)
    assert crc == checksum(content), f"bad CRC for section at {offset}"
    return content


def _read_str(data: bytes, pos: int) -> tuple[str, int]:
    length, pos = read_uvarint(data, pos)
    return data[pos : pos + length].decode("utf-8"), pos + length


def _read_offset_table(data: bytes, offset: int) -> list[tuple[tuple[str, ...], int]]:
    content = _framed_be32(data, offset)
    (count,) = struct.unpack_from(">I", content, 0)
    pos = 4
    entries = []
    for _ in range(count):
        nkeys, pos = read_uvarint(content, pos)
        keys = []
        for _ in range(nkeys):
            key, pos = _read_str(content, pos)
            keys.append(key)
        entry_offset, pos = read_uvarint(content, pos)
        entries.append((tuple(keys), entry_offset))
    return entries


def _read_series(data: bytes, ref: int, symbols: list[str]) -> ParsedSeries:
    offset = ref * 16
    length, pos = read_uvarint(data, offset)
    content = data[pos : pos + length]
    (crc,) = struct.unpack_from(">I", data, pos + length)
    assert crc == checksum(content), f"bad CRC for series {ref}"

    pos = 0
    nlabels, pos = read_uvarint(content, pos)
    labels = {}
    for _ in range(nlabels):
        name, pos = read_uvarint(content, pos)
        value, pos = read_uvarint(content, pos)
        labels[symbols[name]] = symbols[value]

    nchunks, pos = read_uvarint(content, pos)
    chunks = []
    prev_max = prev_ref = 0
    for i in range(nchunks):
        if i == 0:
            min_time, pos = read_varint(content, pos)
            span, pos = read_uvarint(content, pos)
            chunk_ref, pos = read_uvarint(content, pos)
        else:
            gap, pos = read_uvarint(content, pos)
            min_time = prev_max + gap
            span, pos = read_uvarint(content, pos)
            delta, pos = read_varint(content, pos)
            chunk_ref = prev_ref + delta
        prev_max = min_time + span
        prev_ref = chunk_ref
        chunks.append((min_time, prev_max, chunk_ref))
    return ParsedSeries(labels, chunks)


def parse_index(path: Path) -> ParsedIndex:
    """Parse an index file written in format version 2."""
    data = Path(path).read_bytes()
    magic, version = struct.unpack_from(">IB", data, 0)

    toc_bytes = data[-TOC_SIZE:]
    assert struct.unpack(">I", toc_bytes[-4:])[0] == checksum(toc_bytes[:-4]), "bad TOC CRC"
    toc = list(struct.unpack(">6Q", toc_bytes[:-4]))

    content = _framed_be32(data, toc[0])
    (count,) = struct.unpack_from(">I", content, 0)
    pos = 4
    symbols = []
    for _ in range(count):
        symbol, pos = _read_str(content, pos)
        symbols.append(symbol)

    index = ParsedIndex(magic=magic, version=version, toc=toc, symbols=symbols)

    for keys, offset in _read_offset_table(data, toc[3]):
        content = _framed_be32(data, offset)
        width, n = struct.unpack_from(">II", content, 0)
        refs = struct.unpack_from(f">{width * n}I", content, 8)
        index.label_indices[keys] = [symbols[r] for r in refs]

    for keys, offset in _read_offset_table(data, toc[5]):
        content = _framed_be32(data, offset)
        (n,) = struct.unpack_from(">I", content, 0)
        refs = list(struct.unpack_from(f">{n}I", content, 4))
        index.postings[(keys[0], keys[1])] = refs
        for ref in refs:
            if ref not in index.series:
                index.series[ref] = _read_series(data, ref, symbols)

    return index


def read_chunk_record(chunks_dir: Path, ref: int) -> tuple[int, bytes]:
    """Read the chunk record a packed reference points at.

    Returns:
        (encoding byte, payload)
    """
    segment, offset = ref >> 32, ref & 0xFFFFFFFF
    data = (Path(chunks_dir) / f"{segment + 1:06d}").read_bytes()
    length, pos = read_uvarint(data, offset)
    encoding = data[pos]
    payload = data[pos + 1 : pos + 1 + length]
    (crc,) = struct.unpack_from(">I", data, pos + 1 + length)
    assert crc == checksum(data[pos : pos + 1 + length]), f"bad CRC for chunk {ref:#x}"
    return encoding, payload


def read_meta(block_dir: Path) -> dict:
    return json.loads((Path(block_dir) / "meta.json").read_text(encoding="utf-8"))


@pytest.fixture
def start_time() -> datetime:
    """A block-aligned start time."""
    return datetime(2024, 1, 1, tzinfo=UTC)


@pytest.fixture
def end_time(start_time: datetime) -> datetime:
    return start_time + timedelta(hours=1)


@pytest.fixture
def generators(start_time: datetime) -> list[IncreasingSeriesGenerator]:
    """Three increasing series with distinct instance labels."""
    return [
        IncreasingSeriesGenerator(f"test{i}", {"instance": f"test-metric-{i}"}, start=start_time)
        for i in range(3)
    ]
