"""
Index file writer (index format version 2).

File layout, in write order:

    header        magic (4 bytes BE) + format version (1 byte)
    symbols       every label name and value, sorted; referenced by position
    series        one entry per series, 16 byte aligned; ref = offset / 16
    label indices sorted values per label name, 4 byte aligned
    postings      sorted series refs per label pair, 4 byte aligned
    label index offset table
    postings offset table
    TOC           six section offsets (8 bytes BE each) + CRC32C

Every section except the header and TOC is framed as
``<length> <content> <CRC32C of content>``.

Sections must be written in this order. Calling a method that belongs to
an earlier section raises IndexFormatError; closing the writer writes
the offset tables and the TOC.
"""

from __future__ import annotations

import logging
import os
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from ..encoding import EncodingBuffer
from ..exceptions import IndexFormatError
from ..labels import Labels

if TYPE_CHECKING:
    from ..blocks.types import ChunkMeta

logger = logging.getLogger(__name__)

MAGIC_INDEX = 0xBAAAD700
INDEX_FORMAT_V2 = 2

HEADER_SIZE = 5
SERIES_ALIGNMENT = 16
LIST_ALIGNMENT = 4

_MAX_UINT32 = 0xFFFFFFFF


class IndexStage(IntEnum):
    """Sections of the index, in the order they must be written."""

    NONE = 0
    SYMBOLS = 1
    SERIES = 2
    LABEL_INDEX = 3
    POSTINGS = 4
    DONE = 5


@dataclass
class TableOfContents:
    """Byte offsets of the index sections."""

    symbols: int = 0
    series: int = 0
    label_indices: int = 0
    label_indices_table: int = 0
    postings: int = 0
    postings_table: int = 0

    def encode(self) -> bytes:
        buf = EncodingBuffer()
        for offset in (
            self.symbols,
            self.series,
            self.label_indices,
            self.label_indices_table,
            self.postings,
            self.postings_table,
        ):
            buf.put_be64(offset)
        buf.put_hash()
        return buf.get()


@dataclass
class _OffsetEntry:
    keys: tuple[str, ...]
    offset: int


class IndexWriter:
    """Streams an index file to disk.

    The file is created on construction. It is only valid once
    ``close()`` returns; an exception inside a ``with`` block closes the
    file without writing the offset tables or TOC.
    """

    def __init__(self, path: Path) -> None:
        """
        Args:
            path: Index file path (truncated if it exists)

        Raises:
            OSError: If the file cannot be created
        """
        self.path = Path(path)
        self._file: BinaryIO | None = open(self.path, "wb")
        self._pos = 0
        self._stage = IndexStage.NONE
        self.toc = TableOfContents()

        self._symbols: dict[str, int] = {}
        self._series_offsets: dict[int, int] = {}
        self._last_series: Labels | None = None
        self._label_indexes: list[_OffsetEntry] = []
        self._postings: list[_OffsetEntry] = []

        self._write(struct.pack(">IB", MAGIC_INDEX, INDEX_FORMAT_V2))

    @property
    def stage(self) -> IndexStage:
        return self._stage

    @property
    def position(self) -> int:
        """Bytes written so far."""
        return self._pos

    def series_ref(self, series_id: int) -> int:
        """On-disk reference (offset / 16) of an added series."""
        try:
            return self._series_offsets[series_id]
        except KeyError:
            raise IndexFormatError(f"series {series_id} was not added", str(self.path)) from None

    def _write(self, *parts: bytes) -> None:
        if self._file is None:
            raise IndexFormatError("writer is closed", str(self.path))
        for part in parts:
            self._file.write(part)
            self._pos += len(part)

    def _add_padding(self, alignment: int) -> None:
        remainder = self._pos % alignment
        if remainder:
            self._write(bytes(alignment - remainder))

    def _ensure_stage(self, stage: IndexStage) -> None:
        if self._stage == stage:
            return
        if self._stage > stage:
            raise IndexFormatError(
                f"cannot write {stage.name.lower()} after {self._stage.name.lower()}",
                str(self.path),
            )

        if stage == IndexStage.SYMBOLS:
            self.toc.symbols = self._pos
        elif stage == IndexStage.SERIES:
            self.toc.series = self._pos
        elif stage == IndexStage.LABEL_INDEX:
            self.toc.label_indices = self._pos
        elif stage == IndexStage.POSTINGS:
            self.toc.postings = self._pos
        elif stage == IndexStage.DONE:
            self.toc.label_indices_table = self._pos
            self._write_offset_table(self._label_indexes)
            self.toc.postings_table = self._pos
            self._write_offset_table(self._postings)
            self._write(self.toc.encode())

        logger.debug("Index %s entering stage %s at %d", self.path, stage.name, self._pos)
        self._stage = stage

    def _symbol(self, value: str) -> int:
        try:
            return self._symbols[value]
        except KeyError:
            raise IndexFormatError(
                f"symbol {value!r} not in the symbol table", str(self.path)
            ) from None

    def add_symbols(self, symbols: Iterable[str]) -> None:
        """Write the symbol table. Must be called once, before any series."""
        if self._stage >= IndexStage.SYMBOLS:
            raise IndexFormatError("symbols were already written", str(self.path))
        self._ensure_stage(IndexStage.SYMBOLS)

        ordered = sorted(set(symbols))
        content = EncodingBuffer()
        content.put_be32(len(ordered))
        for position, symbol in enumerate(ordered):
            self._symbols[symbol] = position
            content.put_uvarint_str(symbol)

        length = EncodingBuffer()
        length.put_be32(len(content))
        content.put_hash()
        self._write(length.get(), content.get())

    def add_series(self, ref: int, labels: Labels, chunks: Sequence[ChunkMeta] = ()) -> None:
        """Write a series entry.

        Series must be added in strictly increasing label order. ``ref``
        is the caller's id for the series, later used in ``write_postings``.
        """
        self._ensure_stage(IndexStage.SERIES)
        if self._last_series is not None and labels <= self._last_series:
            raise IndexFormatError(
                f"out-of-order series added with label set {labels!r}", str(self.path)
            )
        if ref in self._series_offsets:
            raise IndexFormatError(f"series with reference {ref} already added", str(self.path))

        self._add_padding(SERIES_ALIGNMENT)
        series_ref = self._pos // SERIES_ALIGNMENT
        if series_ref > _MAX_UINT32:
            raise IndexFormatError("series offset exceeds the 32 bit reference space", str(self.path))
        self._series_offsets[ref] = series_ref

        content = EncodingBuffer()
        content.put_uvarint(len(labels))
        for label in labels:
            content.put_uvarint(self._symbol(label.name))
            content.put_uvarint(self._symbol(label.value))

        content.put_uvarint(len(chunks))
        if chunks:
            first = chunks[0]
            if first.max_time < first.min_time:
                raise IndexFormatError(f"chunk ends before it starts in {labels!r}", str(self.path))
            content.put_varint(first.min_time)
            content.put_uvarint(first.max_time - first.min_time)
            content.put_uvarint(first.ref)
            prev_max = first.max_time
            prev_ref = first.ref
            for chunk in chunks[1:]:
                if chunk.min_time < prev_max or chunk.max_time < chunk.min_time:
                    raise IndexFormatError(f"overlapping chunks in {labels!r}", str(self.path))
                content.put_uvarint(chunk.min_time - prev_max)
                content.put_uvarint(chunk.max_time - chunk.min_time)
                content.put_varint(chunk.ref - prev_ref)
                prev_max = chunk.max_time
                prev_ref = chunk.ref

        length = EncodingBuffer()
        length.put_uvarint(len(content))
        content.put_hash()
        self._write(length.get(), content.get())
        self._last_series = labels

    def write_label_index(self, names: Sequence[str], values: Sequence[str]) -> None:
        """Write the sorted value tuples of one or more label names.

        ``values`` is flat: each consecutive ``len(names)`` items form a tuple.
        """
        if not names:
            raise IndexFormatError("label index needs at least one name", str(self.path))
        if len(values) % len(names) != 0:
            raise IndexFormatError(
                f"invalid length of values list {len(values)} for {len(names)} names",
                str(self.path),
            )
        self._ensure_stage(IndexStage.LABEL_INDEX)

        width = len(names)
        tuples = sorted(tuple(values[i : i + width]) for i in range(0, len(values), width))

        self._add_padding(LIST_ALIGNMENT)
        self._label_indexes.append(_OffsetEntry(tuple(names), self._pos))

        content = EncodingBuffer()
        content.put_be32(width)
        content.put_be32(len(tuples))
        for entry in tuples:
            for value in entry:
                content.put_be32(self._symbol(value))

        length = EncodingBuffer()
        length.put_be32(len(content))
        content.put_hash()
        self._write(length.get(), content.get())

    def write_postings(self, name: str, value: str, series_ids: Iterable[int]) -> None:
        """Write the postings list of one label pair.

        Postings must be written in ascending ``(name, value)`` order.
        """
        self._ensure_stage(IndexStage.POSTINGS)
        if self._postings and (name, value) <= self._postings[-1].keys:
            raise IndexFormatError(
                f"postings for {name}={value!r} written out of order", str(self.path)
            )

        refs = sorted(self.series_ref(series_id) for series_id in series_ids)

        self._add_padding(LIST_ALIGNMENT)
        self._postings.append(_OffsetEntry((name, value), self._pos))

        content = EncodingBuffer()
        content.put_be32(len(refs))
        for ref in refs:
            content.put_be32(ref)

        length = EncodingBuffer()
        length.put_be32(len(content))
        content.put_hash()
        self._write(length.get(), content.get())

    def _write_offset_table(self, entries: list[_OffsetEntry]) -> None:
        content = EncodingBuffer()
        content.put_be32(len(entries))
        for entry in entries:
            content.put_uvarint(len(entry.keys))
            for key in entry.keys:
                content.put_uvarint_str(key)
            content.put_uvarint(entry.offset)

        length = EncodingBuffer()
        length.put_be32(len(content))
        content.put_hash()
        self._write(length.get(), content.get())

    def close(self) -> None:
        """Write the offset tables and TOC, then flush and close the file.

        A successful close is the commit point of the index.
        """
        if self._file is None:
            return
        self._ensure_stage(IndexStage.DONE)
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
        finally:
            self._file.close()
            self._file = None

    def abort(self) -> None:
        """Close the file without finishing it."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> IndexWriter:
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()
