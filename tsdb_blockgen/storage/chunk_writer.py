"""
Chunk segment file writer.

Writes encoded chunks into ``chunks/000001``, ``chunks/000002``, ...
Each segment starts with a header (magic, format version, padding) and
holds chunk records back-to-back:

    <uvarint payload length> <encoding byte> <payload> <CRC32C, 4 bytes BE>

The CRC covers the encoding byte and the payload. Records are placed at
the offsets their references were allocated at; unused bytes between
records are zero-filled, so every reference resolves to its record.
"""

from __future__ import annotations

import logging
import os
import struct
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from ..config import FormatLimits
from ..encoding import checksum, uvarint_bytes
from ..exceptions import ChunkLayoutError

if TYPE_CHECKING:
    from ..blocks.types import ChunkMeta

logger = logging.getLogger(__name__)

MAGIC_CHUNKS = 0x85BD40DD
CHUNKS_FORMAT_V1 = 1


def segment_file_name(segment: int) -> str:
    """File name of the segment with 0-based index ``segment``."""
    return f"{segment + 1:06d}"


def encode_chunk_record(chunk: ChunkMeta) -> bytes:
    """Frame a chunk payload as it is stored in a segment."""
    body = bytes([chunk.encoding]) + chunk.data
    return uvarint_bytes(len(chunk.data)) + body + struct.pack(">I", checksum(body))


class ChunkFileWriter:
    """Writes chunk records into size-bounded segment files.

    Segment files are created lazily when the first chunk that belongs
    to them is written and sealed when the next segment is started. Leaving
    the context with an exception removes the segments written so far.
    """

    def __init__(self, directory: Path, limits: FormatLimits | None = None) -> None:
        """
        Args:
            directory: The block's ``chunks`` directory (created if missing)
            limits: Format size constants

        Raises:
            OSError: If the directory cannot be created
        """
        self.directory = Path(directory)
        self.limits = limits or FormatLimits()
        self._file: BinaryIO | None = None
        self._segment = -1
        self._pos = 0
        self._files: list[Path] = []
        self._closed = False
        os.makedirs(self.directory, exist_ok=True)

    @property
    def files(self) -> list[Path]:
        """Segment files created so far, in order."""
        return list(self._files)

    def write_chunks(self, *chunks: ChunkMeta) -> None:
        """Write chunks at their allocated references, in the given order.

        Raises:
            ChunkLayoutError: If a reference goes backwards or does not fit its segment
            OSError: If a segment file cannot be written
        """
        if self._closed:
            raise ChunkLayoutError("chunk writer is closed")

        for chunk in chunks:
            segment, offset = chunk.segment, chunk.offset
            if segment == self._segment + 1:
                self._cut()
            elif segment != self._segment:
                raise ChunkLayoutError(
                    f"reference targets segment {segment} while writing segment {self._segment}",
                    chunk.ref,
                )

            if offset < self._pos:
                raise ChunkLayoutError(
                    f"chunk at offset {offset} overlaps previous record ending at {self._pos}",
                    chunk.ref,
                )

            record = encode_chunk_record(chunk)
            if offset + len(record) > self.limits.max_segment_size:
                raise ChunkLayoutError(
                    f"record of {len(record)} bytes at offset {offset} exceeds "
                    f"segment size {self.limits.max_segment_size}",
                    chunk.ref,
                )

            assert self._file is not None
            if offset > self._pos:
                self._file.write(bytes(offset - self._pos))
            self._file.write(record)
            self._pos = offset + len(record)

    def _cut(self) -> None:
        """Seal the current segment and start the next one."""
        self._finalize()

        self._segment += 1
        path = self.directory / segment_file_name(self._segment)
        self._file = open(path, "wb")
        self._files.append(path)

        header = struct.pack(">IB", MAGIC_CHUNKS, CHUNKS_FORMAT_V1)
        header += bytes(self.limits.segment_header_size - len(header))
        self._file.write(header)
        self._pos = len(header)
        logger.debug("Started chunk segment %s", path)

    def _finalize(self) -> None:
        if self._file is None:
            return
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
        finally:
            self._file.close()
            self._file = None

    def close(self) -> None:
        """Flush and close the open segment."""
        if self._closed:
            return
        self._closed = True
        self._finalize()

    def abort(self) -> None:
        """Close without syncing and remove every segment file this writer created."""
        self._closed = True
        if self._file is not None:
            self._file.close()
            self._file = None
        for path in self._files:
            path.unlink(missing_ok=True)
        if self._files:
            logger.debug(
                "Removed %d partial chunk segments in %s", len(self._files), self.directory
            )
        self._files.clear()

    def __enter__(self) -> ChunkFileWriter:
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()
