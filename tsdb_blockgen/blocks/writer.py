"""
Block writer.

Writes one block directory:

    <output_dir>/<block_id>/
      chunks/000001 ...
      index
      meta.json

Chunks are built and allocated one series at a time and written before
the next series is built. The index is written once all chunk
references are known, and meta.json last.
"""

from __future__ import annotations

import logging

from ..config import GeneratorOptions
from ..exceptions import StorageIOError
from ..logging_utils import BlockLoggerAdapter
from ..storage import ChunkFileWriter, ensure_directory
from ..utils import duration_millis
from .chunks import ChunkBuilder
from .index import IndexBuilder
from .meta import build_block_meta, write_block_meta
from .segments import SegmentAllocator
from .types import Block, BlockMeta, Series

logger = logging.getLogger(__name__)

STAGE_CHUNKS = "chunks"
STAGE_INDEX = "index"
STAGE_META = "meta"


class BlockWriter:
    """Writes blocks for a run.

    Holds no per-block state between calls; allocation state lives only
    for the duration of ``write``.
    """

    def __init__(self, options: GeneratorOptions) -> None:
        """Initialize the block writer.

        Args:
            options: Resolved generator options (see GeneratorOptions.resolved)
        """
        self.options = options
        self.limits = options.limits
        self.sample_interval = duration_millis(options.sample_interval)
        self.chunk_builder = ChunkBuilder(self.sample_interval, self.limits)

    def create_series(self) -> list[Series]:
        """Fresh, empty series for a block; ids follow generator order."""
        return [
            Series(id=i, name=generator.name, labels=generator.labels)
            for i, generator in enumerate(self.options.series)
        ]

    def write(self, block: Block) -> BlockMeta:
        """Write every file of ``block``.

        Returns:
            The metadata written to meta.json

        Raises:
            SizingError: If a chunk is too large for the format
            StorageIOError: If any file cannot be written
            IndexFormatError: If the series cannot be indexed (duplicate label sets)
            ChunkLayoutError: If an allocated reference cannot be written
        """
        log = BlockLoggerAdapter(logger, block.block_id)

        try:
            ensure_directory(block.directory, STAGE_CHUNKS)
        except StorageIOError as e:
            raise StorageIOError(e.stage, e.path, e.cause, block.block_id) from e

        series = self.create_series()
        num_segments = self._populate_chunks(block, series)
        log.for_stage(STAGE_CHUNKS).debug(
            "Wrote chunks for %d series into %d segments", len(series), num_segments
        )

        self._write_index(block, series)
        log.for_stage(STAGE_INDEX).debug("Wrote index for %d series", len(series))

        meta = build_block_meta(
            block,
            num_series=len(series),
            chunks_per_series=self.chunk_builder.full_chunks(block.window),
            samples_per_chunk=self.limits.samples_per_chunk,
        )
        try:
            write_block_meta(block.meta_path, meta)
        except StorageIOError as e:
            raise StorageIOError(STAGE_META, e.path, e.cause, block.block_id) from e

        log.for_stage(STAGE_META).info(
            "Wrote block %s [%d, %d): %d series, %d chunks",
            block.block_id,
            block.min_time,
            block.max_time,
            meta.stats.num_series,
            meta.stats.num_chunks,
        )
        return meta

    def _populate_chunks(self, block: Block, series: list[Series]) -> int:
        """Build, allocate and write the chunks of every series.

        Returns:
            Number of segment files written
        """
        allocator = SegmentAllocator.for_limits(self.limits)
        try:
            with ChunkFileWriter(block.chunks_dir, self.limits) as writer:
                for entry, generator in zip(series, self.options.series):
                    chunks = self.chunk_builder.build_series(generator, block.window)
                    for chunk in chunks:
                        chunk.ref = allocator.allocate(chunk.size)
                    entry.chunks = chunks
                    writer.write_chunks(*chunks)
                return len(writer.files)
        except OSError as e:
            raise StorageIOError(STAGE_CHUNKS, str(block.chunks_dir), e, block.block_id) from e

    def _write_index(self, block: Block, series: list[Series]) -> None:
        try:
            IndexBuilder(series).write(block.index_path)
        except OSError as e:
            raise StorageIOError(STAGE_INDEX, str(block.index_path), e, block.block_id) from e
