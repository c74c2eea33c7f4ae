"""
Chunk building for one series of a block.

The block window is cut into chunk windows of ``sample_interval *
samples_per_chunk``. Each chunk window is sampled at every interval tick
strictly before its end and encoded with the XOR encoding.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

import numpy as np

from ..config import FormatLimits
from ..encoding import XORChunk
from ..exceptions import SizingError
from ..generators import SeriesGenerator
from .types import BlockWindow, ChunkMeta

logger = logging.getLogger(__name__)


class ChunkBuilder:
    """Builds encoded chunks for a series over a block window."""

    def __init__(self, sample_interval: int, limits: FormatLimits) -> None:
        """
        Args:
            sample_interval: Time between samples (ms)
            limits: Format size constants
        """
        if sample_interval <= 0:
            raise ValueError(f"sample_interval must be positive, got {sample_interval}")
        self.sample_interval = sample_interval
        self.limits = limits
        self.chunk_length = sample_interval * limits.samples_per_chunk

    def chunk_windows(self, window: BlockWindow) -> Iterator[tuple[int, int]]:
        """Yield ``(start, end)`` chunk windows covering ``window`` exactly.

        The last chunk window is cut short at the block end when the block
        length is not a multiple of the chunk length.
        """
        for start in range(window.min_time, window.max_time, self.chunk_length):
            yield start, min(start + self.chunk_length, window.max_time)

    def build_chunk(self, generator: SeriesGenerator, start: int, end: int) -> ChunkMeta:
        """Sample ``generator`` over ``[start, end)`` and encode the result.

        Raises:
            SizingError: If the encoded chunk plus framing exceeds max_chunk_size
        """
        timestamps = np.arange(start, end, self.sample_interval, dtype=np.int64)
        values = generator.values(timestamps)

        chunk = XORChunk()
        for t, v in zip(timestamps.tolist(), values.tolist()):
            chunk.append(t, v)

        data = chunk.bytes()
        size = len(data) + self.limits.chunk_overhead_size
        if size > self.limits.max_chunk_size:
            raise SizingError(size, self.limits.max_chunk_size, series=generator.name)

        # max_time is one interval past the chunk start, not the last sample.
        return ChunkMeta(
            min_time=start,
            max_time=start + self.sample_interval,
            data=data,
            num_samples=chunk.num_samples,
            size=size,
        )

    def build_series(self, generator: SeriesGenerator, window: BlockWindow) -> list[ChunkMeta]:
        """Build every chunk of one series for a block, in time order."""
        chunks = [
            self.build_chunk(generator, start, end) for start, end in self.chunk_windows(window)
        ]
        logger.debug("Built %d chunks for series %s", len(chunks), generator.name)
        return chunks

    def full_chunks(self, window: BlockWindow) -> int:
        """Number of full-length chunks that fit in ``window``."""
        return window.duration // self.chunk_length
