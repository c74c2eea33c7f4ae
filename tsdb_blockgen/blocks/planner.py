"""
Block planning.

Splits the requested time range into consecutive fixed-length block
windows and derives a ULID for each. Identifier randomness comes from a
per-block ``random.Random`` derived from the run seed and the block
index, so any block can be planned without replaying the ones before it.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator
from pathlib import Path

from ulid import ULID

from ..config import GeneratorOptions
from ..exceptions import ConfigurationError
from ..utils import duration_millis, to_millis
from .types import Block, BlockWindow

logger = logging.getLogger(__name__)

# ULID timestamps are 48 bit millisecond values.
_MAX_ULID_TIME = (1 << 48) - 1


class BlockIdSource:
    """Deterministic source of block identifiers.

    The same seed and block index always produce the same identifier.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed

    def rng_for(self, index: int) -> random.Random:
        """Independent random source for the block at ``index``."""
        # String seeds are hashed with SHA-512, stable across processes.
        return random.Random(f"{self.seed}:{index}")

    def block_id(self, window: BlockWindow) -> str:
        """ULID for ``window``: its end time plus 80 random bits."""
        if not 0 <= window.max_time <= _MAX_ULID_TIME:
            raise ConfigurationError(
                f"block end time {window.max_time} is outside the ULID time range", "end_time"
            )
        entropy = self.rng_for(window.index).getrandbits(80)
        raw = window.max_time.to_bytes(6, "big") + entropy.to_bytes(10, "big")
        return str(ULID.from_bytes(raw))


class BlockPlanner:
    """Plans the blocks of a run.

    Windows are ``[w, w + block_length)`` starting at ``start`` and
    continuing while ``w < end``. The last window is not clamped and may
    extend past ``end``.
    """

    def __init__(
        self,
        start: int,
        end: int,
        block_length: int,
        id_source: BlockIdSource,
    ) -> None:
        """
        Args:
            start: Range start (ms, inclusive)
            end: Range end (ms, exclusive)
            block_length: Length of each block (ms)
            id_source: Source of block identifiers

        Raises:
            ConfigurationError: If start is not before end or the length is not positive
        """
        if start >= end:
            raise ConfigurationError(
                f"start time {start} must be before end time {end}", "start_time"
            )
        if block_length <= 0:
            raise ConfigurationError(
                f"block length must be positive, got {block_length}", "block_length"
            )
        self.start = start
        self.end = end
        self.block_length = block_length
        self.id_source = id_source

    @classmethod
    def from_options(cls, options: GeneratorOptions) -> BlockPlanner:
        """Create a planner from resolved options."""
        return cls(
            start=to_millis(options.start_time),
            end=to_millis(options.end_time),
            block_length=duration_millis(options.block_length),
            id_source=BlockIdSource(options.seed),
        )

    @property
    def num_blocks(self) -> int:
        """Number of windows the planner yields."""
        return -(-(self.end - self.start) // self.block_length)

    def windows(self) -> Iterator[BlockWindow]:
        """Lazily yield the block windows in time order."""
        index = 0
        window_start = self.start
        while window_start < self.end:
            yield BlockWindow(index, window_start, window_start + self.block_length)
            index += 1
            window_start += self.block_length

    def plan(self, output_dir: Path) -> Iterator[Block]:
        """Lazily yield blocks with identifiers and output directories."""
        for window in self.windows():
            block_id = self.id_source.block_id(window)
            logger.debug(
                "Planned block %s [%d, %d)", block_id, window.min_time, window.max_time
            )
            yield Block(block_id=block_id, window=window, directory=Path(output_dir) / block_id)
