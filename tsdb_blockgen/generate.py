"""
Generation run.

Plans the blocks of a run and writes them one after another. The first
error aborts the run; blocks already written stay on disk.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from .blocks import BlockMeta, BlockPlanner, BlockWriter
from .config import GeneratorOptions
from .exceptions import BlockGenError
from .logging_utils import get_generator_logger

logger = get_generator_logger("generate")


def iter_blocks(options: GeneratorOptions, now: datetime | None = None) -> Iterator[BlockMeta]:
    """Write the blocks of a run lazily, yielding each block's metadata once written.

    Args:
        options: Run options; defaults are applied and validated first
        now: Reference time for defaulted start/end times

    Raises:
        ConfigurationError: Before any I/O, if the options are invalid
        SizingError: If a chunk cannot be stored in the format
        StorageIOError: If a block file cannot be written
    """
    resolved = options.resolved(now)
    planner = BlockPlanner.from_options(resolved)
    writer = BlockWriter(resolved)

    logger.info(
        "Generating %d blocks for %d series in %s (seed %d)",
        planner.num_blocks,
        len(resolved.series),
        resolved.output_dir,
        resolved.seed,
    )
    for block in planner.plan(resolved.output_dir):
        try:
            yield writer.write(block)
        except BlockGenError as e:
            logger.error("Block %s failed: %s", block.block_id, e.message, extra=e.details)
            raise


def create_blocks(options: GeneratorOptions, now: datetime | None = None) -> list[BlockMeta]:
    """Write every block of a run.

    Returns:
        Metadata of the written blocks, in time order
    """
    metas = list(iter_blocks(options, now))
    logger.info("Wrote %d blocks", len(metas))
    return metas
