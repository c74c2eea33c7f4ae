"""Block metadata descriptor (``meta.json``)."""

from __future__ import annotations

from pathlib import Path

from ..storage import write_json_atomic
from .types import Block, BlockMeta, BlockStats


def build_block_meta(
    block: Block,
    num_series: int,
    chunks_per_series: int,
    samples_per_chunk: int,
) -> BlockMeta:
    """Summarize a block.

    Only full chunks are counted (see ChunkBuilder.full_chunks), and every
    counted chunk is assumed to hold ``samples_per_chunk`` samples. A
    trailing partial chunk is written but not counted.

    Args:
        block: The block being written
        num_series: Series in the block
        chunks_per_series: Full chunks each series holds
        samples_per_chunk: Samples in a full chunk
    """
    num_chunks = num_series * chunks_per_series
    return BlockMeta(
        ulid=block.block_id,
        min_time=block.min_time,
        max_time=block.max_time,
        stats=BlockStats(
            num_samples=num_chunks * samples_per_chunk,
            num_series=num_series,
            num_chunks=num_chunks,
        ),
    )


def write_block_meta(path: Path, meta: BlockMeta) -> None:
    """Write ``meta`` atomically.

    Raises:
        StorageIOError: If the file cannot be written
    """
    write_json_atomic(path, meta.to_dict(), stage="meta")
