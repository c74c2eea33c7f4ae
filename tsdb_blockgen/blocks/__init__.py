"""
Block construction pipeline.

A run is split into blocks by the BlockPlanner. For each block the
BlockWriter builds chunks per series (ChunkBuilder), places them in
segments (SegmentAllocator), writes the index (IndexBuilder) and
finally the metadata descriptor.
"""

from .types import (
    Block,
    BlockMeta,
    BlockStats,
    BlockWindow,
    ChunkMeta,
    Series,
    pack_ref,
    unpack_ref,
)
from .chunks import ChunkBuilder
from .index import ALL_POSTINGS_KEY, IndexBuilder
from .meta import build_block_meta, write_block_meta
from .planner import BlockIdSource, BlockPlanner
from .segments import SegmentAllocator
from .writer import BlockWriter

__all__ = [
    # Block types
    "Block",
    "BlockWindow",
    "BlockMeta",
    "BlockStats",
    "ChunkMeta",
    "Series",
    "pack_ref",
    "unpack_ref",
    # Pipeline stages
    "BlockPlanner",
    "BlockIdSource",
    "ChunkBuilder",
    "SegmentAllocator",
    "IndexBuilder",
    "ALL_POSTINGS_KEY",
    "build_block_meta",
    "write_block_meta",
    "BlockWriter",
]
