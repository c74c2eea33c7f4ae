"""
Block types and the metadata descriptor.

Defines the records passed between the pipeline stages. All
timestamps are epoch milliseconds; block and chunk windows are
half-open ``[min_time, max_time)`` except where noted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..encoding import ENCODING_XOR
from ..labels import Labels

META_VERSION = 1

_OFFSET_MASK = 0xFFFFFFFF


def pack_ref(segment: int, offset: int) -> int:
    """Pack a segment index and byte offset into a 64 bit chunk reference."""
    if not 0 <= offset <= _OFFSET_MASK:
        raise ValueError(f"offset out of range: {offset}")
    if not 0 <= segment <= _OFFSET_MASK:
        raise ValueError(f"segment index out of range: {segment}")
    return (segment << 32) | offset


def unpack_ref(ref: int) -> tuple[int, int]:
    """Split a chunk reference into ``(segment, offset)``."""
    return ref >> 32, ref & _OFFSET_MASK


@dataclass(frozen=True)
class BlockWindow:
    """Time window covered by one block.

    Attributes:
        index: 0-based position of the block in the run
        min_time: Inclusive start (ms)
        max_time: Exclusive end (ms)
    """

    index: int
    min_time: int
    max_time: int

    @property
    def duration(self) -> int:
        return self.max_time - self.min_time


@dataclass
class Block:
    """A planned block: identifier, window and output directory."""

    block_id: str
    window: BlockWindow
    directory: Path

    @property
    def min_time(self) -> int:
        return self.window.min_time

    @property
    def max_time(self) -> int:
        return self.window.max_time

    @property
    def chunks_dir(self) -> Path:
        return self.directory / "chunks"

    @property
    def index_path(self) -> Path:
        return self.directory / "index"

    @property
    def meta_path(self) -> Path:
        return self.directory / "meta.json"


@dataclass
class ChunkMeta:
    """One encoded chunk of a series.

    Attributes:
        min_time: Start of the chunk window (ms)
        max_time: Chunk start plus one sample interval (ms), see ChunkBuilder.build_chunk
        data: Encoded payload
        ref: Packed ``(segment << 32) | offset`` location
        num_samples: Samples encoded in ``data``
        size: Bytes allocated in the segment (payload plus framing overhead)
        encoding: Payload encoding identifier
    """

    min_time: int
    max_time: int
    data: bytes
    ref: int = 0
    num_samples: int = 0
    size: int = 0
    encoding: int = ENCODING_XOR

    @property
    def segment(self) -> int:
        return unpack_ref(self.ref)[0]

    @property
    def offset(self) -> int:
        return unpack_ref(self.ref)[1]


@dataclass
class Series:
    """A series within one block.

    Ids are assigned in generator order and are only unique per block.
    """

    id: int
    name: str
    labels: Labels
    chunks: list[ChunkMeta] = field(default_factory=list)


@dataclass
class BlockStats:
    """Summary counts of a block."""

    num_samples: int
    num_series: int
    num_chunks: int

    def to_dict(self) -> dict[str, int]:
        """Serialize to dictionary."""
        return {
            "numSamples": self.num_samples,
            "numSeries": self.num_series,
            "numChunks": self.num_chunks,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockStats:
        """Deserialize from dictionary."""
        return cls(
            num_samples=data["numSamples"],
            num_series=data["numSeries"],
            num_chunks=data["numChunks"],
        )


@dataclass
class BlockMeta:
    """Descriptor written to ``meta.json``.

    Blocks are generated directly rather than compacted, so compaction
    is always level 1 with the block itself as the only source.
    """

    ulid: str
    min_time: int
    max_time: int
    stats: BlockStats
    compaction_level: int = 1
    sources: list[str] = field(default_factory=list)
    version: int = META_VERSION

    def __post_init__(self) -> None:
        """Default the compaction sources to the block itself."""
        if not self.sources:
            self.sources = [self.ulid]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary in the on-disk key order."""
        return {
            "version": self.version,
            "ulid": self.ulid,
            "minTime": self.min_time,
            "maxTime": self.max_time,
            "stats": self.stats.to_dict(),
            "compaction": {
                "level": self.compaction_level,
                "sources": list(self.sources),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockMeta:
        """Deserialize from dictionary."""
        compaction = data.get("compaction", {})
        return cls(
            ulid=data["ulid"],
            min_time=data["minTime"],
            max_time=data["maxTime"],
            stats=BlockStats.from_dict(data["stats"]),
            compaction_level=compaction.get("level", 1),
            sources=list(compaction.get("sources", [])),
            version=data.get("version", META_VERSION),
        )
