"""
Segment allocation for chunks.

Chunks of a block are laid out back-to-back in segment files of bounded
size. The allocator decides where each chunk goes before anything is
written, so chunk references are known up front.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import FormatLimits
from ..exceptions import SizingError
from .types import pack_ref


@dataclass
class SegmentAllocator:
    """Assigns chunk references within one block.

    Strategy:
    - Each segment starts right after its header
    - A chunk that would cross ``max_segment_size`` goes to a new segment
    - Chunks are never split across segments

    Example (header 8, max size 100):
        allocate(50) -> segment 0, offset 8
        allocate(40) -> segment 0, offset 58
        allocate(10) -> segment 1, offset 8   (98 + 10 > 100)
    """

    max_segment_size: int
    header_size: int
    _segment: int = 0
    _cursor: int = -1

    def __post_init__(self) -> None:
        """Position the cursor after the first segment's header."""
        if self._cursor < 0:
            self._cursor = self.header_size

    @classmethod
    def for_limits(cls, limits: FormatLimits) -> SegmentAllocator:
        """Create an allocator for the given format limits."""
        return cls(
            max_segment_size=limits.max_segment_size,
            header_size=limits.segment_header_size,
        )

    def allocate(self, size: int) -> int:
        """Reserve ``size`` bytes and return the packed reference.

        Raises:
            SizingError: If the chunk cannot fit even in an empty segment
        """
        if self.header_size + size > self.max_segment_size:
            raise SizingError(size, self.max_segment_size - self.header_size)

        if self._cursor + size > self.max_segment_size:
            self._segment += 1
            self._cursor = self.header_size

        ref = pack_ref(self._segment, self._cursor)
        self._cursor += size
        return ref

    @property
    def segment(self) -> int:
        """Index of the segment currently being filled."""
        return self._segment

    @property
    def cursor(self) -> int:
        """Offset the next chunk would be placed at in the current segment."""
        return self._cursor

    @property
    def num_segments(self) -> int:
        """Segments touched so far."""
        return self._segment + 1
