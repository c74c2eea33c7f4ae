"""Tests for segment allocation and chunk references."""

from __future__ import annotations

import pytest

from tsdb_blockgen.blocks import SegmentAllocator, pack_ref, unpack_ref
from tsdb_blockgen.config import FormatLimits
from tsdb_blockgen.exceptions import SizingError


class TestReferences:
    """Tests for packing segment/offset pairs."""

    def test_pack_layout(self) -> None:
        assert pack_ref(0, 8) == 8
        assert pack_ref(1, 8) == (1 << 32) | 8
        assert unpack_ref((3 << 32) | 1234) == (3, 1234)

    def test_offset_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            pack_ref(0, 1 << 32)


class TestSegmentAllocator:
    """Tests for SegmentAllocator."""

    def test_starts_after_header(self) -> None:
        allocator = SegmentAllocator(max_segment_size=100, header_size=8)
        assert allocator.segment == 0
        assert allocator.cursor == 8

    def test_sequential_allocation(self) -> None:
        allocator = SegmentAllocator(max_segment_size=100, header_size=8)
        assert unpack_ref(allocator.allocate(50)) == (0, 8)
        assert unpack_ref(allocator.allocate(40)) == (0, 58)
        assert allocator.cursor == 98

    def test_rollover(self) -> None:
        allocator = SegmentAllocator(max_segment_size=100, header_size=8)
        allocator.allocate(50)
        allocator.allocate(40)
        assert unpack_ref(allocator.allocate(10)) == (1, 8)
        assert allocator.num_segments == 2

    def test_exact_fit_stays_in_segment(self) -> None:
        allocator = SegmentAllocator(max_segment_size=100, header_size=8)
        allocator.allocate(50)
        assert unpack_ref(allocator.allocate(42)) == (0, 58)
        assert allocator.cursor == 100

    def test_allocations_fit_their_segment(self) -> None:
        """Every reference decodes to an offset whose chunk ends within the segment."""
        allocator = SegmentAllocator(max_segment_size=1000, header_size=8)
        sizes = [37, 211, 500, 99, 301, 17, 640, 12, 999 - 8, 5]
        previous = None
        for size in sizes:
            segment, offset = unpack_ref(allocator.allocate(size))
            assert offset >= 8
            assert offset + size <= 1000
            if previous is not None:
                assert (segment, offset) > previous
            previous = (segment, offset)

    def test_chunk_larger_than_segment(self) -> None:
        allocator = SegmentAllocator(max_segment_size=100, header_size=8)
        with pytest.raises(SizingError):
            allocator.allocate(93)

    def test_for_limits(self) -> None:
        limits = FormatLimits(max_segment_size=4096, segment_header_size=16)
        allocator = SegmentAllocator.for_limits(limits)
        assert allocator.max_segment_size == 4096
        assert unpack_ref(allocator.allocate(7)) == (0, 16)
