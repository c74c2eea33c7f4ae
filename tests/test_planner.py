"""Tests for block planning and block identifiers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from ulid import ULID

from tsdb_blockgen.blocks import BlockIdSource, BlockPlanner, BlockWindow
from tsdb_blockgen.config import GeneratorOptions
from tsdb_blockgen.exceptions import ConfigurationError

HOUR = 3_600_000


class TestBlockPlanner:
    """Tests for BlockPlanner window tiling."""

    def test_windows_tile_range(self) -> None:
        """Windows are contiguous from start and only the last may pass the end."""
        planner = BlockPlanner(0, 5 * HOUR, 2 * HOUR, BlockIdSource(1))
        windows = list(planner.windows())

        assert [(w.min_time, w.max_time) for w in windows] == [
            (0, 2 * HOUR),
            (2 * HOUR, 4 * HOUR),
            (4 * HOUR, 6 * HOUR),
        ]
        assert [w.index for w in windows] == [0, 1, 2]
        assert planner.num_blocks == 3

    def test_exact_multiple(self) -> None:
        planner = BlockPlanner(0, 4 * HOUR, 2 * HOUR, BlockIdSource(1))
        windows = list(planner.windows())
        assert len(windows) == 2
        assert windows[-1].max_time == 4 * HOUR
        assert planner.num_blocks == 2

    def test_range_shorter_than_block(self) -> None:
        planner = BlockPlanner(1000, 1000 + HOUR, 2 * HOUR, BlockIdSource(1))
        assert list(planner.windows()) == [BlockWindow(0, 1000, 1000 + 2 * HOUR)]

    def test_windows_are_lazy(self) -> None:
        """A huge range is planned without materializing every window."""
        planner = BlockPlanner(0, 10**12, 1, BlockIdSource(1))
        windows = planner.windows()
        assert next(windows).max_time == 1
        assert next(windows).max_time == 2

    @pytest.mark.parametrize("start,end", [(10, 10), (20, 10)])
    def test_start_not_before_end(self, start: int, end: int) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            BlockPlanner(start, end, HOUR, BlockIdSource(1))
        assert exc_info.value.field == "start_time"

    def test_non_positive_block_length(self) -> None:
        with pytest.raises(ConfigurationError):
            BlockPlanner(0, HOUR, 0, BlockIdSource(1))

    def test_plan_assigns_directories(self, tmp_path: Path) -> None:
        planner = BlockPlanner(0, 3 * HOUR, 2 * HOUR, BlockIdSource(7))
        blocks = list(planner.plan(tmp_path))

        assert len(blocks) == 2
        for block in blocks:
            assert block.directory == tmp_path / block.block_id
            assert block.chunks_dir == tmp_path / block.block_id / "chunks"
        # Planning creates nothing on disk.
        assert list(tmp_path.iterdir()) == []

    def test_from_options(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        options = GeneratorOptions(
            start_time=start,
            end_time=start + timedelta(hours=3),
            block_length=timedelta(hours=1),
            seed=3,
        ).resolved()

        planner = BlockPlanner.from_options(options)
        windows = list(planner.windows())
        assert len(windows) == 3
        assert windows[0].min_time == 1_704_067_200_000
        assert planner.id_source.seed == 3


class TestBlockIdSource:
    """Tests for ULID block identifiers."""

    def test_timestamp_is_block_end(self) -> None:
        window = BlockWindow(0, 1_704_067_200_000, 1_704_074_400_000)
        block_id = BlockIdSource(1).block_id(window)

        assert len(block_id) == 26
        assert ULID.from_str(block_id).milliseconds == window.max_time

    def test_deterministic_per_seed_and_index(self) -> None:
        window = BlockWindow(4, 0, HOUR)
        assert BlockIdSource(42).block_id(window) == BlockIdSource(42).block_id(window)
        assert BlockIdSource(42).block_id(window) != BlockIdSource(43).block_id(window)

    def test_independent_of_planning_order(self) -> None:
        """A block's id does not depend on the blocks planned before it."""
        source = BlockIdSource(5)
        planner = BlockPlanner(0, 10 * HOUR, HOUR, source)
        all_ids = [block.block_id for block in planner.plan(Path("/unused"))]

        fresh = BlockIdSource(5)
        assert fresh.block_id(BlockWindow(7, 7 * HOUR, 8 * HOUR)) == all_ids[7]

    def test_unique_within_run(self) -> None:
        planner = BlockPlanner(0, 200 * HOUR, HOUR, BlockIdSource(9))
        ids = [block.block_id for block in planner.plan(Path("/unused"))]
        assert len(set(ids)) == len(ids)

    def test_ids_sort_by_time(self) -> None:
        planner = BlockPlanner(0, 50 * HOUR, HOUR, BlockIdSource(11))
        ids = [block.block_id for block in planner.plan(Path("/unused"))]
        assert ids == sorted(ids)

    def test_time_outside_ulid_range(self) -> None:
        with pytest.raises(ConfigurationError):
            BlockIdSource(1).block_id(BlockWindow(0, -2 * HOUR, -HOUR))
