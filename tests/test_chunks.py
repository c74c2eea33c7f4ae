"""Tests for ChunkBuilder."""

from __future__ import annotations

import pytest

from tsdb_blockgen.blocks import BlockWindow, ChunkBuilder
from tsdb_blockgen.config import FormatLimits
from tsdb_blockgen.encoding import decode_samples
from tsdb_blockgen.exceptions import SizingError
from tsdb_blockgen.generators import (
    ConstantSeriesGenerator,
    IncreasingSeriesGenerator,
    SineWaveSeriesGenerator,
)

MINUTE = 60_000
HOUR = 60 * MINUTE


@pytest.fixture
def builder() -> ChunkBuilder:
    """15s interval, 120 samples per chunk: 30 minute chunks."""
    return ChunkBuilder(15_000, FormatLimits())


class TestChunkWindows:
    """Tests for cutting a block window into chunk windows."""

    def test_chunk_length(self, builder: ChunkBuilder) -> None:
        assert builder.chunk_length == 30 * MINUTE

    def test_windows_cover_block(self, builder: ChunkBuilder) -> None:
        window = BlockWindow(0, 0, 2 * HOUR)
        windows = list(builder.chunk_windows(window))

        assert len(windows) == 4
        assert windows[0][0] == window.min_time
        assert windows[-1][1] == window.max_time
        for (_, end), (start, _) in zip(windows, windows[1:]):
            assert end == start

    def test_last_window_cut_at_block_end(self, builder: ChunkBuilder) -> None:
        window = BlockWindow(0, 0, 100 * MINUTE)
        windows = list(builder.chunk_windows(window))

        assert windows[-1] == (90 * MINUTE, 100 * MINUTE)
        assert builder.full_chunks(window) == 3


class TestBuildChunk:
    """Tests for sampling and encoding one chunk."""

    def test_samples_within_window(self, builder: ChunkBuilder) -> None:
        generator = IncreasingSeriesGenerator("up")
        chunk = builder.build_chunk(generator, HOUR, HOUR + builder.chunk_length)
        samples = decode_samples(chunk.data)

        assert chunk.num_samples == 120
        assert len(samples) == 120
        assert samples[0][0] == HOUR
        assert all(HOUR <= t < HOUR + builder.chunk_length for t, _ in samples)
        assert [t for t, _ in samples] == list(range(HOUR, HOUR + 30 * MINUTE, 15_000))

    def test_values_come_from_generator(self, builder: ChunkBuilder) -> None:
        generator = IncreasingSeriesGenerator("up")
        chunk = builder.build_chunk(generator, 0, 10 * 15_000)
        assert [v for _, v in decode_samples(chunk.data)] == [i * 15.0 for i in range(10)]

    def test_sine_values(self, builder: ChunkBuilder) -> None:
        generator = SineWaveSeriesGenerator("wave", period_ms=HOUR, amplitude=2.0)
        chunk = builder.build_chunk(generator, 0, builder.chunk_length)
        samples = decode_samples(chunk.data)

        assert samples[0][1] == pytest.approx(0.0)
        # A quarter period in: 15 minutes is sample 60.
        assert samples[60][1] == pytest.approx(2.0)

    def test_max_time_is_one_interval_after_start(self, builder: ChunkBuilder) -> None:
        generator = ConstantSeriesGenerator("flat", constant=1.0)
        chunk = builder.build_chunk(generator, 0, builder.chunk_length)

        assert chunk.min_time == 0
        assert chunk.max_time == 15_000

    def test_size_includes_overhead(self, builder: ChunkBuilder) -> None:
        chunk = builder.build_chunk(ConstantSeriesGenerator("flat"), 0, builder.chunk_length)
        assert chunk.size == len(chunk.data) + 7

    def test_oversized_chunk(self) -> None:
        builder = ChunkBuilder(1000, FormatLimits(max_chunk_size=64, samples_per_chunk=120))
        generator = SineWaveSeriesGenerator("wave", period_ms=7_777)

        with pytest.raises(SizingError) as exc_info:
            builder.build_chunk(generator, 0, builder.chunk_length)
        assert exc_info.value.max_bytes == 64
        assert exc_info.value.size_bytes > 64
        assert exc_info.value.series == "wave"


class TestBuildSeries:
    """Tests for building every chunk of a series."""

    def test_chunks_ordered_and_disjoint(self, builder: ChunkBuilder) -> None:
        generator = IncreasingSeriesGenerator("up")
        window = BlockWindow(0, 0, 2 * HOUR)
        chunks = builder.build_series(generator, window)

        assert len(chunks) == 4
        starts = [c.min_time for c in chunks]
        assert starts == [0, 30 * MINUTE, 60 * MINUTE, 90 * MINUTE]
        for chunk in chunks:
            times = [t for t, _ in decode_samples(chunk.data)]
            assert times[0] == chunk.min_time
            assert times[-1] < chunk.min_time + builder.chunk_length

    def test_every_tick_sampled_once(self, builder: ChunkBuilder) -> None:
        window = BlockWindow(0, 0, 100 * MINUTE)
        chunks = builder.build_series(IncreasingSeriesGenerator("up"), window)

        times = [t for chunk in chunks for t, _ in decode_samples(chunk.data)]
        assert times == list(range(0, 100 * MINUTE, 15_000))
        assert chunks[-1].num_samples == 40

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            ChunkBuilder(0, FormatLimits())
