"""Tests for structured logging and the exception hierarchy."""

from __future__ import annotations

import json
import logging

import pytest

from tsdb_blockgen.exceptions import (
    BlockGenError,
    ChunkLayoutError,
    ConfigurationError,
    IndexFormatError,
    SizingError,
    StorageIOError,
)
from tsdb_blockgen.logging_utils import (
    BlockLoggerAdapter,
    StructuredJsonFormatter,
    get_generator_logger,
)


def make_record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("tsdb_blockgen.test", logging.INFO, __file__, 1, "wrote %d", (3,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJsonFormatter:
    """Tests for StructuredJsonFormatter."""

    def test_standard_fields(self) -> None:
        data = json.loads(StructuredJsonFormatter().format(make_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "tsdb_blockgen.test"
        assert data["message"] == "wrote 3"
        assert "timestamp" in data

    def test_extra_fields(self) -> None:
        data = json.loads(StructuredJsonFormatter().format(make_record(block_id="01ABC", path=object())))
        assert data["block_id"] == "01ABC"
        assert isinstance(data["path"], str)


class TestLoggers:
    """Tests for logger helpers."""

    def test_generator_logger_name(self) -> None:
        assert get_generator_logger("index").name == "tsdb_blockgen.index"

    def test_block_adapter_adds_context(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = BlockLoggerAdapter(get_generator_logger("test"), "01XYZ")
        with caplog.at_level(logging.INFO, logger="tsdb_blockgen"):
            adapter.info("hello", extra={"segments": 2})

        (record,) = caplog.records
        assert record.block_id == "01XYZ"
        assert record.segments == 2
        assert not hasattr(record, "stage")

    def test_stage_adapter(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = BlockLoggerAdapter(get_generator_logger("test"), "01XYZ")
        with caplog.at_level(logging.INFO, logger="tsdb_blockgen"):
            adapter.for_stage("index").info("index written")
            adapter.for_stage("index").info("override", extra={"stage": "meta"})

        first, second = caplog.records
        assert (first.block_id, first.stage) == ("01XYZ", "index")
        assert second.stage == "meta"
        assert adapter.extra == {"block_id": "01XYZ"}

    def test_json_context_order(self) -> None:
        record = make_record(segments=2, stage="chunks", block_id="01ABC")
        data = json.loads(StructuredJsonFormatter().format(record))
        assert list(data) == [
            "timestamp", "level", "logger", "message", "block_id", "stage", "segments",
        ]

    def test_json_timestamp_from_record(self) -> None:
        record = make_record()
        record.created = 1_704_067_200.5
        data = json.loads(StructuredJsonFormatter().format(record))
        assert data["timestamp"] == "2024-01-01T00:00:00.500000+00:00"


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self) -> None:
        for error in (
            ConfigurationError("bad"),
            SizingError(20000, 16384),
            StorageIOError("index"),
            IndexFormatError("out of order"),
            ChunkLayoutError("overlap", ref=8),
        ):
            assert isinstance(error, BlockGenError)

    def test_sizing_message(self) -> None:
        error = SizingError(20000, 16384, series="up")
        assert "20000 > 16384" in str(error)
        assert error.details == {"size_bytes": 20000, "max_bytes": 16384, "series": "up"}

    def test_storage_details(self) -> None:
        cause = OSError("disk full")
        error = StorageIOError("chunks", "/tmp/b/chunks", cause, block_id="01ABC")
        assert error.details["stage"] == "chunks"
        assert error.details["block_id"] == "01ABC"
        assert "disk full" in str(error)
        assert error.cause is cause
