"""
Configuration for block generation.

``GeneratorOptions`` holds everything a run needs. Fields left as None
are filled with defaults by ``resolved()``, which also validates the
combination and raises ConfigurationError before any I/O happens.

Options can also be read from the environment (``from_env``) or from a
YAML settings file (``load_settings`` + ``from_settings``):

```yaml
output_dir: /tmp/tsdb
start_time: 2024-01-01T00:00:00Z
end_time: 2024-01-02T00:00:00Z
sample_interval: 15s
block_length: 2h
seed: 42
series:
  count: 10
  start_index: 0
limits:
  samples_per_chunk: 120
  max_chunk_size: 16384
```
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from .encoding import MAX_SAMPLES, uvarint_bytes
from .exceptions import ConfigurationError
from .generators import SeriesGenerator, instance_generators
from .utils import duration_millis, parse_duration

DEFAULT_OUTPUT_DIR = Path("/tmp/tsdb")
DEFAULT_HISTORY = timedelta(days=7)
DEFAULT_SAMPLE_INTERVAL = timedelta(seconds=15)
DEFAULT_BLOCK_LENGTH = timedelta(hours=2)

ENV_PREFIX = "TSDB_BLOCKGEN_"

# Magic number (4), format version (1) and padding (3).
MIN_SEGMENT_HEADER_SIZE = 8


@dataclass(frozen=True)
class FormatLimits:
    """Size constants imposed by the on-disk format."""

    # Each segment file must be at most 512MiB.
    max_segment_size: int = 512 * 1024 * 1024
    # Keep chunks small for read performance.
    max_chunk_size: int = 16 * 1024
    # Maximum samples per chunk allowed by the format.
    samples_per_chunk: int = 120
    # 2 bytes data length (uvarint), 1 byte encoding, 4 bytes CRC32.
    chunk_overhead_size: int = 7
    # Magic number, format version and padding at the head of each segment.
    segment_header_size: int = 8

    def validate(self) -> None:
        """Raise ConfigurationError if the limits are inconsistent."""
        if self.samples_per_chunk <= 0 or self.samples_per_chunk > MAX_SAMPLES:
            raise ConfigurationError(
                f"samples_per_chunk must be in 1..{MAX_SAMPLES}, got {self.samples_per_chunk}",
                "samples_per_chunk",
            )
        if self.max_chunk_size <= 0:
            raise ConfigurationError("max_chunk_size must be positive", "max_chunk_size")
        # Length uvarint + encoding byte + CRC32 of the largest allowed payload.
        max_payload = max(self.max_chunk_size - self.chunk_overhead_size, 0)
        framing = len(uvarint_bytes(max_payload)) + 1 + 4
        if self.chunk_overhead_size < framing:
            raise ConfigurationError(
                f"chunk_overhead_size must be at least {framing} bytes to frame "
                f"chunks of up to {self.max_chunk_size} bytes",
                "chunk_overhead_size",
            )
        if self.segment_header_size < MIN_SEGMENT_HEADER_SIZE:
            raise ConfigurationError(
                f"segment_header_size must be at least {MIN_SEGMENT_HEADER_SIZE} bytes",
                "segment_header_size",
            )
        if self.segment_header_size + self.max_chunk_size > self.max_segment_size:
            raise ConfigurationError(
                "max_segment_size must hold the segment header plus one maximum size chunk",
                "max_segment_size",
            )
        if self.max_segment_size > 0xFFFFFFFF:
            raise ConfigurationError(
                "max_segment_size must fit in the 32 bit offset of a chunk reference",
                "max_segment_size",
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormatLimits:
        """Build limits from a settings mapping."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown format limits: {sorted(unknown)}", "limits")
        try:
            return cls(**{k: int(v) for k, v in data.items()})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid format limits: {e}", "limits") from e


@dataclass
class GeneratorOptions:
    """Options for a generation run.

    Attributes:
        output_dir: Directory to place generated blocks in. Default /tmp/tsdb.
        series: Generators defining each series to create.
        start_time: Samples are produced from this time. Default one week before now.
        end_time: Samples are produced until this time. Default now.
        sample_interval: Time between samples. Default 15s.
        block_length: Time span covered by each block. Default 2h.
        seed: Seed for block identifier randomness. Default current time in ns.
        limits: Format size constants.
    """

    output_dir: Path | str | None = None
    series: list[SeriesGenerator] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    sample_interval: timedelta | None = None
    block_length: timedelta | None = None
    seed: int | None = None
    limits: FormatLimits = field(default_factory=FormatLimits)

    def resolved(self, now: datetime | None = None) -> GeneratorOptions:
        """Return a copy with defaults applied, validated.

        Raises:
            ConfigurationError: If the options cannot describe a valid run
        """
        now = now or datetime.now(UTC)
        end_time = _parse_time(self.end_time) or now
        start_time = _parse_time(self.start_time) or now - DEFAULT_HISTORY

        if start_time >= end_time:
            raise ConfigurationError(
                f"start time {start_time.isoformat()} must be before end time "
                f"{end_time.isoformat()}",
                "start_time",
            )

        sample_interval = self.sample_interval or DEFAULT_SAMPLE_INTERVAL
        if duration_millis(sample_interval) <= 0:
            raise ConfigurationError(
                "sample_interval must be at least one millisecond", "sample_interval"
            )

        block_length = self.block_length or DEFAULT_BLOCK_LENGTH
        if duration_millis(block_length) <= 0:
            raise ConfigurationError(
                "block_length must be at least one millisecond", "block_length"
            )

        self.limits.validate()

        return replace(
            self,
            output_dir=Path(self.output_dir) if self.output_dir else DEFAULT_OUTPUT_DIR,
            series=list(self.series),
            start_time=start_time,
            end_time=end_time,
            sample_interval=sample_interval,
            block_length=block_length,
            seed=self.seed if self.seed is not None else time.time_ns(),
        )

    @property
    def chunk_length(self) -> timedelta:
        """Time span of a full chunk: sample interval times samples per chunk."""
        return (self.sample_interval or DEFAULT_SAMPLE_INTERVAL) * self.limits.samples_per_chunk

    @classmethod
    def from_env(cls, series: list[SeriesGenerator] | None = None) -> GeneratorOptions:
        """Create options from ``TSDB_BLOCKGEN_*`` environment variables."""
        settings: dict[str, Any] = {}
        for key in ("output_dir", "start_time", "end_time", "sample_interval", "block_length", "seed"):
            value = os.environ.get(ENV_PREFIX + key.upper())
            if value:
                settings[key] = value
        return cls.from_settings(settings, series=series)

    @classmethod
    def from_settings(
        cls,
        settings: dict[str, Any],
        series: list[SeriesGenerator] | None = None,
    ) -> GeneratorOptions:
        """Create options from a settings mapping (e.g. a loaded YAML file).

        When ``series`` is not given, a ``series`` section with ``count``
        and ``start_index`` creates increasing instance generators.
        """
        try:
            start_time = _parse_time(settings.get("start_time"))
            end_time = _parse_time(settings.get("end_time"))
            sample_interval = _parse_interval(settings.get("sample_interval"))
            block_length = _parse_interval(settings.get("block_length"))
            seed = int(settings["seed"]) if settings.get("seed") is not None else None
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

        if series is None:
            series_settings = settings.get("series") or {}
            try:
                series = instance_generators(
                    int(series_settings.get("count", 0)),
                    start_index=int(series_settings.get("start_index", 0)),
                    start=start_time,
                )
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid series settings: {e}", "series") from e

        return cls(
            output_dir=settings.get("output_dir"),
            series=series,
            start_time=start_time,
            end_time=end_time,
            sample_interval=sample_interval,
            block_length=block_length,
            seed=seed,
            limits=FormatLimits.from_dict(settings.get("limits") or {}),
        )


def load_settings(path: Path | str) -> dict[str, Any]:
    """Load a YAML settings file.

    Returns:
        The parsed mapping (empty if the file is empty)
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {path}: {e}", "config") from e
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", "config") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping", "config")
    return data


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def _parse_interval(value: Any) -> timedelta | None:
    if value is None or value == "":
        return None
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    return parse_duration(str(value))
