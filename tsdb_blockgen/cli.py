"""
Command-line entry point: ``tsdb-historygen``.

Generates blocks of increasing test series covering a span of history
ending now:

    tsdb-historygen -d 48h -c 100 -o data/

Settings can also come from a YAML file (``--config``); flags given on
the command line take precedence over the file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from pathlib import Path

from .config import GeneratorOptions, load_settings
from .exceptions import BlockGenError, ConfigurationError
from .generate import create_blocks
from .generators import instance_generators
from .logging_utils import configure_structured_logging
from .utils import format_duration, parse_duration

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=720)
DEFAULT_OUTPUT_DIR = Path("data/")
DEFAULT_SERIES_COUNT = 1


def _duration(text: str) -> timedelta:
    try:
        value = parse_duration(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
    if value <= timedelta(0):
        raise argparse.ArgumentTypeError(f"duration must be positive: {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsdb-historygen",
        description="Generate Prometheus TSDB test data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # One month of history for a single series into ./data
    tsdb-historygen

    # Two days of 100 series sampled every 30s, reproducible block ids
    tsdb-historygen -d 48h -c 100 -i 30s --seed 42 -o /tmp/tsdb
        """,
    )
    parser.add_argument(
        "-d",
        dest="duration",
        type=_duration,
        default=None,
        help=f"Time duration of historical data to generate (default {format_duration(DEFAULT_DURATION)})",
    )
    parser.add_argument(
        "-o",
        dest="output_dir",
        type=Path,
        default=None,
        help=f"Output directory to generate TSDB blocks in (default {DEFAULT_OUTPUT_DIR}/)",
    )
    parser.add_argument(
        "-c",
        dest="count",
        type=int,
        default=None,
        help=f"Number of time series to generate (default {DEFAULT_SERIES_COUNT})",
    )
    parser.add_argument(
        "-n",
        dest="start_index",
        type=int,
        default=None,
        help="Start index for time series instance names (default 0)",
    )
    parser.add_argument(
        "-i",
        dest="sample_interval",
        type=_duration,
        default=None,
        help="Duration between samples (default 15s)",
    )
    parser.add_argument(
        "-b",
        dest="block_length",
        type=_duration,
        default=None,
        help="TSDB block length (default 2h)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for block identifiers")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument(
        "--log-json", action="store_true", help="Log structured JSON lines to stderr"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def options_from_args(args: argparse.Namespace, now: datetime | None = None) -> GeneratorOptions:
    """Combine parsed arguments with the optional settings file.

    History ends at the configured end time (default now) and spans the
    ``-d`` duration, unless the settings file fixes a start time and
    ``-d`` is not given.
    """
    settings = load_settings(args.config) if args.config else {}
    base = GeneratorOptions.from_settings(settings, series=[])

    end_time = base.end_time or now or datetime.now(UTC)
    if args.duration is not None or base.start_time is None:
        start_time = end_time - (args.duration or DEFAULT_DURATION)
    else:
        start_time = base.start_time

    series_settings = settings.get("series") or {}
    count = args.count if args.count is not None else series_settings.get("count")
    start_index = (
        args.start_index if args.start_index is not None else series_settings.get("start_index")
    )
    try:
        series = instance_generators(
            int(count if count is not None else DEFAULT_SERIES_COUNT),
            start_index=int(start_index or 0),
            start=start_time,
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid series settings: {e}", "series") from e

    return replace(
        base,
        output_dir=args.output_dir or base.output_dir or DEFAULT_OUTPUT_DIR,
        series=series,
        start_time=start_time,
        end_time=end_time,
        sample_interval=args.sample_interval or base.sample_interval,
        block_length=args.block_length or base.block_length,
        seed=args.seed if args.seed is not None else base.seed,
    )


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.DEBUG if args.verbose else logging.INFO
    if args.log_json:
        configure_structured_logging(level, "tsdb_blockgen")
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.count is not None and args.count < 0:
        parser.error("-c must not be negative")
    if args.start_index is not None and args.start_index < 0:
        parser.error("-n must not be negative")

    _configure_logging(args)
    logger.info("Generate Prometheus TSDB test data.")

    try:
        options = options_from_args(args)
        metas = create_blocks(options)
    except BlockGenError as e:
        logger.error("Error generating data: %s", e)
        return 1

    output_dir = options.output_dir or DEFAULT_OUTPUT_DIR
    print(f"Blocks written: {len(metas)}")
    print(f"Series: {len(options.series)}")
    print(f"Output: {output_dir}")
    logger.info("TSDB data generation complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
