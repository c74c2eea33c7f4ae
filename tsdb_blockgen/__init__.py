"""
TSDB Block Generator

Synthesizes Prometheus TSDB blocks (chunk segment files, index and
meta.json) from generated sample streams, for use as benchmark and test
fixtures.

Usage:

    >>> from datetime import UTC, datetime, timedelta
    >>> from tsdb_blockgen import GeneratorOptions, create_blocks, instance_generators
    >>> end = datetime.now(UTC)
    >>> start = end - timedelta(days=2)
    >>> metas = create_blocks(
    ...     GeneratorOptions(
    ...         output_dir="/tmp/tsdb",
    ...         series=instance_generators(10, start=start),
    ...         start_time=start,
    ...         end_time=end,
    ...         sample_interval=timedelta(seconds=30),
    ...     )
    ... )

Generators:

    # Value is seconds elapsed since the generator's start time
    from tsdb_blockgen.generators import IncreasingSeriesGenerator

    # Periodic and constant values
    from tsdb_blockgen.generators import SineWaveSeriesGenerator, ConstantSeriesGenerator

Command line:

    tsdb-historygen -d 48h -c 100 -o data/
"""

# Run
from .generate import create_blocks, iter_blocks

# Configuration
from .config import FormatLimits, GeneratorOptions, load_settings

# Block model
from .blocks import BlockMeta, BlockStats, BlockWriter, BlockPlanner

# Generators
from .generators import (
    ConstantSeriesGenerator,
    IncreasingSeriesGenerator,
    SeriesGenerator,
    SineWaveSeriesGenerator,
    instance_generators,
)

# Labels
from .labels import Label, Labels

# Exceptions
from .exceptions import (
    BlockGenError,
    ChunkLayoutError,
    ConfigurationError,
    IndexFormatError,
    SizingError,
    StorageIOError,
)

__version__ = "0.1.0"

__all__ = [
    # Run
    "create_blocks",
    "iter_blocks",
    # Configuration
    "FormatLimits",
    "GeneratorOptions",
    "load_settings",
    # Block model
    "BlockMeta",
    "BlockStats",
    "BlockWriter",
    "BlockPlanner",
    # Generators
    "SeriesGenerator",
    "IncreasingSeriesGenerator",
    "SineWaveSeriesGenerator",
    "ConstantSeriesGenerator",
    "instance_generators",
    # Labels
    "Label",
    "Labels",
    # Exceptions
    "BlockGenError",
    "ConfigurationError",
    "SizingError",
    "StorageIOError",
    "IndexFormatError",
    "ChunkLayoutError",
]
