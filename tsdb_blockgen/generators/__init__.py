"""
Pluggable sample generators.

Each generator describes one series (name, labels) and computes its
value at any timestamp. The block pipeline only depends on
``SeriesGenerator``.
"""

from .base import SeriesGenerator
from .factory import instance_generators, instance_name_width
from .increasing import IncreasingSeriesGenerator
from .periodic import ConstantSeriesGenerator, SineWaveSeriesGenerator

__all__ = [
    "SeriesGenerator",
    "IncreasingSeriesGenerator",
    "SineWaveSeriesGenerator",
    "ConstantSeriesGenerator",
    "instance_generators",
    "instance_name_width",
]
