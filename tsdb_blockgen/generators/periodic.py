"""Gauge-like generators: a sine wave and a constant."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

import numpy as np

from .base import SeriesGenerator


class SineWaveSeriesGenerator(SeriesGenerator):
    """Sine wave oscillating around ``offset``.

    Produces full-width XOR deltas, useful for exercising chunk sizing.
    """

    def __init__(
        self,
        name: str,
        labels: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        period_ms: int = 3_600_000,
        amplitude: float = 1.0,
        offset: float = 0.0,
    ) -> None:
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")
        super().__init__(name, labels)
        self.period_ms = period_ms
        self.amplitude = amplitude
        self.offset = offset

    def value(self, t: int) -> float:
        return self.offset + self.amplitude * math.sin(2 * math.pi * t / self.period_ms)

    def values(self, timestamps: np.ndarray) -> np.ndarray:
        phase = 2 * np.pi * timestamps.astype(np.float64) / self.period_ms
        return self.offset + self.amplitude * np.sin(phase)


class ConstantSeriesGenerator(SeriesGenerator):
    """Same value at every timestamp."""

    def __init__(
        self,
        name: str,
        labels: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        constant: float = 0.0,
    ) -> None:
        super().__init__(name, labels)
        self.constant = constant

    def value(self, t: int) -> float:
        return self.constant

    def values(self, timestamps: np.ndarray) -> np.ndarray:
        return np.full(len(timestamps), self.constant, dtype=np.float64)
