"""Monotonically increasing counter-like series."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

import numpy as np

from ..utils import to_millis
from .base import SeriesGenerator


class IncreasingSeriesGenerator(SeriesGenerator):
    """Value is the number of whole seconds elapsed since ``start``.

    Mirrors a counter that increments once per second, which keeps XOR
    payloads small and values easy to check by eye.
    """

    def __init__(
        self,
        name: str,
        labels: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        start: datetime | None = None,
    ) -> None:
        super().__init__(name, labels)
        self._start_seconds = to_millis(start) // 1000 if start is not None else 0

    def value(self, t: int) -> float:
        return float(t // 1000 - self._start_seconds)

    def values(self, timestamps: np.ndarray) -> np.ndarray:
        return (timestamps // 1000 - self._start_seconds).astype(np.float64)
