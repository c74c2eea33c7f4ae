"""
Abstract base class for sample generators.

A generator describes one series: its name, its label set and a pure
function from timestamp to value. New strategies subclass
``SeriesGenerator``; the block pipeline only relies on this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

import numpy as np

from ..labels import METRIC_NAME_LABEL, Labels


class SeriesGenerator(ABC):
    """Abstract base for series sample generation."""

    def __init__(
        self,
        name: str,
        labels: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    ) -> None:
        """
        Args:
            name: Series name, also stored as the ``__name__`` label
            labels: Additional identifying labels
        """
        self._name = name
        self._labels = Labels(labels).with_label(METRIC_NAME_LABEL, name)

    @property
    def name(self) -> str:
        """Name of the generated series."""
        return self._name

    @property
    def labels(self) -> Labels:
        """Full label set, including the synthetic name label."""
        return self._labels

    @abstractmethod
    def value(self, t: int) -> float:
        """
        Value of the series at a timestamp.

        Args:
            t: Timestamp in epoch milliseconds

        Returns:
            Sample value
        """
        pass

    def values(self, timestamps: np.ndarray) -> np.ndarray:
        """
        Values for many timestamps at once.

        Subclasses with a closed form should override this with a
        vectorized version.
        """
        return np.fromiter(
            (self.value(int(t)) for t in timestamps),
            dtype=np.float64,
            count=len(timestamps),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._labels!r})"
