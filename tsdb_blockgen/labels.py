"""
Label sets identifying a series.

A label set is an immutable tuple of ``Label`` pairs sorted by name.
Tuples compare pairwise by name, then value, and a strict prefix sorts
first, which is the order the index format requires for series.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import NamedTuple

# Synthetic label carrying the series (metric) name.
METRIC_NAME_LABEL = "__name__"


class Label(NamedTuple):
    """A single name/value pair."""

    name: str
    value: str


class Labels(tuple):
    """An immutable, name-sorted set of labels."""

    def __new__(cls, pairs: Mapping[str, str] | Iterable[tuple[str, str]] = ()) -> Labels:
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        labels = sorted(Label(name, value) for name, value in items)
        for prev, cur in zip(labels, labels[1:]):
            if prev.name == cur.name:
                raise ValueError(f"duplicate label name: {cur.name!r}")
        return super().__new__(cls, labels)

    def get(self, name: str) -> str | None:
        """Value of the label ``name``, or None when absent."""
        for label in self:
            if label.name == name:
                return label.value
        return None

    def with_label(self, name: str, value: str) -> Labels:
        """Return a copy with ``name`` set to ``value``."""
        merged = {label.name: label.value for label in self}
        merged[name] = value
        return Labels(merged)

    def to_dict(self) -> dict[str, str]:
        return {label.name: label.value for label in self}

    def __repr__(self) -> str:
        inner = ", ".join(f'{label.name}="{label.value}"' for label in self)
        return "{" + inner + "}"
