"""
Index building for a block.

Collects the symbol table, per-name label values and postings from the
block's series, then writes them through an IndexWriter in section
order: symbols, series, label indices, postings.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from pathlib import Path

from ..storage import IndexWriter
from .types import Series

logger = logging.getLogger(__name__)

# Postings key listing every series of the block.
ALL_POSTINGS_KEY = ("", "")


class IndexBuilder:
    """Builds and writes the index of one block.

    Postings are kept by series id. The writer translates ids to on-disk
    series references when the postings are written.
    """

    def __init__(self, series: Sequence[Series]) -> None:
        self.series = list(series)
        self._by_id = {s.id: s for s in self.series}
        if len(self._by_id) != len(self.series):
            raise ValueError("series ids must be unique within a block")

    def symbols(self) -> set[str]:
        """Every label name and value used by the block's series."""
        symbols: set[str] = set()
        for series in self.series:
            for label in series.labels:
                symbols.add(label.name)
                symbols.add(label.value)
        return symbols

    def label_values(self) -> dict[str, list[str]]:
        """Label name to its sorted distinct values, names in sorted order."""
        values: dict[str, set[str]] = defaultdict(set)
        for series in self.series:
            for label in series.labels:
                values[label.name].add(label.value)
        return {name: sorted(values[name]) for name in sorted(values)}

    def postings(self) -> dict[tuple[str, str], list[int]]:
        """Label pair to the ascending ids of the series carrying it.

        Keys are in ascending ``(name, value)`` order.
        """
        postings: dict[tuple[str, str], list[int]] = defaultdict(list)
        for series in sorted(self.series, key=lambda s: s.id):
            for label in series.labels:
                postings[(label.name, label.value)].append(series.id)
        return {key: postings[key] for key in sorted(postings)}

    def all_series_ids(self) -> list[int]:
        return sorted(self._by_id)

    def write(self, path: Path) -> None:
        """Write the index file.

        Series entries are added in label order as the format requires;
        ids stay as assigned.

        Raises:
            OSError: If the file cannot be written
            IndexFormatError: If two series share a label set
        """
        with IndexWriter(path) as writer:
            writer.add_symbols(self.symbols())

            for series in sorted(self.series, key=lambda s: s.labels):
                writer.add_series(series.id, series.labels, series.chunks)

            for name, values in self.label_values().items():
                writer.write_label_index([name], values)

            writer.write_postings(*ALL_POSTINGS_KEY, self.all_series_ids())
            for (name, value), ids in self.postings().items():
                writer.write_postings(name, value, ids)

        logger.debug(
            "Wrote index %s: %d series, %d symbols", path, len(self.series), len(self.symbols())
        )
