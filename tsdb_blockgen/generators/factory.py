"""Builders for common generator sets."""

from __future__ import annotations

import math
from datetime import datetime

from .increasing import IncreasingSeriesGenerator


def instance_name_width(total: int) -> int:
    """Zero-padding width that keeps instance names in numeric order."""
    if total <= 1:
        return 0
    return math.ceil(math.log10(total))


def instance_generators(
    count: int,
    start_index: int = 0,
    start: datetime | None = None,
    name_prefix: str = "test",
    instance_prefix: str = "test-metric-",
    total: int | None = None,
) -> list[IncreasingSeriesGenerator]:
    """Create ``count`` increasing series, one per instance.

    Series ``i`` is named ``{name_prefix}{i}`` and carries the label
    ``instance={instance_prefix}{i + start_index}`` zero-padded to the
    width needed for ``total`` series (defaults to ``count``).

    Args:
        count: Number of series to create
        start_index: Offset added to instance numbers
        start: Zero point of the increasing values
        name_prefix: Prefix of series names
        instance_prefix: Prefix of instance label values
        total: Series count used to size the zero padding

    Returns:
        Generators in creation order
    """
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")
    width = instance_name_width(total if total is not None else count)
    return [
        IncreasingSeriesGenerator(
            f"{name_prefix}{i}",
            {"instance": f"{instance_prefix}{str(i + start_index).zfill(width)}"},
            start=start,
        )
        for i in range(count)
    ]
