"""Shared time utilities.

All on-disk timestamps are integer milliseconds since the Unix epoch.
These helpers convert between that representation and ``datetime`` /
``timedelta`` and parse Go-style duration strings ("15s", "1h30m").
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
# Unit sizes in microseconds.
_DURATION_UNITS = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}


def to_millis(moment: datetime) -> int:
    """Convert a datetime to epoch milliseconds.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _EPOCH) // _MILLISECOND


def from_millis(millis: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=millis)


def duration_millis(duration: timedelta) -> int:
    """Whole milliseconds in a timedelta (truncated)."""
    return duration // _MILLISECOND


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration string such as ``"2h"`` or ``"1m30s"``.

    Raises ValueError on malformed input.
    """
    value = text.strip()
    sign = 1
    if value[:1] in ("+", "-"):
        sign = -1 if value[0] == "-" else 1
        value = value[1:]
    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError(f"invalid duration: {text!r}")

    micros = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        micros += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * micros)


def format_duration(duration: timedelta) -> str:
    """Render a timedelta in the compact form accepted by parse_duration."""
    millis = duration_millis(duration)
    if millis == 0:
        return "0s"
    if millis < 0:
        return "-" + format_duration(-duration)
    parts = []
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    seconds, millis = divmod(millis, 1000)
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds:
        parts.append(f"{seconds}s")
    if millis:
        parts.append(f"{millis}ms")
    return "".join(parts)
