"""Time series alignment.

Providers sample on their own clocks and cadences, so every series is
normalized to UTC timestamps and read at the sample closest to a target
instant. Ties go to the first sample encountered in the series.
"""

import math
from datetime import datetime
from typing import Any, Optional, Sequence

import pandas as pd


def as_utc(value: datetime) -> pd.Timestamp:
    """Convert a datetime to a UTC Timestamp (naive values are taken as UTC)."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def parse_timestamp(value: Any, utc_offset_seconds: int = 0) -> Optional[pd.Timestamp]:
    """Parse an ISO string or epoch seconds into a UTC Timestamp.

    Args:
        value: ISO 8601 string, epoch seconds, or datetime
        utc_offset_seconds: Offset of naive ISO strings from UTC

    Returns:
        UTC Timestamp, or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            return pd.Timestamp(value, unit="s", tz="UTC")
        ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return None

    if pd.isna(ts):
        return None

    if ts.tzinfo is None:
        return (ts - pd.Timedelta(seconds=utc_offset_seconds)).tz_localize("UTC")
    return ts.tz_convert("UTC")


def to_utc_index(times: Sequence[Any], utc_offset_seconds: int = 0) -> pd.DatetimeIndex:
    """Parse a sequence of raw timestamps. Unparsable entries become NaT."""
    parsed = [parse_timestamp(t, utc_offset_seconds) for t in times]
    return pd.DatetimeIndex(parsed, tz="UTC")


def finite_or_none(value: Any) -> Optional[float]:
    """Return value as float if it is a finite number, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def nearest_index(times: pd.DatetimeIndex, target: datetime) -> Optional[int]:
    """Position of the sample closest in time to target.

    The first sample with the smallest absolute delta wins.

    Args:
        times: UTC timestamps (NaT entries are never selected)
        target: Instant to align on

    Returns:
        Integer position, or None for an empty or unparsable series
    """
    if len(times) == 0 or times.isna().all():
        return None

    deltas = abs(times - as_utc(target))
    return int(deltas.argmin())
