"""Tide motion classification.

The tide state at an instant is read from a local three-point window:
the sample nearest the instant and its immediate neighbours. The same
routine serves every tide provider.
"""

from datetime import datetime
from operator import attrgetter
from typing import Any, Callable, Optional, Sequence, TypeVar

import pandas as pd

from snorkelcheck.core.conditions import TideState
from snorkelcheck.core.timeseries import nearest_index, parse_timestamp


T = TypeVar("T")


def classify_at(
    samples: Sequence[T],
    index: int,
    height_of: Callable[[T], float],
) -> TideState:
    """Classify tide motion at a known position in a chronological series.

    Args:
        samples: Samples sorted by time
        index: Position of the pivot sample
        height_of: Extracts the height from a sample

    Returns:
        TideState for the pivot
    """
    if index <= 0 or index >= len(samples) - 1:
        return TideState.UNKNOWN

    previous = height_of(samples[index - 1])
    current = height_of(samples[index])
    following = height_of(samples[index + 1])

    if current > previous and current > following:
        return TideState.HIGH
    if current < previous and current < following:
        return TideState.LOW
    if following > current:
        return TideState.RISING
    if following < current:
        return TideState.FALLING
    return TideState.UNKNOWN


def classify_tide_state(
    samples: Sequence[T],
    pivot_time: datetime,
    height_of: Callable[[T], float] = attrgetter("height_m"),
    time_of: Callable[[T], Any] = attrgetter("time"),
) -> TideState:
    """Classify tide motion at pivot_time.

    Args:
        samples: Samples sorted by time
        pivot_time: Instant to classify
        height_of: Extracts the height from a sample
        time_of: Extracts the timestamp from a sample

    Returns:
        high/low at a local extremum, rising/falling otherwise, unknown at
        a series boundary or on a flat stretch
    """
    index = pivot_index(samples, pivot_time, time_of)
    if index is None:
        return TideState.UNKNOWN
    return classify_at(samples, index, height_of)


def pivot_index(
    samples: Sequence[T],
    pivot_time: datetime,
    time_of: Callable[[T], Any] = attrgetter("time"),
) -> Optional[int]:
    """Position of the sample nearest pivot_time."""
    times = pd.DatetimeIndex([parse_timestamp(time_of(s)) for s in samples], tz="UTC")
    return nearest_index(times, pivot_time)
