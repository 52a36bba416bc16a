"""Snapshot data model.

A Conditions value is one synchronized reading of waves, wind, tide,
weather and visibility for a single point and instant. Every leaf is
optional because any upstream provider may be missing a field.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class TideState(Enum):
    """Direction of tide motion at a point in time."""
    LOW = "low"
    RISING = "rising"
    HIGH = "high"
    FALLING = "falling"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class WaveCondition:
    height_m: Optional[float] = None
    period_s: Optional[float] = None
    direction_deg: Optional[float] = None


@dataclass(frozen=True)
class WindCondition:
    speed_ms: Optional[float] = None
    gust_ms: Optional[float] = None
    direction_deg: Optional[float] = None


@dataclass(frozen=True)
class TideCondition:
    height_m: Optional[float] = None
    state: TideState = TideState.UNKNOWN


@dataclass(frozen=True)
class WeatherCondition:
    temperature_c: Optional[float] = None
    precipitation_mm_per_hour: Optional[float] = None
    cloud_cover_percent: Optional[float] = None


@dataclass(frozen=True)
class VisibilityCondition:
    range_m: Optional[float] = None


@dataclass(frozen=True)
class Conditions:
    """Unified conditions snapshot."""
    waves: WaveCondition = field(default_factory=WaveCondition)
    wind: WindCondition = field(default_factory=WindCondition)
    tide: TideCondition = field(default_factory=TideCondition)
    weather: WeatherCondition = field(default_factory=WeatherCondition)
    # No visibility provider exists yet
    visibility: Optional[VisibilityCondition] = None

    def numeric_values(self) -> list[Optional[float]]:
        """All leaf numeric fields, in declaration order."""
        records = [self.waves, self.wind, self.tide, self.weather]
        if self.visibility is not None:
            records.append(self.visibility)

        values = []
        for record in records:
            for f in fields(record):
                value = getattr(record, f.name)
                if not isinstance(value, TideState):
                    values.append(value)
        return values

    def is_empty(self) -> bool:
        """True when no numeric field carries a value."""
        return all(value is None for value in self.numeric_values())


@dataclass(frozen=True)
class DataSourceInfo:
    """Provenance of one upstream call."""
    name: str
    url: str
    fetched_at: datetime

    @classmethod
    def now(cls, name: str, url: str) -> "DataSourceInfo":
        return cls(name=name, url=url, fetched_at=datetime.now(timezone.utc))


@dataclass(frozen=True)
class TidePoint:
    """One tide height sample."""
    time: datetime
    height_m: float


@dataclass(frozen=True)
class TideSeries:
    """Chronological, finite tide heights for display."""
    points: tuple[TidePoint, ...]
    station_name: Optional[str] = None
    datum: Optional[str] = None


@dataclass(frozen=True)
class TideReading:
    """Result of a tide provider call."""
    condition: TideCondition
    series: TideSeries
    source: DataSourceInfo


@dataclass(frozen=True)
class ConditionSources:
    marine: DataSourceInfo
    weather: DataSourceInfo
    tide: Optional[DataSourceInfo] = None


@dataclass(frozen=True)
class ConditionsReport:
    """Aggregated snapshot plus provenance and the raw tide series."""
    conditions: Conditions
    sources: ConditionSources
    tide: Optional[TideSeries] = None

    @property
    def has_data(self) -> bool:
        return not self.conditions.is_empty()
