"""Conditions aggregation.

Fetches marine, weather and tide data for a point and aligns them on one
instant. This is the main orchestration layer that connects:
- Open-Meteo marine and forecast series (clients/open_meteo_client.py)
- The active tide provider, if any (clients/tide_provider.py)
- The snapshot model (conditions.py)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional

import pandas as pd

from snorkelcheck.clients.open_meteo_client import OpenMeteoClient, OpenMeteoError, is_swell_unsupported
from snorkelcheck.clients.tide_provider import TideProvider, select_tide_provider
from snorkelcheck.config import Settings
from snorkelcheck.core.conditions import (
    ConditionSources,
    Conditions,
    ConditionsReport,
    DataSourceInfo,
    TideCondition,
    TideReading,
    TideState,
    WaveCondition,
    WeatherCondition,
    WindCondition,
)
from snorkelcheck.core.geo import GeoPoint
from snorkelcheck.core.timeseries import finite_or_none, nearest_index


logger = logging.getLogger(__name__)

TideStatePolicy = Callable[[Optional[float]], TideState]


def tide_state_from_height(height_m: Optional[float]) -> TideState:
    """Guess the tide state from height alone.

    Used only when no tide provider ran. Rough cut points around mean sea
    level; a product heuristic, not a tidal model.
    """
    if height_m is None:
        return TideState.UNKNOWN
    if height_m > 0.6:
        return TideState.HIGH
    if height_m > 0.1:
        return TideState.RISING
    if height_m > -0.2:
        return TideState.FALLING
    return TideState.LOW


def value_at(frame: pd.DataFrame, column: str, target: datetime) -> Optional[float]:
    """Finite value of column at the row nearest target, or None."""
    if column not in frame.columns:
        return None
    index = nearest_index(frame.index, target)
    if index is None:
        return None
    return finite_or_none(frame[column].iloc[index])


def first_present(*values: Optional[float]) -> Optional[float]:
    return next((v for v in values if v is not None), None)


class ConditionsAggregator:
    """Builds a synchronized Conditions snapshot for a point."""

    MARINE_SOURCE_NAME = "Open-Meteo Marine"
    WEATHER_SOURCE_NAME = "Open-Meteo Weather"

    def __init__(
        self,
        open_meteo: Optional[OpenMeteoClient] = None,
        tide_provider: Optional[TideProvider] = None,
        clock: Optional[Callable[[], datetime]] = None,
        tide_state_policy: TideStatePolicy = tide_state_from_height,
    ):
        """Initialize the aggregator with optional dependency injection.

        Args:
            open_meteo: Marine and weather client.
            tide_provider: Active tide provider, or None to run without tides.
            clock: Returns the current instant. Defaults to UTC now.
            tide_state_policy: Derives a tide state when no provider ran.
        """
        self.open_meteo = open_meteo or OpenMeteoClient()
        self.tide_provider = tide_provider
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.tide_state_policy = tide_state_policy

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConditionsAggregator":
        """Wire up clients from process settings."""
        open_meteo = OpenMeteoClient(
            marine_url=settings.marine_url,
            weather_url=settings.weather_url,
            timeout=settings.request_timeout,
        )
        return cls(open_meteo=open_meteo, tide_provider=select_tide_provider(settings))

    def fetch(self, point: GeoPoint) -> ConditionsReport:
        """Fetch and align all conditions for a point.

        Args:
            point: Location to check

        Returns:
            ConditionsReport with snapshot, provenance and raw tide series

        Raises:
            NoCoverageError: The marine or weather provider has no data here
            OpenMeteoError: Marine or weather fetch failed
        """
        now = self.clock()
        marine = self._fetch_marine(point)
        marine_source = DataSourceInfo.now(self.MARINE_SOURCE_NAME, self.open_meteo.marine_url)

        with ThreadPoolExecutor(max_workers=2) as executor:
            weather_future = executor.submit(self.open_meteo.get_weather_series, point)
            tide_future = executor.submit(self._fetch_tide, point, now)

            # Both branches settle before a weather failure propagates
            tide = tide_future.result()
            weather = weather_future.result()

        weather_source = DataSourceInfo.now(self.WEATHER_SOURCE_NAME, self.open_meteo.weather_url)

        conditions = self.build_conditions(marine, weather, tide, now)

        return ConditionsReport(
            conditions=conditions,
            sources=ConditionSources(
                marine=marine_source,
                weather=weather_source,
                tide=tide.source if tide else None,
            ),
            tide=tide.series if tide else None,
        )

    def _fetch_marine(self, point: GeoPoint) -> pd.DataFrame:
        """Fetch marine series, retrying once without swell fields if rejected."""
        try:
            return self.open_meteo.get_marine_series(point, include_swell=True)
        except OpenMeteoError as e:
            if not is_swell_unsupported(e):
                raise
            logger.info(f"Swell fields unsupported here ({e}); retrying with wave fields only")
        return self.open_meteo.get_marine_series(point, include_swell=False)

    def _fetch_tide(self, point: GeoPoint, now: datetime) -> Optional[TideReading]:
        """Fetch tide data. Failures degrade to no tide data."""
        if self.tide_provider is None:
            return None
        try:
            return self.tide_provider.fetch(point, now)
        except Exception as e:
            logger.warning(f"Tide provider failed, continuing without tide data: {e}")
            return None

    def build_conditions(
        self,
        marine: pd.DataFrame,
        weather: pd.DataFrame,
        tide: Optional[TideReading],
        now: datetime,
    ) -> Conditions:
        """Align marine, weather and tide data on now.

        Args:
            marine: Hourly marine series
            weather: Hourly weather series
            tide: Tide reading, or None if no provider produced one
            now: Instant to align on

        Returns:
            Conditions snapshot
        """
        waves = WaveCondition(
            height_m=first_present(
                value_at(marine, "wave_height", now),
                value_at(marine, "swell_wave_height", now),
            ),
            period_s=first_present(
                value_at(marine, "wave_period", now),
                value_at(marine, "swell_wave_period", now),
            ),
            direction_deg=first_present(
                value_at(marine, "wave_direction", now),
                value_at(marine, "swell_wave_direction", now),
            ),
        )

        wind = WindCondition(
            speed_ms=value_at(weather, "wind_speed_10m", now),
            gust_ms=value_at(weather, "wind_gusts_10m", now),
            direction_deg=value_at(weather, "wind_direction_10m", now),
        )

        if tide is not None:
            tide_condition = tide.condition
        else:
            # No provider height to go on, so the default policy yields unknown
            tide_condition = TideCondition(height_m=None, state=self.tide_state_policy(None))

        weather_condition = WeatherCondition(
            temperature_c=value_at(weather, "temperature_2m", now),
            precipitation_mm_per_hour=value_at(weather, "precipitation", now),
            cloud_cover_percent=value_at(weather, "cloud_cover", now),
        )

        return Conditions(
            waves=waves,
            wind=wind,
            tide=tide_condition,
            weather=weather_condition,
            visibility=None,
        )
