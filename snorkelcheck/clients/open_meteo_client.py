"""Open-Meteo client for hourly marine and weather series.

Both endpoints are queried by coordinate with timezone=auto, so hourly
timestamps come back in the point's local time; the response's
utc_offset_seconds is used to bring them to UTC.

Errors carry the provider's "reason" string. Reasons that say the point
has no coverage (land, no data) raise NoCoverageError so callers can look
for a nearby spot instead of asking the user to retry.
"""

import logging
import re
from typing import Optional

import pandas as pd
import requests

from snorkelcheck.config import DEFAULT_MARINE_URL, DEFAULT_REQUEST_TIMEOUT, DEFAULT_WEATHER_URL
from snorkelcheck.core.geo import GeoPoint
from snorkelcheck.core.timeseries import to_utc_index


logger = logging.getLogger(__name__)

WAVE_FIELDS = ["wave_height", "wave_period", "wave_direction"]
SWELL_FIELDS = ["swell_wave_height", "swell_wave_period", "swell_wave_direction"]
WEATHER_FIELDS = [
    "wind_speed_10m",
    "wind_gusts_10m",
    "wind_direction_10m",
    "precipitation",
    "cloud_cover",
    "temperature_2m",
]

NO_COVERAGE_PATTERN = re.compile(r"no data|not available|land", re.IGNORECASE)
SWELL_PATTERN = re.compile(r"swell", re.IGNORECASE)


class OpenMeteoClient:
    """Client for the Open-Meteo marine and forecast APIs."""

    def __init__(
        self,
        marine_url: str = DEFAULT_MARINE_URL,
        weather_url: str = DEFAULT_WEATHER_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize the Open-Meteo client.

        Args:
            marine_url: Marine API endpoint
            weather_url: Forecast API endpoint
            session: HTTP session. Defaults to a new requests.Session.
            timeout: Per-request timeout in seconds
        """
        self.marine_url = marine_url
        self.weather_url = weather_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_marine_series(self, point: GeoPoint, include_swell: bool = True) -> pd.DataFrame:
        """Get hourly wave (and optionally swell) series for a point.

        Args:
            point: Location to query
            include_swell: Request swell height/period/direction as well

        Returns:
            DataFrame indexed by UTC time, one column per returned field
        """
        fields = WAVE_FIELDS + SWELL_FIELDS if include_swell else WAVE_FIELDS
        return self._fetch_hourly(self.marine_url, point, fields)

    def get_weather_series(self, point: GeoPoint) -> pd.DataFrame:
        """Get hourly wind (m/s), precipitation, cloud cover and temperature for a point."""
        return self._fetch_hourly(self.weather_url, point, WEATHER_FIELDS, {"wind_speed_unit": "ms"})

    def _fetch_hourly(
        self,
        url: str,
        point: GeoPoint,
        fields: list[str],
        extra_params: Optional[dict] = None,
    ) -> pd.DataFrame:
        params = {
            "latitude": point.latitude,
            "longitude": point.longitude,
            "timezone": "auto",
            "hourly": ",".join(fields),
            **(extra_params or {}),
        }

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise OpenMeteoError(f"Failed to fetch Open-Meteo data: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        reason = data.get("reason") if isinstance(data, dict) else None

        if not response.ok:
            raise _error_for_reason(reason or f"Failed to fetch Open-Meteo data (HTTP {response.status_code})")

        if not isinstance(data, dict):
            raise OpenMeteoError("Failed to parse Open-Meteo response")

        if data.get("error"):
            raise _error_for_reason(reason or "Open-Meteo returned an error")

        hourly = data.get("hourly")
        if not isinstance(hourly, dict) or not hourly.get("time"):
            raise OpenMeteoError("Open-Meteo response missing hourly data")

        try:
            utc_offset_seconds = int(data.get("utc_offset_seconds") or 0)
            return self._to_frame(hourly, fields, utc_offset_seconds)
        except (TypeError, ValueError) as e:
            raise OpenMeteoError("Open-Meteo response has malformed hourly data") from e

    def _to_frame(self, hourly: dict, fields: list[str], utc_offset_seconds: int) -> pd.DataFrame:
        """Convert the hourly block to a DataFrame indexed by UTC time.

        Value arrays shorter than the time array are padded with NaN; missing
        fields are left out entirely.
        """
        if not isinstance(hourly["time"], list):
            raise TypeError("hourly.time is not an array")
        index = to_utc_index(hourly["time"], utc_offset_seconds)
        positions = range(len(index))

        columns = {}
        for name in fields:
            values = hourly.get(name)
            if values is None:
                continue
            if not isinstance(values, list):
                raise TypeError(f"hourly.{name} is not an array")
            series = pd.to_numeric(pd.Series(list(values)[:len(index)], dtype=object), errors="coerce")
            columns[name] = series.reindex(positions)

        frame = pd.DataFrame(columns, index=positions)
        frame.index = index
        logger.debug(f"Open-Meteo returned {len(frame)} hourly rows, columns: {list(frame.columns)}")
        return frame


def _error_for_reason(reason: str) -> "OpenMeteoError":
    if NO_COVERAGE_PATTERN.search(reason):
        return NoCoverageError(reason)
    return OpenMeteoError(reason)


def is_swell_unsupported(error: Exception) -> bool:
    """True when the provider rejected the request because of swell fields."""
    return (
        isinstance(error, OpenMeteoError)
        and not isinstance(error, NoCoverageError)
        and bool(SWELL_PATTERN.search(str(error)))
    )


class OpenMeteoError(Exception):
    """Exception raised for Open-Meteo transport or format failures."""

    pass


class NoCoverageError(OpenMeteoError):
    """The provider has no data for the requested point."""

    pass
