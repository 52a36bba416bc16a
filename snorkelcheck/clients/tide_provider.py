"""Common behaviour for tide height providers.

Exactly one provider is active per process, picked by which credential is
configured. Providers never raise: a missing key, a failed request or an
empty payload all mean "no tide data" and the rest of the pipeline carries
on without it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from operator import attrgetter
from typing import Any, Optional

import pandas as pd
import requests

from snorkelcheck.config import DEFAULT_REQUEST_TIMEOUT, Settings
from snorkelcheck.core.conditions import (
    DataSourceInfo,
    TideCondition,
    TidePoint,
    TideReading,
    TideSeries,
)
from snorkelcheck.core.geo import GeoPoint
from snorkelcheck.core.tides import classify_at
from snorkelcheck.core.timeseries import finite_or_none, nearest_index, parse_timestamp


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawTideSample:
    """Provider sample after timestamp normalization. height may be NaN."""
    time: pd.Timestamp
    height: float


@dataclass(frozen=True)
class TidePayload:
    """Provider response reduced to the fields the pipeline uses."""
    samples: list[tuple[Any, Any]]  # (raw timestamp, raw height)
    station_name: Optional[str] = None
    datum: Optional[str] = None


def normalize_samples(raw: list[tuple[Any, Any]]) -> list[RawTideSample]:
    """Parse timestamps and heights, drop undated samples, sort by time.

    Non-finite heights are kept as NaN so neighbour adjacency is preserved
    when classifying.
    """
    samples = []
    for raw_time, raw_height in raw:
        ts = parse_timestamp(raw_time)
        if ts is None:
            logger.debug(f"Dropping tide sample with unparsable time {raw_time!r}")
            continue
        height = finite_or_none(raw_height)
        samples.append(RawTideSample(time=ts, height=float("nan") if height is None else height))

    # sorted() is stable, so samples sharing a timestamp keep provider order
    return sorted(samples, key=attrgetter("time"))


def build_tide_reading(
    payload: TidePayload,
    now: datetime,
    source: DataSourceInfo,
) -> Optional[TideReading]:
    """Turn a provider payload into a tide reading at now.

    Args:
        payload: Raw samples plus station metadata
        now: Instant to read the tide at
        source: Provenance of the call

    Returns:
        TideReading, or None if the payload has no finite heights
    """
    samples = normalize_samples(payload.samples)

    index = nearest_index(pd.DatetimeIndex([s.time for s in samples], tz="UTC"), now)
    if index is None:
        return None

    points = tuple(
        TidePoint(time=s.time.to_pydatetime(), height_m=s.height)
        for s in samples
        if finite_or_none(s.height) is not None
    )
    if not points:
        return None

    condition = TideCondition(
        height_m=finite_or_none(samples[index].height),
        state=classify_at(samples, index, height_of=attrgetter("height")),
    )

    return TideReading(
        condition=condition,
        series=TideSeries(points=points, station_name=payload.station_name, datum=payload.datum),
        source=source,
    )


class TideProvider:
    """Base class for tide providers.

    Subclasses implement _request() to call the upstream service and reduce
    its body to a TidePayload (or None when the service has nothing).
    """

    name = "Tide"
    url = ""

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize the provider.

        Args:
            api_key: Provider credential
            session: HTTP session. Defaults to a new requests.Session.
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, point: GeoPoint, now: Optional[datetime] = None) -> Optional[TideReading]:
        """Fetch the tide reading for a point.

        Args:
            point: Location to query
            now: Instant to read the tide at. Defaults to the current time.

        Returns:
            TideReading, or None when no tide data is available
        """
        if not self.api_key:
            logger.debug(f"No {self.name} API key configured")
            return None

        if now is None:
            now = datetime.now(timezone.utc)

        try:
            payload = self._request(point, now)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"{self.name} request failed: {e}")
            return None

        if payload is None or not payload.samples:
            logger.debug(f"{self.name} returned no tide heights for {point.latitude},{point.longitude}")
            return None

        return build_tide_reading(payload, now, DataSourceInfo.now(self.name, self.url))

    def _request(self, point: GeoPoint, now: datetime) -> Optional[TidePayload]:
        raise NotImplementedError


def select_tide_provider(
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> Optional[TideProvider]:
    """Pick the tide provider for this process from the configured credentials.

    Stormglass wins when both keys are present.

    Args:
        settings: Resolved settings
        session: Optional shared HTTP session

    Returns:
        The active provider, or None when no tide credential is configured
    """
    from snorkelcheck.clients.stormglass_client import StormglassClient
    from snorkelcheck.clients.worldtides_client import WorldTidesClient

    if settings.stormglass_api_key:
        if settings.worldtides_api_key:
            logger.info("Both tide credentials configured; using Stormglass")
        return StormglassClient(settings.stormglass_api_key, session, settings.request_timeout)

    if settings.worldtides_api_key:
        return WorldTidesClient(settings.worldtides_api_key, session, settings.request_timeout)

    logger.info("No tide provider credential configured; tide data disabled")
    return None
