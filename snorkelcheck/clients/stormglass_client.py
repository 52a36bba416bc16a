"""Stormglass sea-level client.

Fetches raw sea-level samples for a single coordinate over a window of six
hours either side of now. The API key is sent in the Authorization header.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from snorkelcheck.clients.tide_provider import TidePayload, TideProvider
from snorkelcheck.core.geo import GeoPoint


logger = logging.getLogger(__name__)

STORMGLASS_URL = "https://api.stormglass.io/v2/tide/sea-level/point"
WINDOW = timedelta(hours=6)


class StormglassClient(TideProvider):
    """Tide heights from the Stormglass sea-level endpoint."""

    name = "Stormglass Tide"
    url = STORMGLASS_URL

    def _request(self, point: GeoPoint, now: datetime) -> Optional[TidePayload]:
        params = {
            "lat": point.latitude,
            "lng": point.longitude,
            "params": "seaLevel",
            "start": int((now - WINDOW).timestamp()),
            "end": int((now + WINDOW).timestamp()),
        }

        response = self.session.get(
            STORMGLASS_URL,
            params=params,
            headers={"Authorization": self.api_key},
            timeout=self.timeout,
        )
        if not response.ok:
            logger.debug(f"Stormglass returned HTTP {response.status_code}")
            return None

        data = response.json()
        if not isinstance(data, dict):
            return None

        entries = data.get("data")
        if not isinstance(entries, list):
            return None
        meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
        station = meta.get("station") if isinstance(meta.get("station"), dict) else {}

        return TidePayload(
            samples=[(entry.get("time"), entry.get("sg")) for entry in entries if isinstance(entry, dict)],
            station_name=station.get("name"),
            datum=meta.get("datum"),
        )
