"""WorldTides client.

Fetches today's modeled tide heights (chart datum) for a coordinate.
Samples carry either an epoch `dt` or an ISO `date`. The API key is passed
as a query parameter.
"""

import logging
from datetime import datetime
from typing import Optional

from snorkelcheck.clients.tide_provider import TidePayload, TideProvider
from snorkelcheck.core.geo import GeoPoint


logger = logging.getLogger(__name__)

WORLDTIDES_URL = "https://www.worldtides.info/api/v3"


class WorldTidesClient(TideProvider):
    """Tide heights from the WorldTides v3 API."""

    name = "WorldTides"
    url = WORLDTIDES_URL

    def _request(self, point: GeoPoint, now: datetime) -> Optional[TidePayload]:
        params = {
            "heights": "",
            "date": "today",
            "days": 1,
            "datum": "CD",
            "localtime": "",
            "lat": point.latitude,
            "lon": point.longitude,
            "key": self.api_key,
        }

        response = self.session.get(WORLDTIDES_URL, params=params, timeout=self.timeout)
        if not response.ok:
            logger.debug(f"WorldTides returned HTTP {response.status_code}")
            return None

        data = response.json()
        if not isinstance(data, dict):
            return None
        if data.get("status") != 200:
            logger.debug(f"WorldTides error: {data.get('error', 'unknown error')}")
            return None

        heights = data.get("heights")
        if not isinstance(heights, list):
            return None

        return TidePayload(
            # ISO date takes precedence over epoch seconds
            samples=[(entry.get("date") or entry.get("dt"), entry.get("height")) for entry in heights if isinstance(entry, dict)],
            station_name=data.get("station"),
            datum=data.get("responseDatum"),
        )
