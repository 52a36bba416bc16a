"""API clients for marine, weather and tide data sources."""

from snorkelcheck.clients.open_meteo_client import NoCoverageError, OpenMeteoClient, OpenMeteoError
from snorkelcheck.clients.stormglass_client import StormglassClient
from snorkelcheck.clients.tide_provider import TideProvider, select_tide_provider
from snorkelcheck.clients.worldtides_client import WorldTidesClient

__all__ = [
    "NoCoverageError",
    "OpenMeteoClient",
    "OpenMeteoError",
    "StormglassClient",
    "TideProvider",
    "WorldTidesClient",
    "select_tide_provider",
]
