"""Geographic helpers.

Points are plain latitude/longitude pairs in degrees. Distances use the
haversine formula on a spherical Earth.
"""

import math
from dataclasses import dataclass


EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True, eq=False)
class GeoPoint:
    """Geographic coordinates in degrees."""
    latitude: float
    longitude: float


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in kilometers
    """
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)

    haversine = (
        math.sin(d_lat / 2) ** 2 +
        math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push haversine a hair past 1 for antipodal points
    haversine = min(1.0, haversine)

    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(haversine), math.sqrt(1 - haversine))
