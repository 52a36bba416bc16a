"""Core conditions model, tide analysis and rating engine.

The aggregator, nearby search and check workflow depend on the API clients
and are imported from their own modules (core.aggregator, core.nearby,
core.checker).
"""

from snorkelcheck.core.conditions import (
    Conditions,
    ConditionsReport,
    DataSourceInfo,
    TideCondition,
    TideSeries,
    TideState,
    VisibilityCondition,
    WaveCondition,
    WeatherCondition,
    WindCondition,
)
from snorkelcheck.core.geo import GeoPoint, distance_km
from snorkelcheck.core.tides import classify_tide_state
from snorkelcheck.core.rubric import RatingRubric, RatingTier, get_rubric, load_rubric
from snorkelcheck.core.scorer import RatingEngine, RatingResult, combine_worst
from snorkelcheck.core.spots import Spot, SpotCandidate, SpotDatabase

__all__ = [
    # Conditions
    "Conditions",
    "ConditionsReport",
    "DataSourceInfo",
    "TideCondition",
    "TideSeries",
    "TideState",
    "VisibilityCondition",
    "WaveCondition",
    "WeatherCondition",
    "WindCondition",
    # Geo / tides
    "GeoPoint",
    "distance_km",
    "classify_tide_state",
    # Rating
    "RatingEngine",
    "RatingResult",
    "RatingRubric",
    "RatingTier",
    "combine_worst",
    "get_rubric",
    "load_rubric",
    # Spots
    "Spot",
    "SpotCandidate",
    "SpotDatabase",
]
