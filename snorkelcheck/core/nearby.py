"""Nearby spot search.

When a point has no usable data, rank candidate spots by distance and
probe them one at a time, nearest first, until enough spots with real
data turn up. Probes run sequentially so nothing is fetched past the
target count.
"""

import logging
from typing import Iterable

from snorkelcheck.core.aggregator import ConditionsAggregator
from snorkelcheck.core.geo import distance_km
from snorkelcheck.core.spots import Spot, SpotCandidate


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3


def rank_by_distance(origin: Spot, candidates: Iterable[Spot]) -> list[SpotCandidate]:
    """Candidates other than origin, nearest first.

    Args:
        origin: Reference spot (excluded by id)
        candidates: Spots to rank

    Returns:
        SpotCandidates sorted by ascending distance; ties keep input order
    """
    ranked = [
        SpotCandidate(spot=spot, distance_km=distance_km(origin.point, spot.point))
        for spot in candidates
        if spot.id != origin.id
    ]
    return sorted(ranked, key=lambda c: c.distance_km)


class NearbySpotFinder:
    """Finds the nearest spots that have conditions data."""

    def __init__(self, aggregator: ConditionsAggregator):
        """Initialize the finder.

        Args:
            aggregator: Used to probe each candidate
        """
        self.aggregator = aggregator

    def search(
        self,
        origin: Spot,
        candidates: Iterable[Spot],
        limit: int = DEFAULT_LIMIT,
    ) -> list[SpotCandidate]:
        """Find up to limit nearby spots with data.

        Args:
            origin: Spot that had no data
            candidates: Spots to consider
            limit: Maximum number of spots to return

        Returns:
            Spots with data, nearest first. Empty if none have data.
        """
        results: list[SpotCandidate] = []
        if limit <= 0:
            return results

        for candidate in rank_by_distance(origin, candidates):
            try:
                report = self.aggregator.fetch(candidate.spot.point)
            except Exception as e:
                logger.debug(f"Skipping {candidate.name}: {e}")
                continue

            if report.conditions.is_empty():
                logger.debug(f"Skipping {candidate.name}: no data")
                continue

            logger.info(f"Found data at {candidate.name} ({candidate.distance_km:.1f} km)")
            results.append(candidate)
            if len(results) >= limit:
                break

        return results
