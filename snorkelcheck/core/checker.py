"""Conditions check workflow.

Ties aggregation, rating and nearby search together the way a caller
uses them: fetch a spot, rate it if there is data, and otherwise suggest
nearby spots that do have data. Callers get one of three outcomes:
- ok: rated conditions (possibly without tide data)
- no_data: the point has no coverage; nearby suggestions attached
- error: an upstream failure; worth trying again
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from snorkelcheck.clients.open_meteo_client import NoCoverageError, OpenMeteoError
from snorkelcheck.core.aggregator import ConditionsAggregator
from snorkelcheck.core.conditions import ConditionsReport
from snorkelcheck.core.nearby import DEFAULT_LIMIT, NearbySpotFinder
from snorkelcheck.core.scorer import RatingEngine, RatingResult
from snorkelcheck.core.spots import Spot, SpotCandidate


logger = logging.getLogger(__name__)


class CheckStatus(Enum):
    OK = "ok"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass(frozen=True)
class CheckOutcome:
    """Result of checking one spot."""
    status: CheckStatus
    spot: Spot
    message: str = ""
    report: Optional[ConditionsReport] = None
    rating: Optional[RatingResult] = None
    suggestions: list[SpotCandidate] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """Conditions shown without tide data."""
        return self.report is not None and self.report.sources.tide is None


class ConditionsChecker:
    """Checks a spot and falls back to nearby spots when it has no data."""

    def __init__(
        self,
        aggregator: ConditionsAggregator,
        engine: Optional[RatingEngine] = None,
        finder: Optional[NearbySpotFinder] = None,
        suggestion_limit: int = DEFAULT_LIMIT,
    ):
        self.aggregator = aggregator
        self.engine = engine or RatingEngine()
        self.finder = finder or NearbySpotFinder(aggregator)
        self.suggestion_limit = suggestion_limit

    def check(self, spot: Spot, candidates: Iterable[Spot] = ()) -> CheckOutcome:
        """Check conditions at a spot.

        Args:
            spot: Spot to check
            candidates: Fallback spots to search when the spot has no data

        Returns:
            CheckOutcome
        """
        try:
            report = self.aggregator.fetch(spot.point)
        except NoCoverageError as e:
            logger.info(f"No coverage at {spot.name}: {e}")
            return self._no_data(spot, candidates)
        except OpenMeteoError as e:
            logger.error(f"Failed to fetch conditions for {spot.name}: {e}")
            return CheckOutcome(
                status=CheckStatus.ERROR,
                spot=spot,
                message=f"{e}. Please try again.",
            )

        if report.conditions.is_empty():
            logger.info(f"Empty snapshot at {spot.name}")
            return self._no_data(spot, candidates)

        rating = self.engine.score(report.conditions)
        outcome = CheckOutcome(
            status=CheckStatus.OK,
            spot=spot,
            message=f"{rating.label} conditions",
            report=report,
            rating=rating,
        )
        if outcome.partial:
            logger.debug(f"Rated {spot.name} without tide data")
        return outcome

    def _no_data(self, spot: Spot, candidates: Iterable[Spot]) -> CheckOutcome:
        logger.info("Looking for nearby spots with data...")
        suggestions = self.finder.search(spot, candidates, self.suggestion_limit)

        if suggestions:
            message = "No data for that spot. Try a nearby option."
        else:
            message = "No nearby spots with data. Try another location."

        return CheckOutcome(
            status=CheckStatus.NO_DATA,
            spot=spot,
            message=message,
            suggestions=suggestions,
        )
