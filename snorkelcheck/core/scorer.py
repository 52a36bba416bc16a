"""Snorkel condition rating.

Scoring approach:
- Each metric is classified into a tier (poor/ok/good/excellent) by the
  rubric's threshold rules
- Missing metrics are unscored: they contribute nothing, they do not count
  as poor
- The overall tier is the weighted mean of the scored tiers
  (poor=0, ok=1, good=2, excellent=3) mapped back through fixed cut points

Metric weights (config/rubric.yaml):
- Wave height: 0.35
- Wind speed: 0.25
- Precipitation: 0.15
- Gusts, tide, visibility: 0.10 each
- Cloud cover: 0.05

When nothing can be scored the tier defaults to OK, a neutral answer rather
than a measured one.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from snorkelcheck.core.conditions import Conditions, TideState
from snorkelcheck.core.rubric import RatingRubric, RatingTier, get_rubric


def neutral_tier() -> RatingTier:
    """Tier used when no metric could be scored."""
    return RatingTier.OK


@dataclass(frozen=True)
class MetricScore:
    """Classification of one metric, with display hints."""
    metric_id: str
    label: str
    value: Optional[float]
    unit: str
    tier: Optional[RatingTier]
    weight: float
    visual_max: float
    explanation: str
    text_value: Optional[str] = None

    @property
    def scored(self) -> bool:
        return self.tier is not None


@dataclass(frozen=True)
class RatingResult:
    """Overall rating for a conditions snapshot."""
    tier: RatingTier
    reason: str
    metrics: list[MetricScore] = field(default_factory=list)
    weighted_score: Optional[float] = None

    @property
    def label(self) -> str:
        return self.tier.label

    def metric(self, metric_id: str) -> Optional[MetricScore]:
        return next((m for m in self.metrics if m.metric_id == metric_id), None)


def combine_weighted(
    entries: Iterable[tuple[Optional[RatingTier], float]],
    rubric: RatingRubric,
    default: Callable[[], RatingTier] = neutral_tier,
) -> tuple[RatingTier, Optional[float]]:
    """Weighted mean of scored tiers mapped back to a tier.

    Args:
        entries: (tier or None, weight) pairs
        rubric: Supplies the overall cut points
        default: Tier when nothing is scored

    Returns:
        Tuple of (tier, weighted mean or None when nothing was scored)
    """
    total_weight = 0.0
    weighted_sum = 0.0
    for tier, weight in entries:
        if tier is None or weight <= 0:
            continue
        total_weight += weight
        weighted_sum += int(tier) * weight

    if total_weight == 0:
        return default(), None

    average = weighted_sum / total_weight
    return rubric.tier_for_score(average), average


def combine_worst(tiers: Iterable[Optional[RatingTier]]) -> RatingTier:
    """Worst scored tier, or OK when nothing is scored."""
    scored = [t for t in tiers if t is not None]
    if not scored:
        return neutral_tier()
    return min(scored)


# Metric id -> (value getter, visual max for meters/bars)
METRIC_VALUES: dict[str, tuple[Callable[[Conditions], object], float]] = {
    "wave_height": (lambda c: c.waves.height_m, 3.0),
    "wind_speed": (lambda c: c.wind.speed_ms, 10.0),
    "wind_gust": (lambda c: c.wind.gust_ms, 15.0),
    "tide_state": (lambda c: c.tide.state.value, 2.0),
    "precipitation": (lambda c: c.weather.precipitation_mm_per_hour, 5.0),
    "cloud_cover": (lambda c: c.weather.cloud_cover_percent, 100.0),
    "visibility": (lambda c: c.visibility.range_m if c.visibility else None, 30.0),
}

HEADLINE_METRICS = [("waves", "wave_height"), ("wind", "wind_speed"), ("tide", "tide_state")]


class RatingEngine:
    """Rates a Conditions snapshot against the rubric."""

    def __init__(
        self,
        rubric: Optional[RatingRubric] = None,
        default_tier: Callable[[], RatingTier] = neutral_tier,
    ):
        """Initialize the engine.

        Args:
            rubric: Rating rubric. Defaults to config/rubric.yaml.
            default_tier: Tier used when every metric is unscored.
        """
        self.rubric = rubric or get_rubric()
        self.default_tier = default_tier

        unknown = set(self.rubric.metrics) - set(METRIC_VALUES)
        if unknown:
            raise ValueError(f"Rubric defines metrics with no conditions field: {sorted(unknown)}")

    def classify(self, metric_id: str, conditions: Conditions) -> Optional[RatingTier]:
        """Tier for a single metric, or None when unscored."""
        getter, _ = METRIC_VALUES[metric_id]
        return self.rubric[metric_id].classify(getter(conditions))

    def score(self, conditions: Conditions) -> RatingResult:
        """Calculate the overall rating.

        Args:
            conditions: Snapshot to rate

        Returns:
            RatingResult with tier, reason and per-metric breakdown
        """
        metric_scores = []
        for metric_id in self.rubric.metrics:
            if metric_id == "visibility" and conditions.visibility is None:
                continue
            metric_scores.append(self._score_metric(metric_id, conditions))

        tier, average = combine_weighted(
            ((m.tier, m.weight) for m in metric_scores),
            self.rubric,
            self.default_tier,
        )

        return RatingResult(
            tier=tier,
            reason=self._generate_reason(metric_scores),
            metrics=metric_scores,
            weighted_score=round(average, 3) if average is not None else None,
        )

    def _score_metric(self, metric_id: str, conditions: Conditions) -> MetricScore:
        rule = self.rubric[metric_id]
        getter, visual_max = METRIC_VALUES[metric_id]
        raw = getter(conditions)

        if metric_id == "tide_state":
            value = conditions.tide.height_m
            text_value = conditions.tide.state.value
        else:
            value = raw
            text_value = None

        return MetricScore(
            metric_id=metric_id,
            label=rule.label,
            value=value,
            unit=rule.unit,
            tier=rule.classify(raw),
            weight=rule.weight,
            visual_max=visual_max,
            explanation=explain(metric_id, raw),
            text_value=text_value,
        )

    def _generate_reason(self, metric_scores: list[MetricScore]) -> str:
        """Name the tier of each headline metric so the verdict can be checked."""
        by_id = {m.metric_id: m for m in metric_scores}
        parts = []
        for name, metric_id in HEADLINE_METRICS:
            score = by_id.get(metric_id)
            tier_name = score.tier.key if score and score.tier is not None else "unknown"
            parts.append(f"{name} {tier_name}")
        return f"Based on {parts[0]}, {parts[1]}, and {parts[2]}."


def explain(metric_id: str, value) -> str:
    """Short human-readable note for a metric value."""
    if metric_id == "tide_state":
        return {
            TideState.HIGH.value: "Best visibility and easiest entry.",
            TideState.RISING.value: "Good incoming clear water.",
            TideState.FALLING.value: "Currents may pull away from shore.",
            TideState.LOW.value: "Shallow. Watch out for coral/rocks.",
        }.get(value, "Check local tide tables.")

    if value is None:
        return "Unknown conditions"

    if metric_id == "wave_height":
        if value < 0.5:
            return "Flat and calm. Perfect for beginners."
        if value < 1.0:
            return "Small waves. Comfortable for most."
        if value < 1.5:
            return "Choppy waters. Exercise caution."
        return "Rough seas. Not recommended."

    if metric_id == "wind_speed":
        if value < 3:
            return "Light breeze. Smooth surface."
        if value < 5:
            return "Moderate breeze. Some ripples."
        if value < 7.5:
            return "Windy. Expect surface chop."
        return "Strong winds. Rough surface conditions."

    if metric_id == "wind_gust":
        if value < 5:
            return "Steady air."
        if value < 10:
            return "Gusty at times."
        return "Strong gusts. Hard to hold position at the surface."

    if metric_id == "precipitation":
        if value < 0.1:
            return "Dry. Good visibility."
        if value < 2.0:
            return "Light rain. Visibility might drop."
        return "Heavy rain. Runoff may cloud water."

    if metric_id == "cloud_cover":
        if value <= 20:
            return "Clear skies. Bright water."
        if value <= 50:
            return "Some clouds."
        return "Overcast. Water may look murky."

    if metric_id == "visibility":
        if value >= 20:
            return "Crystal clear."
        if value >= 10:
            return "Good clarity."
        if value >= 5:
            return "Limited clarity."
        return "Murky water."

    return ""
