"""Rating rubric model and loader.

The rubric is a static data table (config/rubric.yaml) mapping each metric
to a threshold rule and an importance weight. It is loaded once per process
and never mutated.
"""

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

import yaml


class RatingTier(IntEnum):
    """Ordered rating buckets. The value is the tier's score in combinations."""
    POOR = 0
    OK = 1
    GOOD = 2
    EXCELLENT = 3

    @property
    def label(self) -> str:
        return "OK" if self is RatingTier.OK else self.name.title()

    @property
    def key(self) -> str:
        return self.name.lower()


LOWER_IS_BETTER = "lower-is-better"
HIGHER_IS_BETTER = "higher-is-better"


@dataclass(frozen=True)
class NumericRule:
    """Three cut points; anything beyond the ok cut point is poor."""
    direction: str
    excellent: float
    good: float
    ok: float

    def classify(self, value: Optional[float]) -> Optional[RatingTier]:
        """Tier for a value, or None when the value is missing."""
        if value is None:
            return None

        if self.direction == LOWER_IS_BETTER:
            if value <= self.excellent:
                return RatingTier.EXCELLENT
            if value <= self.good:
                return RatingTier.GOOD
            if value <= self.ok:
                return RatingTier.OK
            return RatingTier.POOR

        if value >= self.excellent:
            return RatingTier.EXCELLENT
        if value >= self.good:
            return RatingTier.GOOD
        if value >= self.ok:
            return RatingTier.OK
        return RatingTier.POOR


@dataclass(frozen=True)
class CategoricalRule:
    """Explicit set membership per tier."""
    tiers: Mapping[RatingTier, frozenset]
    excluded: frozenset = frozenset()

    def classify(self, value: Optional[str]) -> Optional[RatingTier]:
        """Tier for a value, or None when missing, excluded or unlisted."""
        if not value or value in self.excluded:
            return None
        # Best tier first so a value listed twice resolves deterministically
        for tier in sorted(self.tiers, reverse=True):
            if value in self.tiers[tier]:
                return tier
        return None


Rule = Union[NumericRule, CategoricalRule]


@dataclass(frozen=True)
class MetricRule:
    """Rule plus display metadata and importance weight for one metric."""
    metric_id: str
    label: str
    unit: str
    weight: float
    rule: Rule

    def classify(self, value) -> Optional[RatingTier]:
        return self.rule.classify(value)


@dataclass(frozen=True)
class RatingRubric:
    """Complete rubric: per-metric rules and overall cut points."""
    metrics: Mapping[str, MetricRule]
    overall_cut_points: Mapping[RatingTier, float]

    def __getitem__(self, metric_id: str) -> MetricRule:
        return self.metrics[metric_id]

    def tier_for_score(self, score: float) -> RatingTier:
        """Map a weighted mean tier score back to a tier."""
        for tier in (RatingTier.EXCELLENT, RatingTier.GOOD, RatingTier.OK):
            if score >= self.overall_cut_points[tier]:
                return tier
        return RatingTier.POOR


class RubricError(ValueError):
    """Exception raised for malformed rubric files."""

    pass


def _parse_tier(name: str) -> RatingTier:
    try:
        return RatingTier[str(name).upper()]
    except KeyError:
        raise RubricError(f"Unknown rating tier: {name!r}") from None


def _parse_rule(metric_id: str, data: dict) -> Rule:
    if "tiers" in data:
        tiers = {
            _parse_tier(tier): frozenset(values or [])
            for tier, values in data["tiers"].items()
        }
        return CategoricalRule(
            tiers=MappingProxyType(tiers),
            excluded=frozenset(data.get("excluded") or []),
        )

    direction = data.get("direction")
    if direction not in (LOWER_IS_BETTER, HIGHER_IS_BETTER):
        raise RubricError(f"{metric_id}: direction must be {LOWER_IS_BETTER} or {HIGHER_IS_BETTER}")

    try:
        rule = NumericRule(
            direction=direction,
            excellent=float(data["excellent"]),
            good=float(data["good"]),
            ok=float(data["ok"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RubricError(f"{metric_id}: numeric rule needs excellent/good/ok cut points ({e})") from e

    cut_points = [rule.excellent, rule.good, rule.ok]
    expected = sorted(cut_points) if direction == LOWER_IS_BETTER else sorted(cut_points, reverse=True)
    if cut_points != expected:
        raise RubricError(f"{metric_id}: cut points out of order for {direction}")

    return rule


def parse_rubric(data: dict) -> RatingRubric:
    """Build a rubric from its YAML structure."""
    if not isinstance(data, dict) or not isinstance(data.get("metrics"), dict):
        raise RubricError("Rubric must define a 'metrics' mapping")

    metrics = {}
    for metric_id, metric_data in data["metrics"].items():
        metrics[metric_id] = MetricRule(
            metric_id=metric_id,
            label=metric_data.get("label", metric_id),
            unit=metric_data.get("unit", ""),
            weight=float(metric_data.get("weight", 0)),
            rule=_parse_rule(metric_id, metric_data),
        )

    overall = data.get("overall") or {}
    cut_points = {
        RatingTier.EXCELLENT: float(overall.get("excellent", 2.5)),
        RatingTier.GOOD: float(overall.get("good", 1.5)),
        RatingTier.OK: float(overall.get("ok", 0.75)),
    }

    return RatingRubric(
        metrics=MappingProxyType(metrics),
        overall_cut_points=MappingProxyType(cut_points),
    )


def load_rubric(rubric_path: Optional[Path] = None) -> RatingRubric:
    """Load the rubric from YAML.

    Args:
        rubric_path: Path to rubric.yaml. Defaults to config/rubric.yaml.

    Returns:
        RatingRubric
    """
    if rubric_path is None:
        possible_paths = [
            Path(__file__).parent.parent.parent / "config" / "rubric.yaml",
            Path.cwd() / "config" / "rubric.yaml",
        ]
        rubric_path = next((p for p in possible_paths if p.exists()), None)

    if rubric_path is None or not Path(rubric_path).exists():
        raise FileNotFoundError("Could not find rubric.yaml")

    with open(rubric_path) as f:
        return parse_rubric(yaml.safe_load(f))


_default_rubric: Optional[RatingRubric] = None


def get_rubric() -> RatingRubric:
    """Get the process-wide rubric (loaded on first use)."""
    global _default_rubric
    if _default_rubric is None:
        _default_rubric = load_rubric()
    return _default_rubric
