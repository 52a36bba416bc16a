#!/usr/bin/env python3
"""Snorkel conditions checker.

Checks live conditions at a spot and prints the rating. When the spot has
no marine data, nearby spots from the spot list are probed instead.

Usage:
    # Check a known spot
    python scripts/check_conditions.py --spot hanauma_bay

    # Check a coordinate
    python scripts/check_conditions.py --lat 21.269 --lon -157.694

    # Machine-readable output
    python scripts/check_conditions.py --spot sharks_cove --json

Tide data needs STORMGLASS_API_KEY or WORLDTIDES_API_KEY in the environment
or in .env.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from snorkelcheck.config import Settings
from snorkelcheck.core.aggregator import ConditionsAggregator
from snorkelcheck.core.checker import CheckOutcome, CheckStatus, ConditionsChecker
from snorkelcheck.core.geo import GeoPoint
from snorkelcheck.core.rubric import load_rubric
from snorkelcheck.core.scorer import RatingEngine
from snorkelcheck.core.spots import Spot, SpotDatabase


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Quiet down noisy loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Check current snorkel conditions at a spot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--spot", type=str, help="Spot id or name from the spot list")
    parser.add_argument("--lat", type=float, help="Latitude in degrees")
    parser.add_argument("--lon", type=float, help="Longitude in degrees")

    parser.add_argument(
        "--spots",
        type=str,
        help="Path to spots.yaml (default: config/spots.yaml)",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=3,
        help="Maximum nearby suggestions when the spot has no data (default: 3)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the outcome as JSON",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)
    if args.spot is None and (args.lat is None or args.lon is None):
        parser.error("give --spot, or both --lat and --lon")
    return args


def resolve_spot(args, spot_db: SpotDatabase) -> Spot:
    """Spot to check from --spot or --lat/--lon."""
    if args.spot:
        spot = spot_db.get_spot(args.spot) or spot_db.get_spot_by_name(args.spot)
        if spot is None:
            raise SystemExit(f"Unknown spot: {args.spot}")
        return spot

    return Spot(
        id="custom",
        name=f"{args.lat:.4f}, {args.lon:.4f}",
        point=GeoPoint(latitude=args.lat, longitude=args.lon),
    )


def load_spots(args, settings: Settings) -> SpotDatabase:
    """Spot list from --spots, else the configured spots file."""
    return SpotDatabase(Path(args.spots) if args.spots else settings.spots_path)


def _fmt(value, unit: str) -> str:
    if value is None:
        return "-"
    return f"{value:.1f} {unit}".strip()


def format_text(outcome: CheckOutcome) -> str:
    """Human-readable outcome."""
    lines = [f"{outcome.spot.name}", "=" * 50]

    if outcome.status is CheckStatus.ERROR:
        lines.append(f"ERROR: {outcome.message}")
        return "\n".join(lines)

    if outcome.status is CheckStatus.NO_DATA:
        lines.append(outcome.message)
        for candidate in outcome.suggestions:
            lines.append(f"  - {candidate.name} · {candidate.distance_km:.1f} km")
        return "\n".join(lines)

    rating = outcome.rating
    lines.append(f"Rating: {rating.label}")
    lines.append(rating.reason)
    lines.append("")

    for metric in rating.metrics:
        tier = metric.tier.label if metric.tier is not None else "unscored"
        shown = metric.text_value or _fmt(metric.value, metric.unit)
        lines.append(f"  {metric.label:<14} {shown:<12} {tier:<10} {metric.explanation}")

    if outcome.partial:
        lines.append("")
        lines.append("Tide data unavailable; rating uses the other metrics.")

    report = outcome.report
    lines.append("")
    lines.append("Sources:")
    for source in (report.sources.marine, report.sources.weather, report.sources.tide):
        if source is not None:
            lines.append(f"  {source.name} ({source.url}) at {source.fetched_at.isoformat(timespec='seconds')}")
    if report.tide and report.tide.station_name:
        lines.append(f"  Tide station: {report.tide.station_name} ({report.tide.datum or 'datum n/a'})")

    return "\n".join(lines)


def outcome_to_dict(outcome: CheckOutcome) -> dict:
    """JSON-ready outcome."""
    data = {
        "status": outcome.status.value,
        "spot": {
            "id": outcome.spot.id,
            "name": outcome.spot.name,
            "place_name": outcome.spot.place_name,
            "latitude": outcome.spot.point.latitude,
            "longitude": outcome.spot.point.longitude,
        },
        "message": outcome.message,
        "suggestions": [
            {"id": c.spot.id, "name": c.name, "distance_km": round(c.distance_km, 2)}
            for c in outcome.suggestions
        ],
    }

    if outcome.rating is not None:
        data["rating"] = {
            "tier": outcome.rating.tier.key,
            "label": outcome.rating.label,
            "reason": outcome.rating.reason,
            "weighted_score": outcome.rating.weighted_score,
            "metrics": [
                {
                    "id": m.metric_id,
                    "label": m.label,
                    "value": m.value,
                    "unit": m.unit,
                    "text_value": m.text_value,
                    "tier": m.tier.key if m.tier is not None else None,
                    "max": m.visual_max,
                    "explanation": m.explanation,
                }
                for m in outcome.rating.metrics
            ],
        }

    if outcome.report is not None:
        sources = outcome.report.sources
        data["sources"] = {
            name: {"name": s.name, "url": s.url, "fetched_at": s.fetched_at.isoformat()}
            for name, s in (("marine", sources.marine), ("weather", sources.weather), ("tide", sources.tide))
            if s is not None
        }
        if outcome.report.tide is not None:
            data["tide"] = {
                "station_name": outcome.report.tide.station_name,
                "datum": outcome.report.tide.datum,
                "points": [
                    {"time": p.time.isoformat(), "height_m": p.height_m}
                    for p in outcome.report.tide.points
                ],
            }

    return data


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    settings = Settings.from_env()
    spot_db = load_spots(args, settings)
    spot = resolve_spot(args, spot_db)

    checker = ConditionsChecker(
        aggregator=ConditionsAggregator.from_settings(settings),
        engine=RatingEngine(load_rubric(settings.rubric_path)),
        suggestion_limit=args.limit,
    )

    print(f"Checking conditions at {spot.name}...", file=sys.stderr)
    outcome = checker.check(spot, spot_db.get_all_spots())

    if args.json:
        print(json.dumps(outcome_to_dict(outcome), indent=2))
    else:
        print(format_text(outcome))

    return 1 if outcome.status is CheckStatus.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
