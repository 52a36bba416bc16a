"""Spot model and list loader.

Loads named snorkel spots from spots.yaml. Spots are the candidates the
nearby search probes when a searched point has no data.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from snorkelcheck.core.geo import GeoPoint


@dataclass(frozen=True)
class Spot:
    """A named location."""
    id: str
    name: str
    point: GeoPoint
    place_name: str = ""


@dataclass(frozen=True)
class SpotCandidate:
    """A spot and its distance from a reference point."""
    spot: Spot
    distance_km: float

    @property
    def name(self) -> str:
        return self.spot.name


class SpotDatabase:
    """Spots loaded from YAML."""

    def __init__(self, spots_path: Optional[Path] = None):
        """Initialize the spot database.

        Args:
            spots_path: Path to spots.yaml. Defaults to config/spots.yaml.
        """
        if spots_path is None:
            possible_paths = [
                Path(__file__).parent.parent.parent / "config" / "spots.yaml",
                Path.cwd() / "config" / "spots.yaml",
            ]
            for path in possible_paths:
                if path.exists():
                    spots_path = path
                    break

        if spots_path is None or not Path(spots_path).exists():
            raise FileNotFoundError("Could not find spots.yaml")

        self.spots_path = Path(spots_path)
        self._spots: dict[str, Spot] = {}
        self._load_spots()

    def _load_spots(self) -> None:
        """Load spots from YAML file."""
        with open(self.spots_path) as f:
            data = yaml.safe_load(f) or {}

        for spot_data in data.get("spots", []):
            spot = self._parse_spot(spot_data)
            self._spots[spot.id] = spot

    def _parse_spot(self, data: dict) -> Spot:
        coords = data.get("coordinates", {})
        return Spot(
            id=data.get("id", "unknown"),
            name=data.get("name", "Unknown"),
            place_name=data.get("place_name", ""),
            point=GeoPoint(
                latitude=float(coords.get("lat", 0)),
                longitude=float(coords.get("lon", 0)),
            ),
        )

    def get_spot(self, spot_id: str) -> Optional[Spot]:
        return self._spots.get(spot_id)

    def get_spot_by_name(self, name: str) -> Optional[Spot]:
        """Get a spot by name (case-insensitive partial match)."""
        name_lower = name.lower()
        for spot in self._spots.values():
            if name_lower in spot.name.lower():
                return spot
        return None

    def get_all_spots(self) -> list[Spot]:
        return list(self._spots.values())

    @property
    def spot_count(self) -> int:
        return len(self._spots)
