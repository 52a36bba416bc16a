"""Runtime configuration.

Values come from environment variables, falling back to a .env file in the
project root or the current directory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_MARINE_URL = "https://marine-api.open-meteo.com/v1/marine"
DEFAULT_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_REQUEST_TIMEOUT = 15  # seconds


def _read_env_file() -> dict[str, str]:
    """Parse KEY=VALUE lines from the first .env file found."""
    env_paths = [
        PROJECT_ROOT / ".env",
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        if not env_path.exists():
            continue
        values = {}
        try:
            with open(env_path) as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip().strip('"').strip("'")
        except OSError as e:
            logger.debug(f"Could not read {env_path}: {e}")
            continue
        return values
    return {}


def get_setting(name: str, default: str = "", env_file: Optional[dict] = None) -> str:
    """Look up a setting in the environment, then in the .env file."""
    value = os.environ.get(name, "")
    if value:
        return value
    if env_file is None:
        env_file = _read_env_file()
    return env_file.get(name, default) or default


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, resolved once at startup."""
    stormglass_api_key: str = ""
    worldtides_api_key: str = ""
    marine_url: str = DEFAULT_MARINE_URL
    weather_url: str = DEFAULT_WEATHER_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    rubric_path: Path = PROJECT_ROOT / "config" / "rubric.yaml"
    spots_path: Path = PROJECT_ROOT / "config" / "spots.yaml"

    @classmethod
    def from_env(cls) -> "Settings":
        env_file = _read_env_file()

        timeout_raw = get_setting("SNORKEL_REQUEST_TIMEOUT", "", env_file)
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_REQUEST_TIMEOUT
        except ValueError:
            logger.warning(f"Ignoring invalid SNORKEL_REQUEST_TIMEOUT={timeout_raw!r}")
            timeout = DEFAULT_REQUEST_TIMEOUT

        return cls(
            stormglass_api_key=get_setting("STORMGLASS_API_KEY", "", env_file),
            worldtides_api_key=get_setting("WORLDTIDES_API_KEY", "", env_file),
            marine_url=get_setting("OPEN_METEO_MARINE_URL", DEFAULT_MARINE_URL, env_file),
            weather_url=get_setting("OPEN_METEO_WEATHER_URL", DEFAULT_WEATHER_URL, env_file),
            request_timeout=timeout,
        )
