"""Stand-ins for requests sessions and upstream payloads used by the tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


class StubResponse:
    """Minimal requests.Response replacement."""

    def __init__(self, status_code: int = 200, payload=None, invalid_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


Handler = Union[StubResponse, Exception, Callable[[dict], Union[StubResponse, Exception]]]


class StubSession:
    """Routes GET requests by URL to canned responses and records every call."""

    def __init__(self, handlers: Optional[dict[str, Handler]] = None):
        self.handlers = handlers or {}
        self.calls: list[dict] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({
            "url": url,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
            "timeout": timeout,
        })
        handler = self.handlers[url]
        result = handler(dict(params or {})) if callable(handler) else handler
        if isinstance(result, Exception):
            raise result
        return result

    def calls_to(self, url: str) -> list[dict]:
        return [c for c in self.calls if c["url"] == url]


def hourly_times(start: datetime, count: int, step_hours: int = 1) -> list[str]:
    """Open-Meteo style local timestamps (no offset)."""
    return [
        (start + timedelta(hours=i * step_hours)).strftime("%Y-%m-%dT%H:%M")
        for i in range(count)
    ]


def open_meteo_payload(times: list[str], utc_offset_seconds: int = 0, **fields) -> dict:
    return {
        "latitude": 21.27,
        "longitude": -157.69,
        "utc_offset_seconds": utc_offset_seconds,
        "hourly": {"time": times, **fields},
    }
