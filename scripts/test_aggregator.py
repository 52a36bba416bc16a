#!/usr/bin/env python3
"""Tests for Open-Meteo parsing and conditions aggregation.

Run from project root:
    python scripts/test_aggregator.py
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import requests

from http_stubs import NOW, StubResponse, StubSession, fixed_clock, hourly_times, open_meteo_payload
from snorkelcheck.clients.open_meteo_client import (
    NoCoverageError,
    OpenMeteoClient,
    OpenMeteoError,
    is_swell_unsupported,
)
from snorkelcheck.config import DEFAULT_MARINE_URL, DEFAULT_WEATHER_URL
from snorkelcheck.core.aggregator import ConditionsAggregator, tide_state_from_height
from snorkelcheck.core.conditions import (
    DataSourceInfo,
    TideCondition,
    TidePoint,
    TideReading,
    TideSeries,
    TideState,
)
from snorkelcheck.core.geo import GeoPoint


SHARKS_COVE = GeoPoint(latitude=21.651, longitude=-158.063)
START = datetime(2024, 6, 15, 10, 0)  # naive, read with the payload's offset


def marine_payload(count=5, **fields):
    fields.setdefault("wave_height", [0.4] * count)
    fields.setdefault("wave_period", [8.0] * count)
    fields.setdefault("wave_direction", [310.0] * count)
    return open_meteo_payload(hourly_times(START, count), **fields)


def weather_payload(count=5, **fields):
    fields.setdefault("wind_speed_10m", [2.0] * count)
    fields.setdefault("wind_gusts_10m", [4.0] * count)
    fields.setdefault("wind_direction_10m", [60.0] * count)
    fields.setdefault("precipitation", [0.0] * count)
    fields.setdefault("cloud_cover", [10.0] * count)
    fields.setdefault("temperature_2m", [27.0] * count)
    return open_meteo_payload(hourly_times(START, count), **fields)


def make_aggregator(marine, weather=None, tide_provider=None, **kwargs):
    """Aggregator wired to a StubSession. Returns (aggregator, session)."""
    session = StubSession({
        DEFAULT_MARINE_URL: marine,
        DEFAULT_WEATHER_URL: weather if weather is not None else StubResponse(200, weather_payload()),
    })
    aggregator = ConditionsAggregator(
        open_meteo=OpenMeteoClient(session=session),
        tide_provider=tide_provider,
        clock=fixed_clock,
        **kwargs,
    )
    return aggregator, session


class StubTideProvider:
    """Returns a canned reading (or raises) and counts calls."""

    def __init__(self, reading=None, error=None):
        self.reading = reading
        self.error = error
        self.calls = 0
        self.seen_now = []

    def fetch(self, point, now=None):
        self.calls += 1
        self.seen_now.append(now)
        if self.error is not None:
            raise self.error
        return self.reading


def tide_reading(height_m, state):
    return TideReading(
        condition=TideCondition(height_m=height_m, state=state),
        series=TideSeries(
            points=(TidePoint(time=NOW, height_m=height_m),),
            station_name="Haleiwa",
            datum="MSL",
        ),
        source=DataSourceInfo(name="Stormglass Tide", url="https://api.stormglass.io/v2/tide/sea-level/point", fetched_at=NOW),
    )


def test_snapshot_aligned_on_now():
    marine = marine_payload(wave_height=[0.2, 0.3, 0.6, 0.9, 1.2])
    weather = weather_payload(wind_speed_10m=[1.0, 2.0, 3.5, 4.0, 5.0], precipitation=[0, 0, 0.2, 1.0, 1.0])
    aggregator, _ = make_aggregator(StubResponse(200, marine), StubResponse(200, weather))

    report = aggregator.fetch(SHARKS_COVE)
    c = report.conditions

    # 12:00 is the third hourly sample
    assert c.waves.height_m == 0.6
    assert c.waves.period_s == 8.0
    assert c.waves.direction_deg == 310.0
    assert c.wind.speed_ms == 3.5
    assert c.wind.gust_ms == 4.0
    assert c.weather.precipitation_mm_per_hour == 0.2
    assert c.weather.cloud_cover_percent == 10.0
    assert c.weather.temperature_c == 27.0
    assert c.visibility is None
    assert report.has_data


def test_swell_fallback_when_wave_fields_missing():
    marine = marine_payload(
        wave_height=[None] * 5,
        wave_period=[None] * 5,
        swell_wave_height=[0.8] * 5,
        swell_wave_period=[12.0] * 5,
        swell_wave_direction=[200.0] * 5,
    )
    aggregator, _ = make_aggregator(StubResponse(200, marine))

    waves = aggregator.fetch(SHARKS_COVE).conditions.waves

    assert waves.height_m == 0.8
    assert waves.period_s == 12.0
    # wave_direction is present so it wins over swell
    assert waves.direction_deg == 310.0


def test_series_with_different_cadences():
    marine = open_meteo_payload(
        hourly_times(datetime(2024, 6, 15, 6, 0), 4, step_hours=3),  # 06, 09, 12, 15
        wave_height=[1.0, 0.8, 0.5, 0.3],
    )
    weather = weather_payload(count=5, wind_speed_10m=[1.0, 2.0, 3.0, 4.0, 5.0])
    aggregator, _ = make_aggregator(StubResponse(200, marine), StubResponse(200, weather))

    c = aggregator.fetch(SHARKS_COVE).conditions

    assert c.waves.height_m == 0.5
    assert c.waves.period_s is None
    assert c.wind.speed_ms == 3.0


def test_local_times_converted_with_utc_offset():
    # Honolulu local midnight onward; 02:00 local is 12:00 UTC
    weather = open_meteo_payload(
        hourly_times(datetime(2024, 6, 15, 0, 0), 6),
        utc_offset_seconds=-36000,
        wind_speed_10m=[1.0, 2.0, 6.0, 4.0, 5.0, 7.0],
    )
    aggregator, _ = make_aggregator(StubResponse(200, marine_payload()), StubResponse(200, weather))

    assert aggregator.fetch(SHARKS_COVE).conditions.wind.speed_ms == 6.0


def test_equidistant_samples_pick_earlier():
    marine = open_meteo_payload(
        hourly_times(datetime(2024, 6, 15, 11, 30), 2),  # 11:30, 12:30
        wave_height=[0.3, 0.9],
    )
    aggregator, _ = make_aggregator(StubResponse(200, marine))

    assert aggregator.fetch(SHARKS_COVE).conditions.waves.height_m == 0.3


def test_short_value_arrays_read_as_missing():
    marine = marine_payload(wave_height=[0.4, 0.5])
    aggregator, _ = make_aggregator(StubResponse(200, marine))

    assert aggregator.fetch(SHARKS_COVE).conditions.waves.height_m is None


def test_all_null_payloads_give_empty_snapshot():
    marine = marine_payload(wave_height=[None] * 5, wave_period=[None] * 5, wave_direction=[None] * 5)
    weather = open_meteo_payload(hourly_times(START, 5))
    aggregator, _ = make_aggregator(StubResponse(200, marine), StubResponse(200, weather))

    report = aggregator.fetch(SHARKS_COVE)

    assert report.conditions.is_empty()
    assert not report.has_data


def test_request_parameters():
    aggregator, session = make_aggregator(StubResponse(200, marine_payload()))
    aggregator.fetch(SHARKS_COVE)

    marine_call = session.calls_to(DEFAULT_MARINE_URL)[0]
    assert marine_call["params"]["latitude"] == 21.651
    assert marine_call["params"]["longitude"] == -158.063
    assert marine_call["params"]["timezone"] == "auto"
    assert "swell_wave_height" in marine_call["params"]["hourly"]

    weather_call = session.calls_to(DEFAULT_WEATHER_URL)[0]
    assert weather_call["params"]["wind_speed_unit"] == "ms"
    assert weather_call["params"]["hourly"].split(",")[:3] == [
        "wind_speed_10m",
        "wind_gusts_10m",
        "wind_direction_10m",
    ]
    assert weather_call["timeout"] == 15


def test_swell_rejection_retries_once_without_swell():
    def marine(params):
        if "swell" in params["hourly"]:
            return StubResponse(400, {
                "error": True,
                "reason": "Cannot initialize WeatherVariable from invalid String value swell_wave_height",
            })
        return StubResponse(200, marine_payload())

    aggregator, session = make_aggregator(marine)
    report = aggregator.fetch(SHARKS_COVE)

    calls = session.calls_to(DEFAULT_MARINE_URL)
    assert len(calls) == 2
    assert calls[1]["params"]["hourly"] == "wave_height,wave_period,wave_direction"
    assert report.conditions.waves.height_m == 0.4


def test_error_after_swell_retry_propagates():
    responses = iter([
        StubResponse(400, {"error": True, "reason": "Unsupported variable swell_wave_period"}),
        StubResponse(500, {"error": True, "reason": "Internal server error"}),
    ])
    aggregator, session = make_aggregator(lambda params: next(responses))

    try:
        aggregator.fetch(SHARKS_COVE)
    except NoCoverageError:
        raise AssertionError("Server error must not read as no coverage")
    except OpenMeteoError as e:
        assert str(e) == "Internal server error"
    else:
        raise AssertionError("Expected OpenMeteoError")

    assert len(session.calls_to(DEFAULT_MARINE_URL)) == 2
    assert session.calls_to(DEFAULT_WEATHER_URL) == []


def test_other_marine_errors_do_not_retry():
    marine = StubResponse(400, {"error": True, "reason": "Latitude must be in range of -90 to 90°."})
    aggregator, session = make_aggregator(marine)

    try:
        aggregator.fetch(SHARKS_COVE)
    except OpenMeteoError as e:
        assert not isinstance(e, NoCoverageError)
    else:
        raise AssertionError("Expected OpenMeteoError")

    assert len(session.calls_to(DEFAULT_MARINE_URL)) == 1


def test_no_coverage_reason():
    marine = StubResponse(400, {"error": True, "reason": "No data is available for this location"})
    aggregator, _ = make_aggregator(marine)

    try:
        aggregator.fetch(SHARKS_COVE)
    except NoCoverageError as e:
        assert "No data" in str(e)
    else:
        raise AssertionError("Expected NoCoverageError")


def test_error_flag_on_success_status():
    marine = StubResponse(200, {"error": True, "reason": "Point is on land"})
    aggregator, _ = make_aggregator(marine)

    try:
        aggregator.fetch(SHARKS_COVE)
    except NoCoverageError:
        pass
    else:
        raise AssertionError("Expected NoCoverageError")


def test_invalid_json_is_an_error():
    aggregator, _ = make_aggregator(StubResponse(200, invalid_json=True))

    try:
        aggregator.fetch(SHARKS_COVE)
    except OpenMeteoError as e:
        assert "parse" in str(e)
    else:
        raise AssertionError("Expected OpenMeteoError")


def test_missing_hourly_block_is_an_error():
    aggregator, _ = make_aggregator(StubResponse(200, {"latitude": 21.65, "longitude": -158.06}))

    try:
        aggregator.fetch(SHARKS_COVE)
    except OpenMeteoError as e:
        assert "hourly" in str(e)
    else:
        raise AssertionError("Expected OpenMeteoError")


def test_malformed_hourly_block_is_an_error():
    times = hourly_times(START, 3)
    bodies = [
        open_meteo_payload(times, wave_height=0.5),
        open_meteo_payload(times, wave_height={"12:00": 0.5}),
        {"utc_offset_seconds": 0, "hourly": {"time": "2024-06-15T12:00", "wave_height": [0.5]}},
        open_meteo_payload(times, utc_offset_seconds="HST", wave_height=[0.4, 0.5, 0.6]),
    ]
    for body in bodies:
        aggregator, _ = make_aggregator(StubResponse(200, body))
        try:
            aggregator.fetch(SHARKS_COVE)
        except NoCoverageError:
            raise AssertionError(f"Malformed body must not read as no coverage: {body}")
        except OpenMeteoError as e:
            assert "malformed" in str(e), body
        else:
            raise AssertionError(f"Expected OpenMeteoError for {body}")


def test_clock_read_once_per_fetch():
    readings = iter([NOW, NOW + timedelta(hours=2), NOW + timedelta(hours=4)])
    provider = StubTideProvider(reading=tide_reading(0.5, TideState.RISING))
    marine = marine_payload(wave_height=[0.2, 0.3, 0.6, 0.9, 1.2])
    aggregator, _ = make_aggregator(StubResponse(200, marine), tide_provider=provider)
    aggregator.clock = lambda: next(readings)

    report = aggregator.fetch(SHARKS_COVE)

    # Tide and marine/weather are read at the same instant
    assert provider.seen_now == [NOW]
    assert report.conditions.waves.height_m == 0.6
    assert next(readings) == NOW + timedelta(hours=2)


def test_weather_failure_propagates_after_tide_settles():
    provider = StubTideProvider(reading=tide_reading(0.5, TideState.RISING))
    aggregator, _ = make_aggregator(
        StubResponse(200, marine_payload()),
        requests.ConnectionError("connection reset"),
        tide_provider=provider,
    )

    try:
        aggregator.fetch(SHARKS_COVE)
    except OpenMeteoError as e:
        assert "connection reset" in str(e)
    else:
        raise AssertionError("Expected OpenMeteoError")

    assert provider.calls == 1


def test_tide_failure_degrades_to_no_tide():
    provider = StubTideProvider(error=RuntimeError("provider exploded"))
    aggregator, _ = make_aggregator(StubResponse(200, marine_payload()), tide_provider=provider)

    report = aggregator.fetch(SHARKS_COVE)

    assert report.sources.tide is None
    assert report.tide is None
    assert report.conditions.tide == TideCondition(height_m=None, state=TideState.UNKNOWN)
    assert report.conditions.waves.height_m == 0.4


def test_tide_reading_flows_into_report():
    provider = StubTideProvider(reading=tide_reading(0.5, TideState.RISING))
    aggregator, _ = make_aggregator(StubResponse(200, marine_payload()), tide_provider=provider)

    report = aggregator.fetch(SHARKS_COVE)

    assert report.conditions.tide.height_m == 0.5
    assert report.conditions.tide.state == TideState.RISING
    assert report.sources.tide.name == "Stormglass Tide"
    assert report.tide.station_name == "Haleiwa"


def test_explicit_unknown_tide_state_is_kept():
    provider = StubTideProvider(reading=tide_reading(0.9, TideState.UNKNOWN))
    aggregator, _ = make_aggregator(StubResponse(200, marine_payload()), tide_provider=provider)

    tide = aggregator.fetch(SHARKS_COVE).conditions.tide

    # The height heuristic would call 0.9 m high
    assert tide.height_m == 0.9
    assert tide.state == TideState.UNKNOWN


def test_tide_state_policy_is_pluggable():
    aggregator, _ = make_aggregator(
        StubResponse(200, marine_payload()),
        tide_state_policy=lambda height: TideState.LOW,
    )

    assert aggregator.fetch(SHARKS_COVE).conditions.tide.state == TideState.LOW


def test_tide_state_from_height():
    cases = [
        (None, TideState.UNKNOWN),
        (0.9, TideState.HIGH),
        (0.6, TideState.RISING),
        (0.3, TideState.RISING),
        (0.1, TideState.FALLING),
        (0.0, TideState.FALLING),
        (-0.2, TideState.LOW),
        (-0.5, TideState.LOW),
    ]
    for height, expected in cases:
        assert tide_state_from_height(height) == expected, f"height {height}"


def test_sources_always_present():
    aggregator, _ = make_aggregator(StubResponse(200, marine_payload()))
    before = datetime.now(timezone.utc) - timedelta(seconds=1)

    sources = aggregator.fetch(SHARKS_COVE).sources

    assert sources.marine.name == "Open-Meteo Marine"
    assert sources.marine.url == DEFAULT_MARINE_URL
    assert sources.weather.name == "Open-Meteo Weather"
    assert sources.weather.url == DEFAULT_WEATHER_URL
    assert sources.marine.fetched_at >= before
    assert sources.tide is None


def test_is_swell_unsupported():
    assert is_swell_unsupported(OpenMeteoError("Invalid value swell_wave_height"))
    assert not is_swell_unsupported(OpenMeteoError("Internal server error"))
    assert not is_swell_unsupported(NoCoverageError("No swell data available"))
    assert not is_swell_unsupported(ValueError("swell"))


def run_all_tests():
    """Run all tests and report results."""
    tests = [
        (name, func) for name, func in sorted(globals().items())
        if name.startswith("test_") and callable(func)
    ]

    failed = 0
    for name, test_func in tests:
        try:
            test_func()
            print(f"  ✓ {name}")
        except AssertionError as e:
            failed += 1
            print(f"  ✗ FAILED: {name}: {e}")
        except Exception as e:
            failed += 1
            print(f"  ✗ ERROR: {name}: {e}")

    print(f"\n  Passed: {len(tests) - failed}/{len(tests)}")
    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
