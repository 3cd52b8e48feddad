"""Integration tests - can optionally hit the real services (disabled by default)."""
import os

import pytest

from http_client import HttpFetcher
from location_data import ResolutionMode, ResolvedLocation
from open_meteo_provider import OpenMeteoGeocoder, OpenMeteoProvider
from report_config import ReportConfig
from weather_report import build_report_service


@pytest.mark.skipif(
    not os.environ.get("WEATHER_REPORT_LIVE"),
    reason="WEATHER_REPORT_LIVE not set - skipping integration test"
)
def test_open_meteo_integration():
    """
    Integration test that hits the real Open-Meteo forecast API.

    Set WEATHER_REPORT_LIVE=1 to run this test.
    """
    provider = OpenMeteoProvider(HttpFetcher(), temperature_mode="F")
    location = ResolvedLocation(code="KXNA", latitude=36.2819, longitude=-94.3068, mode=ResolutionMode.AIRPORT)

    snapshot = provider.get_current(location)

    assert snapshot.temperature is not None
    assert snapshot.temperature_unit == "F"


@pytest.mark.skipif(
    not os.environ.get("WEATHER_REPORT_LIVE"),
    reason="WEATHER_REPORT_LIVE not set - skipping integration test"
)
def test_open_meteo_geocoder_integration():
    result = OpenMeteoGeocoder(HttpFetcher()).search("London", count=1)
    assert result is not None
    assert 51 < result.latitude < 52


@pytest.mark.skipif(
    not os.environ.get("WEATHER_REPORT_LIVE"),
    reason="WEATHER_REPORT_LIVE not set - skipping integration test"
)
def test_report_service_integration(tmp_path):
    """Full run for an airport code with files under tmp_path."""
    config = ReportConfig(
        output_dir=str(tmp_path),
        cache_file=str(tmp_path / "airport-cache.json"),
        airport_db=str(tmp_path / "weather-airports.csv"),
        process_condition=False,
    )
    service = build_report_service(config)

    report = service.run("KXNA")

    assert report.location.mode == ResolutionMode.AIRPORT
    assert "°F" in report.line

    # Second run is served from the geocode cache
    again = service.run("KXNA")
    assert again.location == report.location
