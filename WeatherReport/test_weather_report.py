"""Tests for the command line entry point."""
import os
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest

from location_data import ResolvedLocation
from location_resolver import LocationNotFoundError
from weather_data import ConditionResult, WeatherSnapshot
from weather_provider import WeatherProviderError
from weather_report import NO_REPORT, main, parse_args
from weather_service import WeatherReport, WeatherReportService


@pytest.fixture(autouse=True)
def quiet(monkeypatch):
    """Keep tests away from .env files, WEATHER_* settings and global logging."""
    for name in list(os.environ):
        if name.startswith("WEATHER_"):
            monkeypatch.delenv(name)
    with patch("report_config.load_dotenv"), patch("weather_report.setup_logging"):
        yield


@pytest.fixture
def service():
    service = Mock(spec=WeatherReportService)
    service.run.return_value = WeatherReport(
        line="72°F, 22.4°C, 54% RH / Partly Cloudy, Wind 7 mph NW (gust 12)",
        location=ResolvedLocation(code="KXNA", latitude=36.28, longitude=-94.31),
        snapshot=WeatherSnapshot(temperature=Decimal("72.4")),
        condition=ConditionResult(label="Partly Cloudy"),
        temperature=72,
    )
    return service


def test_parse_args_defaults(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    args = parse_args([])
    assert args.location == ""
    assert args.temperature_mode is None
    assert args.use_nws_alerts is None
    assert args.verbose is False


def test_parse_args_flags():
    args = parse_args(["FR-75000", "--temperature-mode", "C", "--no-alerts", "--verbose"])
    assert args.location == "FR-75000"
    assert args.temperature_mode == "C"
    assert args.use_nws_alerts is False
    assert args.verbose is True


def test_main_prints_line_and_writes_outputs(service, tmp_path, capsys):
    with patch("weather_report.build_report_service", return_value=service) as build:
        code = main(["kxna", "--output-dir", str(tmp_path), "--temperature-mode", "C"])

    assert code == 0
    assert capsys.readouterr().out == "72°F, 22.4°C, 54% RH / Partly Cloudy, Wind 7 mph NW (gust 12)\n"
    service.run.assert_called_once_with("kxna")
    service.write_outputs.assert_called_once_with(service.run.return_value)
    config = build.call_args.args[0]
    assert config.output_dir == str(tmp_path)
    assert config.temperature_mode == "C"


@pytest.mark.parametrize("error", [
    LocationNotFoundError("Could not resolve location 'QQQQ'"),
    WeatherProviderError("No response from Open-Meteo"),
])
def test_main_no_report(service, tmp_path, capsys, error):
    service.run.side_effect = error
    with patch("weather_report.build_report_service", return_value=service):
        code = main(["QQQQ", "--output-dir", str(tmp_path)])

    assert code == 1
    assert capsys.readouterr().out == f"{NO_REPORT}\n"
    service.write_outputs.assert_not_called()


def test_main_clears_stale_outputs_before_running(service, tmp_path):
    (tmp_path / "temperature").write_text("55\n")
    (tmp_path / "condition.gsm").write_bytes(b"old")
    service.run.side_effect = LocationNotFoundError("nope")

    with patch("weather_report.build_report_service", return_value=service):
        main(["QQQQ", "--output-dir", str(tmp_path)])

    assert not (tmp_path / "temperature").exists()
    assert not (tmp_path / "condition.gsm").exists()
