"""Location token -> one-line weather summary plus playback files."""
import argparse
import logging
import os
import sys
from typing import List, Optional

from airport_directory import AirportDirectory
from alerts import NwsAlertsClient
from geocode_cache import GeocodeCache
from http_client import HttpFetcher
from location_resolver import LocationNotFoundError, LocationResolver
from open_meteo_provider import OpenMeteoGeocoder, OpenMeteoProvider
from postal_geocoder import PostalGeocoder
from report_config import ReportConfig, load_config
from report_formatter import clear_output_files
from weather_provider import WeatherProviderError
from weather_service import WeatherReportService

NO_REPORT = "No Report"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        "weather-report",
        description="Weather summary for a ZIP/postal code (75001, FR-75000) or airport (JFK, KXNA)",
    )
    parser.add_argument("location", nargs="?", default="")
    parser.add_argument("--temperature-mode", choices=["F", "C"], default=None)
    parser.add_argument("--output-dir", default=None)
    parser.add_argument("--alerts", dest="use_nws_alerts", action="store_true", default=None)
    parser.add_argument("--no-alerts", dest="use_nws_alerts", action="store_false")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--verbose", action="store_true", default=os.getenv("DEBUG") == "1")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    # stdout is reserved for the summary line
    log_level = logging.DEBUG if verbose else logging.WARNING
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def build_report_service(config: ReportConfig) -> WeatherReportService:
    fetcher = HttpFetcher()
    directory = AirportDirectory(
        config.airport_db,
        HttpFetcher(connect_timeout=5, read_timeout=20),
        max_age_seconds=config.airport_max_age,
        allowed_types=config.allowed_airport_types,
    )
    resolver = LocationResolver(
        directory=directory,
        weather_geocoder=OpenMeteoGeocoder(fetcher),
        postal_geocoder=PostalGeocoder(fetcher, config.user_agent, config.referer),
        cache=GeocodeCache(config.cache_file, max_age_seconds=config.cache_max_age),
    )
    provider = OpenMeteoProvider(
        fetcher,
        temperature_mode=config.temperature_mode,
        lookback_samples=config.lookback_samples,
    )
    alerts_client = NwsAlertsClient(fetcher, config.user_agent) if config.use_nws_alerts else None
    logging.debug("Weather report service ready (cache=%s, airports=%s)", config.cache_file, config.airport_db)
    return WeatherReportService(resolver, provider, config, alerts_client)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config({
        "temperature_mode": args.temperature_mode,
        "output_dir": args.output_dir,
        "use_nws_alerts": args.use_nws_alerts,
    })

    clear_output_files(config.output_dir)
    service = build_report_service(config)

    try:
        report = service.run(args.location)
    except LocationNotFoundError as err:
        logging.error("Location lookup failed: %s", err)
        print(NO_REPORT)
        return 1
    except WeatherProviderError as err:
        logging.error("Weather fetch failed: %s", err)
        print(NO_REPORT)
        return 1

    print(report.line)
    service.write_outputs(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
