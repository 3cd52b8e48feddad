"""Open-Meteo forecast and geocoding provider implementation."""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from http_client import HttpFetcher
from location_data import ResolvedLocation, coordinates_valid
from numeric_utils import parse_number, round_half_away_from_zero, sanitize_number
from weather_data import WeatherSnapshot
from weather_provider import WeatherProviderBase, WeatherProviderError

CURRENT_FIELDS = (
    "temperature_2m",
    "weather_code",
    "relative_humidity_2m",
    "pressure_msl",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "precipitation",
    "rain",
    "showers",
    "snowfall",
    "cloud_cover",
    "is_day",
)

DEFAULT_LOOKBACK_SAMPLES = 4


def tail_numbers(values: Any, count: int = DEFAULT_LOOKBACK_SAMPLES) -> List:
    """Last ``count`` numeric samples of a series, original order, junk dropped."""
    if not isinstance(values, list):
        return []
    numbers = [n for n in (parse_number(v) for v in values) if n is not None]
    if count <= 0:
        return []
    return numbers[-count:]


def _series(payload: Dict[str, Any], block: str, key: str, count: int) -> List:
    section = payload.get(block)
    if not isinstance(section, dict):
        return []
    return tail_numbers(section.get(key), count)


def extract_snapshot(text: str, temperature_unit: str = "F", lookback: int = DEFAULT_LOOKBACK_SAMPLES) -> WeatherSnapshot:
    """
    Build a WeatherSnapshot from a raw forecast response.

    Only the fields the report needs are read, by name, from the "current"
    object. When that object is missing the top-level object is scanned
    instead. Present-but-malformed values become 0; an absent temperature
    is fatal.

    Raises:
        WeatherProviderError: empty, unparsable or error-flagged payload, or
            no temperature field
    """
    cleaned = (text or "").replace("\r", "").replace("\n", "")
    if not cleaned.strip():
        raise WeatherProviderError("Empty response from weather provider")

    try:
        payload = json.loads(cleaned)
    except ValueError as e:
        raise WeatherProviderError(f"Failed to parse response: {str(e)}")

    if not isinstance(payload, dict):
        raise WeatherProviderError("Unexpected response shape")

    if payload.get("error") is True:
        reason = payload.get("reason", "unknown error")
        raise WeatherProviderError(f"Open-Meteo API error: {reason}")

    current = payload.get("current")
    if not isinstance(current, dict):
        logging.debug("Response has no 'current' object, scanning top level")
        current = payload

    if "temperature_2m" not in current:
        raise WeatherProviderError("Response missing 'temperature_2m'")

    def optional(key: str):
        if key not in current:
            return None
        return sanitize_number(current[key])

    weather_code = optional("weather_code")
    is_day = optional("is_day")

    return WeatherSnapshot(
        temperature=sanitize_number(current["temperature_2m"]),
        temperature_unit=temperature_unit,
        weather_code=round_half_away_from_zero(weather_code) if weather_code is not None else None,
        relative_humidity=optional("relative_humidity_2m"),
        pressure_msl=optional("pressure_msl"),
        wind_speed_ms=optional("wind_speed_10m"),
        wind_direction_deg=optional("wind_direction_10m"),
        wind_gust_ms=optional("wind_gusts_10m"),
        cloud_cover_pct=optional("cloud_cover"),
        is_day=is_day is None or is_day != 0,
        precipitation_mm=optional("precipitation"),
        rain_mm=optional("rain"),
        showers_mm=optional("showers"),
        snowfall_cm=optional("snowfall"),
        cape_series=_series(payload, "hourly", "cape", lookback),
        precipitation_series=_series(payload, "minutely_15", "precipitation", lookback),
    )


class OpenMeteoProvider(WeatherProviderBase):
    """
    Weather provider using the Open-Meteo forecast API.

    One request returns the current conditions plus short recent series of
    15-minute precipitation and hourly CAPE. No API key is required.
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"
    FALLBACK_URL = "http://api.open-meteo.com/v1/forecast"

    def __init__(
        self,
        fetcher: HttpFetcher,
        temperature_mode: str = "F",
        lookback_samples: int = DEFAULT_LOOKBACK_SAMPLES,
    ):
        """
        Initialize Open-Meteo provider.

        Args:
            fetcher: HTTP transport
            temperature_mode: "F" or "C", the unit the provider reports in
            lookback_samples: How many recent series samples to keep
        """
        self.fetcher = fetcher
        self.temperature_mode = temperature_mode
        self.lookback_samples = lookback_samples

    def build_params(self, location: ResolvedLocation) -> Dict[str, Any]:
        return {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "timezone": location.timezone or "auto",
            "temperature_unit": "fahrenheit" if self.temperature_mode == "F" else "celsius",
            "wind_speed_unit": "ms",
            "precipitation_unit": "mm",
            "current": ",".join(CURRENT_FIELDS),
            "minutely_15": "precipitation",
            "hourly": "cape",
            "past_minutely_15": self.lookback_samples,
            "forecast_minutely_15": 1,
            "past_hours": self.lookback_samples,
            "forecast_hours": 1,
        }

    def get_current(self, location: ResolvedLocation) -> WeatherSnapshot:
        """
        Fetch current weather from the Open-Meteo forecast API.

        Raises:
            WeatherProviderError: If the request yields no usable payload
        """
        params = self.build_params(location)
        logging.info(f"Making Open-Meteo API request: {self.BASE_URL}")
        logging.debug(f"Request parameters: lat={location.latitude}, lon={location.longitude}, tz={params['timezone']}")

        text = self.fetcher.get_text(self.BASE_URL, params=params, fallback_urls=(self.FALLBACK_URL,))
        if not text:
            raise WeatherProviderError("No response from Open-Meteo")

        logging.debug(f"API response (truncated): {text[:500]}...")
        snapshot = extract_snapshot(text, self.temperature_mode, self.lookback_samples)
        logging.info(f"Parsed weather: {snapshot.temperature}°{snapshot.temperature_unit}, code {snapshot.weather_code}")
        return snapshot


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    country_code: str = ""
    timezone: str = "auto"
    payload: str = ""


class OpenMeteoGeocoder:
    """Name search against the Open-Meteo geocoding endpoint."""

    BASE_URL = "https://geocoding-api.open-meteo.com/v1/search"

    def __init__(self, fetcher: HttpFetcher):
        self.fetcher = fetcher

    def search(self, name: str, count: int = 1) -> Optional[GeocodeResult]:
        params = {"name": name, "count": count, "language": "en", "format": "json"}
        text = self.fetcher.get_text(self.BASE_URL, params=params)
        if not text:
            return None
        result = parse_geocode_results(text)
        logging.debug(f"Open-Meteo geocode '{name}': {'hit' if result else 'miss'}")
        return result


def parse_geocode_results(text: str) -> Optional[GeocodeResult]:
    """First result with usable coordinates from a geocoding response."""
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None

    results = payload.get("results")
    if not isinstance(results, list):
        return None

    for item in results:
        if not isinstance(item, dict):
            continue
        lat = parse_number(item.get("latitude"))
        lon = parse_number(item.get("longitude"))
        if lat is None or lon is None or not coordinates_valid(float(lat), float(lon)):
            continue
        return GeocodeResult(
            latitude=float(lat),
            longitude=float(lon),
            country_code=str(item.get("country_code") or ""),
            timezone=str(item.get("timezone") or "auto"),
            payload=text,
        )
    return None
