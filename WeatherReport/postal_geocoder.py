"""Nominatim (OpenStreetMap) postal code geocoder."""
import json
import logging
from typing import Dict, Optional, Tuple

from http_client import HttpFetcher
from location_data import coordinates_valid
from numeric_utils import parse_number

# Bodies shorter than this ("[]", error stubs) never hold a result
MIN_USABLE_PAYLOAD = 20


def parse_nominatim_coordinates(text: str) -> Optional[Tuple[float, float]]:
    """lat/lon of the first result; Nominatim quotes both as strings."""
    if not text or text.strip() == "[]":
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, list):
        return None

    for item in payload:
        if not isinstance(item, dict):
            continue
        lat = parse_number(item.get("lat"))
        lon = parse_number(item.get("lon"))
        if lat is None or lon is None:
            continue
        if coordinates_valid(float(lat), float(lon)):
            return float(lat), float(lon)
    return None


class PostalGeocoder:
    """
    Postal code lookups scoped to a country, with a broader free-text query.

    Nominatim's usage policy requires an identifying User-Agent and Referer
    on every request.
    """

    BASE_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(self, fetcher: HttpFetcher, user_agent: str, referer: str):
        self.fetcher = fetcher
        self.headers: Dict[str, str] = {
            "User-Agent": user_agent,
            "Referer": referer,
        }

    def _query(self, params: Dict[str, object]) -> str:
        params = dict(params, format="json", limit=1)
        return self.fetcher.get_text(self.BASE_URL, params=params, headers=self.headers)

    def search_postal(self, country: str, postal: str) -> Optional[Tuple[float, float]]:
        """
        Look up ``postal`` within ``country``.

        Falls back to an unscoped "<postal> <country>" text search when the
        scoped query returns no usable payload.
        """
        text = self._query({"countrycodes": country, "postalcode": postal})
        if len(text) < MIN_USABLE_PAYLOAD:
            logging.debug(f"Scoped postal query for {country}/{postal} unusable, trying free text")
            text = self._query({"q": f"{postal} {country}"})
        return parse_nominatim_coordinates(text)

    def search_us_zip(self, zip_code: str) -> Optional[Tuple[float, float]]:
        text = self._query({"country": "US", "postalcode": zip_code})
        return parse_nominatim_coordinates(text)
