"""Active severe-weather alerts from the National Weather Service (US only)."""
import json
import logging
from typing import List

from http_client import HttpFetcher


def unique_events(payload_text: str, max_count: int) -> List[str]:
    """Distinct alert event names in feed order, capped at ``max_count``."""
    try:
        payload = json.loads(payload_text)
    except ValueError:
        return []
    if not isinstance(payload, dict):
        return []

    events: List[str] = []
    for feature in payload.get("features") or []:
        if not isinstance(feature, dict):
            continue
        event = (feature.get("properties") or {}).get("event")
        if not isinstance(event, str) or not event.strip():
            continue
        event = event.strip()
        if event in events:
            continue
        events.append(event)
        if len(events) >= max_count:
            break
    return events


class NwsAlertsClient:
    """Client for the api.weather.gov active alerts endpoint."""

    BASE_URL = "https://api.weather.gov/alerts/active"

    def __init__(self, fetcher: HttpFetcher, user_agent: str):
        self.fetcher = fetcher
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/geo+json",
        }

    def active_events(self, latitude: float, longitude: float, max_count: int = 9) -> List[str]:
        """
        Event names of alerts active at a point.

        Returns an empty list when the feed is unreachable or has nothing.
        """
        if max_count <= 0:
            return []
        params = {"point": f"{latitude:.4f},{longitude:.4f}"}
        text = self.fetcher.get_text(self.BASE_URL, params=params, headers=self.headers)
        if not text:
            logging.debug("NWS alerts feed returned nothing")
            return []
        events = unique_events(text, max_count)
        logging.debug(f"NWS alerts: {events}")
        return events
