"""Tests for the NWS alerts client."""
import json
from unittest.mock import Mock

import pytest

from alerts import NwsAlertsClient, unique_events
from http_client import HttpFetcher


def feed(*events):
    return json.dumps({
        "type": "FeatureCollection",
        "features": [{"properties": {"event": e}} for e in events],
    })


@pytest.fixture
def fetcher():
    return Mock(spec=HttpFetcher)


def test_unique_events_dedupes_in_order():
    text = feed("Heat Advisory", "Flood Watch", "Heat Advisory", "Air Quality Alert")
    assert unique_events(text, 9) == ["Heat Advisory", "Flood Watch", "Air Quality Alert"]


def test_unique_events_caps_count():
    assert unique_events(feed("A", "B", "C"), 2) == ["A", "B"]


@pytest.mark.parametrize("text", [
    "",
    "not json",
    "[]",
    '{"features": null}',
    '{"features": [{"properties": {"event": ""}}, {"properties": null}, "junk"]}',
])
def test_unique_events_tolerates_bad_payloads(text):
    assert unique_events(text, 9) == []


def test_active_events_request(fetcher):
    fetcher.get_text.return_value = feed("Tornado Warning")
    client = NwsAlertsClient(fetcher, "weather-report/1.0 (ops@example.com)")

    assert client.active_events(36.281898, -94.306801) == ["Tornado Warning"]
    fetcher.get_text.assert_called_once_with(
        NwsAlertsClient.BASE_URL,
        params={"point": "36.2819,-94.3068"},
        headers={"User-Agent": "weather-report/1.0 (ops@example.com)", "Accept": "application/geo+json"},
    )


def test_active_events_unreachable_feed(fetcher):
    fetcher.get_text.return_value = ""
    assert NwsAlertsClient(fetcher, "ua").active_events(40.0, -73.0) == []


def test_active_events_zero_max_skips_request(fetcher):
    assert NwsAlertsClient(fetcher, "ua").active_events(40.0, -73.0, max_count=0) == []
    fetcher.get_text.assert_not_called()
