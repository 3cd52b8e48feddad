"""Tests for the Nominatim postal geocoder."""
from unittest.mock import Mock

import pytest

from http_client import HttpFetcher
from postal_geocoder import PostalGeocoder, parse_nominatim_coordinates

PARIS = '[{"place_id":1,"lat":"48.8566","lon":"2.3522","display_name":"75000, Paris, France"}]'


@pytest.fixture
def fetcher():
    return Mock(spec=HttpFetcher)


@pytest.fixture
def geocoder(fetcher):
    return PostalGeocoder(fetcher, "weather-report/1.0 (ops@example.com)", "https://example.com/")


def test_parse_nominatim_coordinates():
    assert parse_nominatim_coordinates(PARIS) == (48.8566, 2.3522)


@pytest.mark.parametrize("text", ["", "[]", "{}", "garbage", '[{"lat":"","lon":"2.0"}]'])
def test_parse_nominatim_coordinates_miss(text):
    assert parse_nominatim_coordinates(text) is None


def test_search_postal_scoped_query(geocoder, fetcher):
    fetcher.get_text.return_value = PARIS

    assert geocoder.search_postal("FR", "75000") == (48.8566, 2.3522)
    fetcher.get_text.assert_called_once()
    call = fetcher.get_text.call_args
    assert call.args[0] == PostalGeocoder.BASE_URL
    assert call.kwargs["params"] == {"countrycodes": "FR", "postalcode": "75000", "format": "json", "limit": 1}
    assert call.kwargs["headers"]["User-Agent"] == "weather-report/1.0 (ops@example.com)"
    assert call.kwargs["headers"]["Referer"] == "https://example.com/"


def test_search_postal_falls_back_to_free_text(geocoder, fetcher):
    """A payload shorter than 20 characters triggers the broader query."""
    fetcher.get_text.side_effect = ["[]", PARIS]

    assert geocoder.search_postal("FR", "75000") == (48.8566, 2.3522)
    second = fetcher.get_text.call_args_list[1]
    assert second.kwargs["params"] == {"q": "75000 FR", "format": "json", "limit": 1}


def test_search_postal_both_queries_empty(geocoder, fetcher):
    fetcher.get_text.side_effect = ["", "[]"]
    assert geocoder.search_postal("GB", "EC1A1BB") is None
    assert fetcher.get_text.call_count == 2


def test_search_us_zip(geocoder, fetcher):
    fetcher.get_text.return_value = '[{"lat":"32.9617","lon":"-96.8292"}]'

    assert geocoder.search_us_zip("75001") == (32.9617, -96.8292)
    params = fetcher.get_text.call_args.kwargs["params"]
    assert params["country"] == "US"
    assert params["postalcode"] == "75001"
