"""Tests for the airport directory."""
import os
import time
from unittest.mock import Mock, patch

import pytest

from airport_directory import (
    HEADER,
    SOURCE_URL_HTTP,
    SOURCE_URL_HTTPS,
    AirportDirectory,
    trim_source_csv,
)
from http_client import HttpFetcher

SOURCE_HEADER = (
    '"id","ident","type","name","latitude_deg","longitude_deg","elevation_ft","continent",'
    '"iso_country","iso_region","municipality","scheduled_service","gps_code","iata_code",'
    '"local_code","home_link","wikipedia_link","keywords"'
)

SOURCE_CSV = "\n".join([
    SOURCE_HEADER,
    '3622,"KJFK","large_airport","John F Kennedy International Airport",40.639447,-73.779317,13,'
    '"NA","US","US-NY","New York","yes","KJFK","JFK","JFK","","",""',
    '3631,"KXNA","medium_airport","Northwest Arkansas National Airport",36.281898,-94.306801,1287,'
    '"NA","US","US-AR","Bentonville","yes","KXNA","XNA","XNA","","",""',
    '2434,"EGCC","large_airport","Manchester Airport",53.349375,-2.279521,257,'
    '"EU","GB","GB-ENG","Manchester","yes","EGCC","MAN","","","",""',
    '9999,"KOLD","closed","Old Field, Closed",35.0,-97.0,1200,'
    '"NA","US","US-OK","Nowhere","no","","OLD","","","",""',
    '8888,"NOCO","small_airport","No Coordinates Strip",,,0,'
    '"NA","US","US-TX","Nowhere","no","","","","","",""',
    '7777,"SHORT","heliport"',
])


@pytest.fixture
def fetcher():
    fetcher = Mock(spec=HttpFetcher)
    fetcher.get_text.return_value = SOURCE_CSV
    return fetcher


@pytest.fixture
def directory(tmp_path, fetcher):
    directory = AirportDirectory(str(tmp_path / "weather-airports.csv"), fetcher)
    assert directory.ensure_ready() is True
    return directory


def test_trim_source_csv_projects_columns():
    rows = trim_source_csv(SOURCE_CSV)
    assert rows[0] == ["KJFK", "large_airport", "John F Kennedy International Airport",
                       "40.639447", "-73.779317", "US", "JFK"]
    # Quoted commas stay inside the name column
    assert rows[3][2] == "Old Field, Closed"
    # Short rows are dropped
    assert all(r[0] != "SHORT" for r in rows)


def test_ensure_ready_downloads_when_missing(tmp_path, fetcher):
    path = tmp_path / "weather-airports.csv"
    directory = AirportDirectory(str(path), fetcher)

    assert directory.ensure_ready() is True
    fetcher.get_text.assert_called_once_with(
        SOURCE_URL_HTTPS, fallback_urls=(SOURCE_URL_HTTP,), encoding="utf-8"
    )
    lines = path.read_text().splitlines()
    assert lines[0] == ",".join(HEADER)
    assert len(lines) == 6
    assert '"Old Field, Closed"' in path.read_text()


def test_ensure_ready_uses_fresh_copy(directory, fetcher):
    fetcher.get_text.reset_mock()
    assert directory.ensure_ready() is True
    fetcher.get_text.assert_not_called()


def test_ensure_ready_rebuilds_stale_copy(tmp_path, fetcher):
    path = tmp_path / "weather-airports.csv"
    AirportDirectory(str(path), fetcher).ensure_ready()
    fetcher.get_text.reset_mock()

    later = time.time() + 8 * 24 * 3600
    directory = AirportDirectory(str(path), fetcher, clock=lambda: later)
    assert directory.ensure_ready() is True
    fetcher.get_text.assert_called_once()


def test_stale_copy_kept_when_refresh_fails(tmp_path, fetcher):
    path = tmp_path / "weather-airports.csv"
    AirportDirectory(str(path), fetcher).ensure_ready()
    fetcher.get_text.return_value = ""

    later = time.time() + 8 * 24 * 3600
    directory = AirportDirectory(str(path), fetcher, clock=lambda: later)
    assert directory.ensure_ready() is True
    assert directory.find_by_icao("KJFK") is not None


def test_download_failure_leaves_directory_unusable(tmp_path, fetcher):
    fetcher.get_text.return_value = ""
    directory = AirportDirectory(str(tmp_path / "weather-airports.csv"), fetcher)

    assert directory.ensure_ready() is False
    assert directory.find_by_icao("KJFK") is None
    assert directory.find_by_iata("JFK") is None
    assert directory.find_by_ident_filtered("KJFK") is None


def test_header_only_download_is_rejected(tmp_path, fetcher):
    fetcher.get_text.return_value = SOURCE_HEADER + "\n"
    path = tmp_path / "weather-airports.csv"
    directory = AirportDirectory(str(path), fetcher)

    assert directory.ensure_ready() is False
    assert not path.exists()


def test_header_only_file_triggers_rebuild(tmp_path, fetcher):
    path = tmp_path / "weather-airports.csv"
    path.write_text(",".join(HEADER) + "\n")
    directory = AirportDirectory(str(path), fetcher)

    assert directory.ensure_ready() is True
    fetcher.get_text.assert_called_once()


def test_find_by_icao_is_case_insensitive(directory):
    record = directory.find_by_icao("kxna")
    assert record.ident == "KXNA"
    assert record.latitude == pytest.approx(36.281898)
    assert record.longitude == pytest.approx(-94.306801)
    assert record.country_code == "US"
    assert record.iata_code == "XNA"


def test_find_by_iata(directory):
    record = directory.find_by_iata("man")
    assert record.ident == "EGCC"
    assert record.country_code == "GB"


def test_unfiltered_lookups_accept_any_type(directory):
    """Forced codes are trusted regardless of facility type."""
    assert directory.find_by_icao("KOLD").type == "closed"
    assert directory.find_by_iata("OLD").ident == "KOLD"


def test_filtered_lookup_rejects_disallowed_types(directory):
    assert directory.find_by_ident_filtered("KJFK").ident == "KJFK"
    assert directory.find_by_ident_filtered("KOLD") is None


def test_custom_allow_list(tmp_path, fetcher):
    directory = AirportDirectory(
        str(tmp_path / "weather-airports.csv"), fetcher, allowed_types=["closed"]
    )
    directory.ensure_ready()
    assert directory.find_by_ident_filtered("KOLD") is not None
    assert directory.find_by_ident_filtered("KJFK") is None


def test_rows_without_coordinates_never_match(directory):
    assert directory.find_by_icao("NOCO") is None


def test_empty_iata_does_not_match_blank_column(directory):
    assert directory.find_by_iata("") is None


def test_rebuild_leaves_no_temp_files(directory, tmp_path):
    assert directory.rebuild() is True
    assert sorted(os.listdir(tmp_path)) == ["weather-airports.csv"]


def test_failed_write_keeps_previous_directory_and_no_temp_files(directory, tmp_path):
    with patch("airport_directory.csv.writer", side_effect=OSError("No space left on device")):
        assert directory.rebuild() is False

    assert sorted(os.listdir(tmp_path)) == ["weather-airports.csv"]
    assert directory.find_by_icao("KJFK") is not None


def test_utf8_names_survive_rebuild(tmp_path, fetcher):
    fetcher.get_text.return_value = "\n".join([
        SOURCE_HEADER,
        '2462,"EKCH","large_airport","København Lufthavn, Kastrup",55.617900,12.656000,17,'
        '"EU","DK","DK-84","København","yes","EKCH","CPH","","","",""',
    ])
    directory = AirportDirectory(str(tmp_path / "weather-airports.csv"), fetcher)

    assert directory.ensure_ready() is True
    assert directory.find_by_iata("CPH").name == "København Lufthavn, Kastrup"
