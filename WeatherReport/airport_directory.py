"""Local, trimmed copy of the OurAirports directory, queryable by ICAO/IATA."""
import csv
import io
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from http_client import HttpFetcher
from location_data import AirportRecord, coordinates_valid
from numeric_utils import parse_number

SOURCE_URL_HTTPS = "https://ourairports.com/data/airports.csv"
SOURCE_URL_HTTP = "http://ourairports.com/data/airports.csv"

DEFAULT_MAX_AGE_SECONDS = 7 * 24 * 3600

DEFAULT_ALLOWED_TYPES = (
    "large_airport",
    "medium_airport",
    "small_airport",
    "heliport",
    "seaplane_base",
    "balloonport",
)

HEADER = ["ident", "type", "name", "lat", "lon", "iso_country", "iata_code"]

# Column positions in the OurAirports airports.csv
SRC_IDENT = 1
SRC_TYPE = 2
SRC_NAME = 3
SRC_LAT = 4
SRC_LON = 5
SRC_COUNTRY = 8
SRC_IATA = 13


def trim_source_csv(text: str) -> List[List[str]]:
    """Project the bulk CSV down to the directory columns (header excluded)."""
    reader = csv.reader(io.StringIO(text))
    next(reader, None)
    rows = []
    for row in reader:
        if len(row) <= SRC_IATA:
            continue
        rows.append([
            row[SRC_IDENT].strip(),
            row[SRC_TYPE].strip(),
            row[SRC_NAME].strip(),
            row[SRC_LAT].strip(),
            row[SRC_LON].strip(),
            row[SRC_COUNTRY].strip(),
            row[SRC_IATA].strip(),
        ])
    return rows


def _coordinate(text: str) -> Optional[float]:
    value = parse_number(text)
    return None if value is None else float(value)


def _record_from_row(row: List[str]) -> Optional[AirportRecord]:
    if len(row) < len(HEADER):
        return None
    latitude = _coordinate(row[3])
    longitude = _coordinate(row[4])
    if not coordinates_valid(latitude, longitude):
        return None
    return AirportRecord(
        ident=row[0],
        type=row[1],
        name=row[2],
        latitude=latitude,
        longitude=longitude,
        country_code=row[5],
        iata_code=row[6] or None,
    )


class AirportDirectory:
    """
    Airport rows materialized under a flat runtime directory.

    The file is rebuilt from the public dataset when it is missing,
    header-only or older than ``max_age_seconds``. When no usable copy can
    be produced every lookup misses instead of raising.
    """

    def __init__(
        self,
        path: str,
        fetcher: HttpFetcher,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        allowed_types: Iterable[str] = DEFAULT_ALLOWED_TYPES,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.fetcher = fetcher
        self.max_age_seconds = max_age_seconds
        self.allowed_types = frozenset(t.strip() for t in allowed_types if t.strip())
        self.clock = clock
        self._records: Optional[List[AirportRecord]] = None

    def _line_count(self) -> int:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError:
            return 0

    def _is_usable(self) -> bool:
        return self._line_count() > 1

    def _is_stale(self) -> bool:
        try:
            age = self.clock() - self.path.stat().st_mtime
        except OSError:
            return True
        return age > self.max_age_seconds

    def ensure_ready(self) -> bool:
        """
        Make sure a usable local directory exists.

        Returns:
            bool: True when lookups can be served (possibly from a stale copy
            that could not be refreshed).
        """
        usable = self._is_usable()
        if usable and not self._is_stale():
            logging.debug(f"Using cached airport directory {self.path}")
            return True

        if usable:
            logging.info(f"Airport directory {self.path} is stale, rebuilding")
        else:
            logging.info(f"No usable airport directory at {self.path}, downloading")

        if self.rebuild():
            return True
        return usable

    def rebuild(self) -> bool:
        # Served as text/csv without a charset; names are UTF-8
        text = self.fetcher.get_text(SOURCE_URL_HTTPS, fallback_urls=(SOURCE_URL_HTTP,), encoding="utf-8")
        if not text:
            logging.warning("Airport dataset download failed or was empty")
            return False

        rows = trim_source_csv(text)
        if not rows:
            logging.warning("Airport dataset trimmed to header only, keeping previous directory")
            return False

        try:
            self._atomic_write(rows)
        except OSError as e:
            logging.warning(f"Could not write airport directory {self.path}: {e}")
            return False

        self._records = None
        logging.info(f"Airport directory built with {len(rows)} rows at {self.path}")
        return True

    def _atomic_write(self, rows: List[List[str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", newline="", dir=self.path.parent, prefix=self.path.name, suffix=".tmp", delete=False
        )
        try:
            with tmp:
                writer = csv.writer(tmp)
                writer.writerow(HEADER)
                writer.writerows(rows)
            os.replace(tmp.name, self.path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise

    def records(self) -> List[AirportRecord]:
        if self._records is None:
            self._records = self._read_records()
        return self._records

    def _read_records(self) -> List[AirportRecord]:
        try:
            with self.path.open("r", encoding="utf-8", newline="") as f:
                reader = csv.reader(f)
                next(reader, None)
                records = [_record_from_row(row) for row in reader]
        except OSError as e:
            logging.debug(f"Airport directory unreadable: {e}")
            return []
        return [r for r in records if r is not None]

    def find_by_icao(self, code: str) -> Optional[AirportRecord]:
        needle = code.strip().upper()
        return next((r for r in self.records() if r.ident.upper() == needle), None)

    def find_by_iata(self, code: str) -> Optional[AirportRecord]:
        needle = code.strip().upper()
        if not needle:
            return None
        return next((r for r in self.records() if (r.iata_code or "").upper() == needle), None)

    def find_by_ident_filtered(self, code: str) -> Optional[AirportRecord]:
        """Ident lookup limited to allow-listed facility types."""
        needle = code.strip().upper()
        for record in self.records():
            if record.ident.upper() != needle:
                continue
            if record.type not in self.allowed_types:
                logging.debug(f"Type '{record.type}' for {needle} not allowed")
                continue
            return record
        return None
