"""Persistent code -> coordinates cache with TTL expiry and atomic rewrites."""
import json
import logging
import os
import tempfile
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from location_data import ResolutionMode, ResolvedLocation

DEFAULT_MAX_AGE_SECONDS = 7 * 24 * 3600


@dataclass
class CacheEntry:
    code: str
    latitude: float
    longitude: float
    timezone: str
    country_code: str
    fetched_at: int
    mode: str = ResolutionMode.AIRPORT.value

    def is_fresh(self, now: float, max_age_seconds: int) -> bool:
        return now - self.fetched_at <= max_age_seconds

    def to_location(self) -> ResolvedLocation:
        return ResolvedLocation(
            code=self.code,
            latitude=self.latitude,
            longitude=self.longitude,
            timezone=self.timezone or "auto",
            country_code=self.country_code,
            mode=ResolutionMode(self.mode),
        )


class GeocodeCache:
    """
    Flat keyed store of resolved locations, one JSON object keyed by code.

    Reads never remove anything; expired entries are only dropped when the
    store is rewritten by the next successful ``store``. Concurrent runs are
    not coordinated: the rename makes each write crash-safe and the last
    writer wins.
    """

    def __init__(
        self,
        path: str,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    def lookup(self, code: str) -> Optional[ResolvedLocation]:
        key = code.strip().upper()
        entry = self._load().get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self.clock(), self.max_age_seconds):
            logging.debug(f"Cache entry for {key} expired")
            return None
        try:
            return entry.to_location()
        except ValueError as e:
            logging.warning(f"Ignoring unusable cache entry for {key}: {e}")
            return None

    def store(self, location: ResolvedLocation) -> bool:
        """
        Record a resolved location, pruning expired entries.

        Returns:
            bool: False when the backing file could not be written; callers
            simply continue without caching.
        """
        key = location.code.strip().upper()
        if not key:
            return False

        now = self.clock()
        entries = {
            code: entry
            for code, entry in self._load().items()
            if code != key and entry.is_fresh(now, self.max_age_seconds)
        }
        entries[key] = CacheEntry(
            code=key,
            latitude=location.latitude,
            longitude=location.longitude,
            timezone=location.timezone,
            country_code=location.country_code,
            fetched_at=int(now),
            mode=location.mode.value,
        )

        try:
            self._atomic_write(entries)
        except OSError as e:
            logging.warning(f"Geocode cache not writable ({self.path}): {e}")
            return False
        logging.debug(f"Cached {key} -> {location.latitude},{location.longitude}")
        return True

    def _load(self) -> Dict[str, CacheEntry]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"Unreadable geocode cache {self.path}: {e}")
            return {}
        if not isinstance(raw, dict):
            return {}

        entries = {}
        for code, data in raw.items():
            try:
                entries[code] = CacheEntry(
                    code=code,
                    latitude=float(data["latitude"]),
                    longitude=float(data["longitude"]),
                    timezone=str(data.get("timezone", "auto")),
                    country_code=str(data.get("country_code", "")),
                    fetched_at=int(data["fetched_at"]),
                    mode=str(data.get("mode", ResolutionMode.AIRPORT.value)),
                )
            except (KeyError, TypeError, ValueError):
                logging.debug(f"Skipping malformed cache entry {code!r}")
        return entries

    def _atomic_write(self, entries: Dict[str, CacheEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {}
        for code, entry in entries.items():
            data = asdict(entry)
            del data["code"]
            payload[code] = data

        tmp = tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent, prefix=self.path.name, suffix=".tmp", delete=False
        )
        try:
            with tmp:
                json.dump(payload, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp.name, self.path)
        except BaseException:
            Path(tmp.name).unlink(missing_ok=True)
            raise
