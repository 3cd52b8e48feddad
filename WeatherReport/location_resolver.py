"""Turn a free-form location token into authoritative coordinates."""
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from airport_directory import AirportDirectory
from geocode_cache import GeocodeCache
from location_data import AirportRecord, ResolutionMode, ResolvedLocation
from open_meteo_provider import OpenMeteoGeocoder
from postal_geocoder import PostalGeocoder

ICAO_RE = re.compile(r"^[A-Z]{4}$")
IATA_RE = re.compile(r"^[A-Z]{3}$")
US_ZIP_RE = re.compile(r"^[0-9]{5}$")
# FR75000, GB-EC1A1BB, JP-100-0005, CA_K1A0B1
INTL_POSTAL_RE = re.compile(r"^([A-Z]{2})[-_]*([A-Z0-9-]+)$")

AIRPORT_SEARCH_SUFFIXES = ("", " AIRPORT", " INTERNATIONAL AIRPORT")


class LocationNotFoundError(Exception):
    """No strategy produced coordinates. Terminal for the run."""
    pass


def normalize_token(raw: str) -> str:
    """Uppercase and remove all whitespace."""
    return re.sub(r"\s+", "", raw or "").upper()


def split_international_postal(token: str) -> Optional[Tuple[str, str]]:
    """("FR", "75000") for "FR-75000"; None when the token is not that shape."""
    match = INTL_POSTAL_RE.match(token)
    if not match:
        return None
    postal = re.sub(r"[-_]", "", match.group(2))
    if not postal:
        return None
    return match.group(1), postal


@dataclass
class ResolutionState:
    token: str
    mode: Optional[ResolutionMode] = None  # AIRPORT_FORCED once the token is known to be an airport code

    @property
    def forced_airport(self) -> bool:
        return self.mode is ResolutionMode.AIRPORT_FORCED


Strategy = Callable[[ResolutionState], Optional[ResolvedLocation]]


class LocationResolver:
    """
    Ordered cascade of resolution strategies, first success wins.

    Forced-airport classification (4 letters, or 3 letters present in the
    directory's IATA column) happens first and keeps postal/ZIP strategies
    from running. After that the strategies in ``self.strategies`` run in
    order: international postal, US ZIP, airport directory, airport
    geocoding, filtered directory fallback.
    """

    def __init__(
        self,
        directory: AirportDirectory,
        weather_geocoder: OpenMeteoGeocoder,
        postal_geocoder: PostalGeocoder,
        cache: Optional[GeocodeCache] = None,
    ):
        self.directory = directory
        self.weather_geocoder = weather_geocoder
        self.postal_geocoder = postal_geocoder
        self.cache = cache
        self.strategies: List[Tuple[str, Strategy]] = [
            ("international_postal", self.resolve_international_postal),
            ("us_zip", self.resolve_us_zip),
            ("airport_directory", self.resolve_airport_directory),
            ("airport_geocode", self.resolve_airport_geocode),
            ("airport_directory_fallback", self.resolve_directory_fallback),
        ]

    def resolve(self, raw: str) -> ResolvedLocation:
        """
        Resolve a user token.

        Raises:
            LocationNotFoundError: If every strategy failed
        """
        token = normalize_token(raw)
        logging.debug(f"Normalized token: {token!r}")
        if not token:
            raise LocationNotFoundError("Empty location")

        if self.cache is not None:
            cached = self.cache.lookup(token)
            if cached is not None:
                logging.info(f"Cache hit for {token}: {cached.latitude},{cached.longitude} ({cached.mode.value})")
                return cached

        if not self.directory.ensure_ready():
            logging.warning("Airport directory unavailable, airport lookups will miss")

        state = ResolutionState(token=token)
        if self.is_forced_airport(token):
            state.mode = ResolutionMode.AIRPORT_FORCED
        logging.debug(f"Resolving {token} (mode={state.mode.value if state.mode else 'auto'})")

        for name, strategy in self.strategies:
            location = strategy(state)
            if location is not None:
                logging.info(
                    f"Resolved {token} via {name}: mode={location.mode.value} "
                    f"lat={location.latitude} lon={location.longitude} country={location.country_code}"
                )
                if self.cache is not None:
                    self.cache.store(location)
                return location
            logging.debug(f"Strategy {name} did not resolve {token}")

        raise LocationNotFoundError(f"Could not resolve location {token!r}")

    def is_forced_airport(self, token: str) -> bool:
        if ICAO_RE.match(token):
            logging.debug(f"ICAO forced airport for {token}")
            return True
        if IATA_RE.match(token):
            if self.directory.find_by_iata(token) is not None:
                logging.debug(f"IATA forced airport for {token}")
                return True
            logging.debug(f"3-letter code {token} not found in IATA column, not forcing airport")
        return False

    def resolve_international_postal(self, state: ResolutionState) -> Optional[ResolvedLocation]:
        if state.forced_airport:
            return None
        parts = split_international_postal(state.token)
        if parts is None:
            return None
        country, postal = parts
        logging.debug(f"International postal detected: country={country} postal={postal}")

        coords = self.postal_geocoder.search_postal(country, postal)
        if coords is None:
            return None
        return ResolvedLocation(
            code=state.token,
            latitude=coords[0],
            longitude=coords[1],
            country_code=country,
            mode=ResolutionMode.INTL,
        )

    def resolve_us_zip(self, state: ResolutionState) -> Optional[ResolvedLocation]:
        if state.forced_airport or not US_ZIP_RE.match(state.token):
            return None

        result = self.weather_geocoder.search(state.token, count=1)
        if result is not None:
            return ResolvedLocation(
                code=state.token,
                latitude=result.latitude,
                longitude=result.longitude,
                timezone=result.timezone,
                country_code="US",
                mode=ResolutionMode.ZIP,
            )

        logging.debug(f"Open-Meteo had no match for ZIP {state.token}, trying Nominatim")
        coords = self.postal_geocoder.search_us_zip(state.token)
        if coords is None:
            return None
        return ResolvedLocation(
            code=state.token,
            latitude=coords[0],
            longitude=coords[1],
            country_code="US",
            mode=ResolutionMode.ZIP,
        )

    def resolve_airport_directory(self, state: ResolutionState) -> Optional[ResolvedLocation]:
        record = self.directory.find_by_icao(state.token)
        if record is None and len(state.token) == 3:
            record = self.directory.find_by_iata(state.token)
        return self._from_record(state.token, record)

    def resolve_airport_geocode(self, state: ResolutionState) -> Optional[ResolvedLocation]:
        # The generic search has no category field, so "airport" in the
        # payload is the only signal that the hit is an airport.
        for suffix in AIRPORT_SEARCH_SUFFIXES:
            query = f"{state.token}{suffix}"
            result = self.weather_geocoder.search(query, count=5)
            if result is None or "airport" not in result.payload.lower():
                continue
            return ResolvedLocation(
                code=state.token,
                latitude=result.latitude,
                longitude=result.longitude,
                timezone=result.timezone,
                country_code=result.country_code,
                mode=ResolutionMode.AIRPORT,
            )
        return None

    def resolve_directory_fallback(self, state: ResolutionState) -> Optional[ResolvedLocation]:
        return self._from_record(state.token, self.directory.find_by_ident_filtered(state.token))

    @staticmethod
    def _from_record(token: str, record: Optional[AirportRecord]) -> Optional[ResolvedLocation]:
        if record is None:
            return None
        logging.debug(f"{token} matched ident={record.ident} type={record.type} name={record.name}")
        return ResolvedLocation(
            code=token,
            latitude=record.latitude,
            longitude=record.longitude,
            country_code=record.country_code or "US",
            mode=ResolutionMode.AIRPORT,
        )
