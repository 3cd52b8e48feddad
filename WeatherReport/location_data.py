"""Location domain model - resolved coordinates and airport directory rows."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResolutionMode(str, Enum):
    """Which strategy produced a location's coordinates."""
    AIRPORT = "AIRPORT"
    AIRPORT_FORCED = "AIRPORT_FORCED"
    INTL = "INTL"
    ZIP = "ZIP"


def coordinates_valid(latitude: Optional[float], longitude: Optional[float]) -> bool:
    if latitude is None or longitude is None:
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


@dataclass(frozen=True)
class ResolvedLocation:
    code: str
    latitude: float
    longitude: float
    timezone: str = "auto"
    country_code: str = ""
    mode: ResolutionMode = ResolutionMode.AIRPORT

    def __post_init__(self):
        if not coordinates_valid(self.latitude, self.longitude):
            raise ValueError(f"Coordinates out of range: {self.latitude}, {self.longitude}")


@dataclass(frozen=True)
class AirportRecord:
    ident: str
    type: str  # large_airport, medium_airport, small_airport, heliport, ...
    name: str
    latitude: float
    longitude: float
    country_code: str = ""
    iata_code: Optional[str] = None
