"""Weather domain model - pure data structures independent of any API."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional


@dataclass
class WeatherSnapshot:
    """One provider reading, already neutralized by sanitize_number."""
    temperature: Decimal  # in temperature_unit
    temperature_unit: str = "F"  # "F" or "C"
    weather_code: Optional[int] = None  # WMO code
    relative_humidity: Optional[Decimal] = None
    pressure_msl: Optional[Decimal] = None  # hPa
    wind_speed_ms: Optional[Decimal] = None
    wind_direction_deg: Optional[Decimal] = None
    wind_gust_ms: Optional[Decimal] = None
    cloud_cover_pct: Optional[Decimal] = None
    is_day: bool = True

    # Current precipitation components (mm), used by the thunderstorm override
    precipitation_mm: Optional[Decimal] = None
    rain_mm: Optional[Decimal] = None
    showers_mm: Optional[Decimal] = None
    snowfall_cm: Optional[Decimal] = None

    # Most recent sample last
    cape_series: List[Decimal] = field(default_factory=list)
    precipitation_series: List[Decimal] = field(default_factory=list)


@dataclass(frozen=True)
class ConditionResult:
    label: str
    overridden_by_thunderstorm: bool = False
