"""Summary line assembly and the durable output files."""
import logging
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence

from numeric_utils import (
    celsius_to_fahrenheit,
    degrees_to_cardinal16,
    fahrenheit_to_celsius_exact,
    format_fixed_2,
    format_one_decimal,
    hpa_to_inches_of_mercury,
    max_of,
    meters_per_second_to_kmh,
    meters_per_second_to_knots,
    meters_per_second_to_mph,
    millimeters_to_inches,
    round_half_away_from_zero,
)
from report_config import ReportConfig
from weather_data import ConditionResult, WeatherSnapshot

TEMPERATURE_FILE = "temperature"
CONDITION_FILE = "condition.gsm"
ALERT_TEXT_FILE = "alert.gsm.txt"

# Everything a previous run may have left behind
OUTPUT_FILES = (
    TEMPERATURE_FILE,
    CONDITION_FILE,
    CONDITION_FILE + ".tmp",
    "alert.gsm",
    ALERT_TEXT_FILE,
)

# Plausible readings per unit; anything else is not written
TEMPERATURE_RANGES = {
    "F": (-100, 150),
    "C": (-60, 60),
}


def temperature_reading(snapshot: WeatherSnapshot) -> int:
    """Integer temperature in the snapshot's unit."""
    return round_half_away_from_zero(snapshot.temperature)


def format_temperatures(snapshot: WeatherSnapshot, config: ReportConfig) -> List[str]:
    """Main unit first, then the alternate one. Celsius always has one decimal."""
    deg = config.degree
    if snapshot.temperature_unit == "F":
        fahrenheit = str(round_half_away_from_zero(snapshot.temperature))
        celsius = format_one_decimal(fahrenheit_to_celsius_exact(snapshot.temperature))
    else:
        celsius = format_one_decimal(snapshot.temperature)
        fahrenheit = str(celsius_to_fahrenheit(round_half_away_from_zero(snapshot.temperature)))

    parts = {
        "F": f"{fahrenheit}{deg}F" if config.show_fahrenheit else None,
        "C": f"{celsius}{deg}C" if config.show_celsius else None,
    }
    alternate = "C" if snapshot.temperature_unit == "F" else "F"
    return [p for p in (parts[snapshot.temperature_unit], parts[alternate]) if p]


def format_humidity(snapshot: WeatherSnapshot, config: ReportConfig) -> Optional[str]:
    if not config.show_humidity or snapshot.relative_humidity is None:
        return None
    return f"{round_half_away_from_zero(snapshot.relative_humidity)}% RH"


def recent_precipitation(snapshot: WeatherSnapshot) -> Optional[Decimal]:
    """Larger of the recent 15-minute max and the current amount, in mm."""
    candidates = list(snapshot.precipitation_series)
    if snapshot.precipitation_mm is not None:
        candidates.append(snapshot.precipitation_mm)
    if not candidates:
        return None
    return max_of(candidates)


def format_precipitation(snapshot: WeatherSnapshot, config: ReportConfig) -> Optional[str]:
    if not config.show_precip:
        return None
    amount = recent_precipitation(snapshot)
    if amount is None:
        return None
    if not config.show_zero_precip and amount < config.precip_trace_mm:
        return None

    units = []
    inches_zero = mm_zero = False
    if config.show_precip_inch:
        inches = millimeters_to_inches(amount)
        units.append(f"{inches} in")
        inches_zero = inches in ("0.00", "-0.00")
    if config.show_precip_mm:
        mm = format_fixed_2(amount)
        units.append(f"{mm} mm")
        mm_zero = mm in ("0.00", "-0.00")

    if not config.show_zero_precip and config.show_precip_inch and inches_zero:
        if not config.show_precip_mm or mm_zero:
            units = []
    if not units:
        return None
    return "Precip " + " / ".join(units)


def format_wind(snapshot: WeatherSnapshot, config: ReportConfig) -> Optional[str]:
    if not config.show_wind or snapshot.wind_speed_ms is None:
        return None
    speeds = []
    if config.show_wind_mph:
        speeds.append(f"{meters_per_second_to_mph(snapshot.wind_speed_ms)} mph")
    if config.show_wind_kmh:
        speeds.append(f"{meters_per_second_to_kmh(snapshot.wind_speed_ms)} km/h")
    if config.show_wind_kn:
        speeds.append(f"{meters_per_second_to_knots(snapshot.wind_speed_ms)} kt")

    text = "Wind"
    if speeds:
        text += " " + " / ".join(speeds)
    if snapshot.wind_direction_deg is not None:
        text += f" {degrees_to_cardinal16(snapshot.wind_direction_deg)}"
    if snapshot.wind_gust_ms is not None:
        text += f" (gust {meters_per_second_to_mph(snapshot.wind_gust_ms)})"
    return text


def format_pressure(snapshot: WeatherSnapshot, config: ReportConfig) -> Optional[str]:
    if not config.show_pressure or snapshot.pressure_msl is None:
        return None
    parts = []
    if config.show_pressure_inhg:
        parts.append(f"{hpa_to_inches_of_mercury(snapshot.pressure_msl)} inHG")
    if config.show_pressure_hpa:
        parts.append(f"{round_half_away_from_zero(snapshot.pressure_msl)} hPa")
    return " / ".join(parts) or None


def format_report_line(
    snapshot: WeatherSnapshot,
    condition: ConditionResult,
    config: ReportConfig,
    alerts: Sequence[str] = (),
) -> str:
    """
    Assemble the single summary line.

    Example:
        72°F, 22.2°C, 54% RH / Partly Cloudy, Wind 7 mph NW (gust 12)
    """
    first = format_temperatures(snapshot, config)
    humidity = format_humidity(snapshot, config)
    if humidity:
        first.append(humidity)

    second = [condition.label]
    for part in (
        format_precipitation(snapshot, config),
        format_wind(snapshot, config),
        format_pressure(snapshot, config),
    ):
        if part:
            second.append(part)

    segments = [", ".join(first), ", ".join(second)]
    if alerts:
        segments.append("Alerts: " + ", ".join(alerts))
    return " / ".join(s for s in segments if s)


def clear_output_files(output_dir: str) -> None:
    """Remove every output of a previous run so a failed run leaves nothing stale."""
    for name in OUTPUT_FILES:
        try:
            (Path(output_dir) / name).unlink(missing_ok=True)
        except OSError as e:
            logging.warning(f"Could not remove stale output {name}: {e}")


def write_temperature_file(reading: int, unit: str, output_dir: str) -> bool:
    low, high = TEMPERATURE_RANGES.get(unit, TEMPERATURE_RANGES["F"])
    if not low <= reading <= high:
        logging.warning(f"Temperature {reading}{unit} outside {low}..{high}, not written")
        return False
    try:
        (Path(output_dir) / TEMPERATURE_FILE).write_text(f"{reading}\n", encoding="utf-8")
    except OSError as e:
        logging.warning(f"Could not write temperature file: {e}")
        return False
    return True


def write_alert_text(first_alert: str, output_dir: str) -> bool:
    try:
        (Path(output_dir) / ALERT_TEXT_FILE).write_text(f"{first_alert}\n", encoding="utf-8")
    except OSError as e:
        logging.warning(f"Could not write alert text: {e}")
        return False
    return True
