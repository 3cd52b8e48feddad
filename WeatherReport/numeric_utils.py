"""Numeric helpers - safe parsing, fixed-point rounding and unit conversions.

Everything here works on ``Decimal`` values parsed from their text form, so
results never depend on binary floating point rounding.
"""
import math
import re
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Iterable, Optional, Union

Number = Union[str, int, float, Decimal, None]

_NUMBER_RE = re.compile(r"^-?(\d+\.?\d*|\.\d+)$")
_NON_NUMERIC_TOKENS = {"", "null", "none", "nan", "infinity", "-infinity", "+infinity", "inf", "-inf", "+inf"}

CARDINALS_16 = (
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
)

ZERO = Decimal(0)


def parse_number(value: Number) -> Optional[Decimal]:
    """Strict parse: a finite Decimal, or None when the value is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return Decimal(repr(value))

    raw = str(value).strip()
    if raw.lower() in _NON_NUMERIC_TOKENS:
        return None
    if raw.startswith("+"):
        raw = raw[1:]
    if not _NUMBER_RE.match(raw):
        return None
    return Decimal(raw)


def sanitize_number(value: Number) -> Decimal:
    """
    Normalize any provider value to a finite Decimal.

    Empty, null, NaN and infinity tokens, a lone "." or "-." and anything
    malformed become 0. A leading "+" is accepted.
    """
    parsed = parse_number(value)
    return ZERO if parsed is None else parsed


def round_half_away_from_zero(value: Number) -> int:
    """Round to an integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    # ROUND_HALF_UP in the decimal module rounds ties away from zero
    return int(sanitize_number(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _round_places(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_fixed_2(value: Number) -> str:
    """Format with exactly two decimals ("3" -> "3.00")."""
    return f"{_round_places(sanitize_number(value), 2):.2f}"


def format_one_decimal(value: Number) -> str:
    """Format with exactly one decimal ("21.25" -> "21.3")."""
    rounded = _round_places(sanitize_number(value), 1)
    if rounded == 0:
        rounded = abs(rounded)
    return f"{rounded:.1f}"


def celsius_to_fahrenheit(celsius: Number) -> int:
    c = sanitize_number(celsius)
    return round_half_away_from_zero(c * 9 / 5 + 32)


def fahrenheit_to_celsius(fahrenheit: Number) -> int:
    f = sanitize_number(fahrenheit)
    return round_half_away_from_zero((f - 32) * 5 / 9)


def fahrenheit_to_celsius_exact(fahrenheit: Number) -> Decimal:
    """Unrounded Fahrenheit to Celsius, for one-decimal display."""
    return (sanitize_number(fahrenheit) - 32) * 5 / 9


def hpa_to_inches_of_mercury(hpa: Number) -> str:
    return format_fixed_2(sanitize_number(hpa) * Decimal("0.02953"))


def meters_per_second_to_mph(speed: Number) -> int:
    return round_half_away_from_zero(sanitize_number(speed) * Decimal("2.23694"))


def meters_per_second_to_kmh(speed: Number) -> int:
    return round_half_away_from_zero(sanitize_number(speed) * Decimal("3.6"))


def meters_per_second_to_knots(speed: Number) -> int:
    return round_half_away_from_zero(sanitize_number(speed) * Decimal("1.94384"))


def millimeters_to_inches(mm: Number) -> str:
    return format_fixed_2(sanitize_number(mm) / Decimal("25.4"))


def degrees_to_cardinal16(degrees: Number) -> str:
    """
    Map a compass bearing to one of 16 cardinal labels.

    The bearing is rounded, wrapped into [0, 360) and offset by half a
    sector (11.25 degrees) so each label owns the 22.5 degree band centered
    on it.
    """
    d = round_half_away_from_zero(degrees) % 360
    index = int(((Decimal(d) + Decimal("11.25")) / Decimal("22.5")).to_integral_value(rounding=ROUND_FLOOR))
    if index >= len(CARDINALS_16):
        index = 0
    return CARDINALS_16[index]


def max_of(values: Iterable[Number]) -> Decimal:
    """Numeric max of sanitized values, 0 for an empty sequence."""
    numbers = [sanitize_number(v) for v in values]
    if not numbers:
        return ZERO
    return max(numbers)
