"""Run configuration - one immutable value built at startup from the environment."""
import logging
import os
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from numeric_utils import parse_number

ENV_PREFIX = "WEATHER_"

_TRUE = {"yes", "y", "true", "1", "on"}
_FALSE = {"no", "n", "false", "0", "off"}

DEFAULT_USER_AGENT = "weather-report/1.0 (you@example.com)"
DEFAULT_REFERER = "https://example.com/"


@dataclass(frozen=True)
class ReportConfig:
    # Temperature
    temperature_mode: str = "F"  # unit requested from the provider and written to the temperature file
    show_fahrenheit: bool = True
    show_celsius: bool = True
    show_degree_symbol: bool = True

    # Segments
    show_humidity: bool = True
    show_pressure: bool = False
    show_pressure_inhg: bool = False
    show_pressure_hpa: bool = False
    show_precip: bool = False
    show_precip_inch: bool = False
    show_precip_mm: bool = False
    show_zero_precip: bool = False
    show_wind: bool = True
    show_wind_mph: bool = True
    show_wind_kmh: bool = False
    show_wind_kn: bool = False

    # Thunderstorm override
    enable_thunderstorm: bool = True
    use_cape: bool = True
    cape_threshold: Decimal = Decimal("100")
    precip_trace_mm: Decimal = Decimal("0.10")
    ts_cloud_cover_min: Decimal = Decimal("60")
    lookback_samples: int = 4

    # Alerts
    use_nws_alerts: bool = False
    nws_alerts_max: int = 9
    user_agent: str = DEFAULT_USER_AGENT
    referer: str = DEFAULT_REFERER

    # Files
    process_condition: bool = True
    output_dir: str = "/tmp"
    sounds_dir: str = "/var/lib/asterisk/sounds"
    cache_file: str = "/var/tmp/airport-cache.json"
    airport_db: str = "/var/tmp/weather-airports.csv"
    cache_max_age: int = 604800
    airport_max_age: int = 604800
    allowed_airport_types: Tuple[str, ...] = field(default=(
        "large_airport",
        "medium_airport",
        "small_airport",
        "heliport",
        "seaplane_base",
        "balloonport",
    ))

    @property
    def degree(self) -> str:
        return "°" if self.show_degree_symbol else ""


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise SystemExit(f"Invalid boolean for {name}: {raw!r}")


def _parse_decimal(name: str, raw: str) -> Decimal:
    value = parse_number(raw)
    if value is None:
        raise SystemExit(f"Invalid number for {name}: {raw!r}")
    return value


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise SystemExit(f"Invalid integer for {name}: {raw!r}") from exc


def _convert(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return _parse_bool(name, raw)
    if isinstance(default, Decimal):
        return _parse_decimal(name, raw)
    if isinstance(default, int):
        return _parse_int(name, raw)
    if isinstance(default, tuple):
        return tuple(part.strip() for part in raw.split(",") if part.strip())
    return raw.strip()


def config_from_env(environ: Optional[Dict[str, str]] = None) -> ReportConfig:
    """Build a config from WEATHER_* variables; unset ones keep defaults."""
    environ = os.environ if environ is None else environ
    base = ReportConfig()
    values = {}
    for name in base.__dataclass_fields__:
        env_name = ENV_PREFIX + name.upper()
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        values[name] = _convert(env_name, raw, getattr(base, name))

    config = replace(base, **values)
    mode = config.temperature_mode.upper()
    if mode not in ("F", "C"):
        raise SystemExit(f"Invalid {ENV_PREFIX}TEMPERATURE_MODE: {config.temperature_mode!r} (expected F or C)")
    if config.lookback_samples < 1:
        raise SystemExit(f"{ENV_PREFIX}LOOKBACK_SAMPLES must be at least 1")
    return replace(config, temperature_mode=mode)


def load_config(overrides: Optional[Dict[str, Any]] = None) -> ReportConfig:
    """
    Load .env, read the environment, then apply CLI overrides.

    Overrides whose value is None are ignored.
    """
    load_dotenv()
    config = config_from_env()
    if overrides:
        config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    logging.debug(
        "Configuration loaded: mode=%s output_dir=%s alerts=%s",
        config.temperature_mode,
        config.output_dir,
        config.use_nws_alerts,
    )
    return config
