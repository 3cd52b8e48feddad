"""Condition labels from WMO codes, the CAPE thunderstorm override, and audio segments."""
import logging
import os
import re
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from numeric_utils import Number, max_of, sanitize_number
from report_config import ReportConfig
from weather_data import ConditionResult, WeatherSnapshot

THUNDERSTORMS = "Thunderstorms"

_CODE_LABELS = {}
for _code in (95, 96, 99):
    _CODE_LABELS[_code] = THUNDERSTORMS
for _code in (51, 53, 55, 56, 57, 61, 63, 65, 66, 67, 80, 81, 82):
    _CODE_LABELS[_code] = "Rain"
for _code in (71, 73, 75, 77, 85, 86):
    _CODE_LABELS[_code] = "Snow"
for _code in (45, 48):
    _CODE_LABELS[_code] = "Fog"
for _code in (89, 90):
    _CODE_LABELS[_code] = "Hail"

DEFAULT_CLOUD_COVER = Decimal(50)

# Applied in order, so multi-word phrases collapse before their parts
SYNONYMS = (
    (r"thunderstorms", "thunderstorm"),
    (r"snow showers", "snow"),
    (r"showers", "rain"),
    (r"light rain", "rain"),
    (r"light drizzle", "rain"),
    (r"drizzle", "rain"),
    (r"freezing drizzle", "freezing rain"),
    (r"wintry mix", "freezing rain"),
    (r"mixed precipitation", "freezing rain"),
    (r"ice pellets", "hail"),
    (r"sleet and freezing rain", "sleet"),
    (r"freezing fog", "fog"),
    (r"haze", "foggy"),
    (r"smoky", "foggy"),
    (r"smoke", "foggy"),
    (r"\bmist\b", "misty"),
    (r"misty", "foggy"),
    (r"overcast", "mostly cloudy"),
    (r"partly sunny", "partly cloudy"),
    (r"mostly sunny", "mostly clear"),
    (r"clear and windy", "clear windy"),
    (r"clear and breezy", "clear windy"),
    (r"windy and clear", "clear windy"),
    (r"blowing snow", "snow"),
    (r"blizzard", "snow"),
    (r"flurries", "snow"),
    (r"heavy snow", "snow"),
    (r"heavy rain", "rain"),
    (r"torrential rain", "rain"),
    (r"downpour", "rain"),
    (r"passing rain", "rain"),
    (r"scattered rain", "rain"),
    (r"scattered showers", "rain"),
    (r"isolated showers", "rain"),
    (r"scattered t-storms", "thunderstorm"),
    (r"isolated t-storms", "thunderstorm"),
    (r"t-storms", "thunderstorm"),
    (r"t[- ]?storm(s)?", "thunderstorm"),
)

WORD_SEGMENTS = {
    "mostly": "mostly",
    "partly": "partly",
    "patchy": "patchy",
    "scattered": "scattered",
    "cloudy": "cloudy",
    "clouds": "cloudy",
    "clear": "clear",
    "sunny": "clear",
    "sun": "clear",
    "fair": "clear",
    "windy": "windy",
    "wind": "windy",
    "breezy": "windy",
    "rain": "rain",
    "rainy": "rain",
    "freezing": "freezing",
    "sleet": "sleet",
    "sleeting": "sleet",
    "snow": "snow",
    "snowy": "snow",
    "snowing": "snow",
    "hail": "hail",
    "fog": "foggy",
    "foggy": "foggy",
    "misty": "foggy",
    "haze": "foggy",
    "smoke": "foggy",
    "smoky": "foggy",
    "thunderstorms": "thunderstorm",
    "thunderstorm": "thunderstorm",
    "thunder": "thunderstorm",
    "storms": "thunderstorm",
    "storm": "thunderstorm",
    "tornado": "tornado",
    "hurricane": "hurricane",
    "typhoon": "hurricane",
}

MAX_SPOKEN_WORDS = 3
SEGMENT_SUFFIX = ".gsm"


def classify_weather_code(code: Optional[int], cloud_cover: Number = None, is_day: bool = True) -> str:
    """
    Map a WMO weather code to a label.

    Codes without a precipitation/fog label fall back to cloud-cover bands,
    worded for day or night.
    """
    if code in _CODE_LABELS:
        return _CODE_LABELS[code]

    cover = DEFAULT_CLOUD_COVER if cloud_cover is None else sanitize_number(cloud_cover)
    if cover <= 10:
        return "Sunny" if is_day else "Clear"
    if cover <= 35:
        return "Mostly Sunny" if is_day else "Mostly Clear"
    if cover <= 65:
        return "Partly Cloudy"
    if cover < 90:
        return "Mostly Cloudy"
    return "Overcast"


def thunderstorm_override_applies(snapshot: WeatherSnapshot, config: ReportConfig) -> bool:
    """
    CAPE-based thunderstorm detection.

    Fires only when recent CAPE, current precipitation and cloud cover all
    reach their thresholds (each inclusive). A CAPE spike alone is noise.
    """
    if not (config.enable_thunderstorm and config.use_cape):
        return False
    if not snapshot.cape_series:
        return False

    cape_max = max_of(snapshot.cape_series[-config.lookback_samples:])
    precip_max = max_of([
        snapshot.precipitation_mm or 0,
        snapshot.rain_mm or 0,
        snapshot.showers_mm or 0,
    ])
    cloud_cover = sanitize_number(snapshot.cloud_cover_pct)

    cape_ok = cape_max >= config.cape_threshold
    precip_ok = precip_max >= config.precip_trace_mm
    cloud_ok = cloud_cover >= config.ts_cloud_cover_min
    logging.debug(
        f"Thunderstorm check: cape_max={cape_max} ({cape_ok}) precip_max={precip_max} ({precip_ok}) "
        f"cloud={cloud_cover} ({cloud_ok})"
    )
    return cape_ok and precip_ok and cloud_ok


def evaluate_condition(snapshot: WeatherSnapshot, config: ReportConfig) -> ConditionResult:
    label = classify_weather_code(snapshot.weather_code, snapshot.cloud_cover_pct, snapshot.is_day)
    if thunderstorm_override_applies(snapshot, config):
        logging.info(f"Thunderstorm override replaces '{label}'")
        return ConditionResult(label=THUNDERSTORMS, overridden_by_thunderstorm=True)
    return ConditionResult(label=label)


def condition_words(label: str) -> List[str]:
    """Normalized words of a label, at most three, ready for segment lookup."""
    base = label.split(" — ", 1)[0].lower()
    base = re.sub(r"\s+", " ", base).strip()
    for pattern, replacement in SYNONYMS:
        base = re.sub(pattern, replacement, base)
    base = re.sub(r"[^a-z]+", " ", base).strip()
    return base.split()[:MAX_SPOKEN_WORDS]


def segments_for_label(label: str) -> List[str]:
    """Audio segment names for a label; unmapped words contribute nothing."""
    segments = []
    for word in condition_words(label):
        segment = WORD_SEGMENTS.get(word)
        if segment:
            segments.append(segment)
    return segments


def build_condition_audio(label: str, sounds_dir: str, output_path: str) -> bool:
    """
    Concatenate the spoken segments for ``label`` into ``output_path``.

    The result is assembled in ``<output_path>.tmp`` and renamed into place
    only when non-empty, so the durable file is never partially written.
    Segment files are only read.

    Returns:
        bool: False on any soft failure (no mapped words, unreadable
        segment, empty result); the text report is unaffected.
    """
    output = Path(output_path)
    tmp = Path(f"{output_path}.tmp")

    segments = segments_for_label(label)
    if not segments:
        logging.debug(f"No audio segment matches '{label}'")
        output.unlink(missing_ok=True)
        return False

    logging.debug(f"Condition words {condition_words(label)} -> segments {segments}")
    try:
        with tmp.open("wb") as out:
            for segment in segments:
                out.write((Path(sounds_dir) / f"{segment}{SEGMENT_SUFFIX}").read_bytes())
    except OSError as e:
        logging.warning(f"Failed to build {tmp}: {e}")
        tmp.unlink(missing_ok=True)
        return False

    if tmp.stat().st_size == 0:
        tmp.unlink(missing_ok=True)
        return False

    try:
        os.replace(tmp, output)
    except OSError as e:
        logging.warning(f"Failed to move {tmp} into place: {e}")
        tmp.unlink(missing_ok=True)
        return False
    return True
