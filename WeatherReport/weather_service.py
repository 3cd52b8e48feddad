"""Weather report service - resolve, fetch, classify, format."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from alerts import NwsAlertsClient
from condition import build_condition_audio, evaluate_condition
from location_data import ResolvedLocation
from location_resolver import LocationResolver
from report_config import ReportConfig
from report_formatter import (
    CONDITION_FILE,
    format_report_line,
    temperature_reading,
    write_alert_text,
    write_temperature_file,
)
from weather_data import ConditionResult, WeatherSnapshot
from weather_provider import WeatherProviderBase


@dataclass
class WeatherReport:
    line: str
    location: ResolvedLocation
    snapshot: WeatherSnapshot
    condition: ConditionResult
    temperature: int
    alerts: List[str] = field(default_factory=list)


class WeatherReportService:
    """
    One run of the pipeline for a single location token.

    Resolution and provider failures propagate (the run has no result);
    everything after that is best-effort.
    """

    def __init__(
        self,
        resolver: LocationResolver,
        provider: WeatherProviderBase,
        config: ReportConfig,
        alerts_client: Optional[NwsAlertsClient] = None,
    ):
        self.resolver = resolver
        self.provider = provider
        self.config = config
        self.alerts_client = alerts_client

    def run(self, token: str) -> WeatherReport:
        """
        Build the report for ``token``.

        Raises:
            LocationNotFoundError: If the location cannot be resolved
            WeatherProviderError: If the weather response is unusable
        """
        location = self.resolver.resolve(token)
        logging.info(f"Using mode={location.mode.value} lat={location.latitude} lon={location.longitude}")

        snapshot = self.provider.get_current(location)
        condition = evaluate_condition(snapshot, self.config)

        alerts: List[str] = []
        if self.config.use_nws_alerts and self.alerts_client is not None:
            alerts = self.alerts_client.active_events(
                location.latitude, location.longitude, self.config.nws_alerts_max
            )

        line = format_report_line(snapshot, condition, self.config, alerts)
        return WeatherReport(
            line=line,
            location=location,
            snapshot=snapshot,
            condition=condition,
            temperature=temperature_reading(snapshot),
            alerts=alerts,
        )

    def write_outputs(self, report: WeatherReport) -> None:
        """Write the files the playback side reads. Failures are logged only."""
        output_dir = self.config.output_dir
        write_temperature_file(report.temperature, report.snapshot.temperature_unit, output_dir)

        if report.alerts:
            write_alert_text(report.alerts[0], output_dir)

        if self.config.process_condition and report.condition.label:
            built = build_condition_audio(
                report.condition.label,
                self.config.sounds_dir,
                str(Path(output_dir) / CONDITION_FILE),
            )
            if not built:
                logging.info(f"No condition audio for '{report.condition.label}'")
