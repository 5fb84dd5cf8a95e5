"""Wiring of collection, aggregation and alerting for one deployment."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from typing import List, Optional, Sequence

from app.schemas import DailyAggregate
from datastore.daily_table import DailyWeatherTable, build_default_table
from models.records import CanonicalReading, MergeFailure, MergeOutcome
from services.aggregator import DailyAggregator
from services.alerts import AlertDispatcher, SmtpMailer
from services.collector import Collector
from services.provider import OpenWeatherClient
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """Outcome of one collect-and-merge run."""

    reading_count: int = 0
    merged: List[MergeOutcome] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def failures(self) -> List[MergeFailure]:
        return [outcome for outcome in self.merged if isinstance(outcome, MergeFailure)]


class WeatherPipeline:
    """Coordinates collection, daily aggregation and alert delivery."""

    def __init__(
        self,
        cities: Sequence[str],
        collector: Collector,
        aggregator: DailyAggregator,
        dispatcher: Optional[AlertDispatcher] = None,
    ) -> None:
        self.cities = tuple(cities)
        self.collector = collector
        self.aggregator = aggregator
        self.dispatcher = dispatcher

    def fetch_current(self) -> List[CanonicalReading]:
        """Collect current readings for every city without persisting them."""
        return self.collector.collect(self.cities)

    def run_once(self) -> TickReport:
        """Collect all cities and merge each reading into its daily row."""
        start_time = time.perf_counter()
        readings = self.collector.collect(self.cities)
        report = TickReport(reading_count=len(readings))

        for reading in readings:
            try:
                outcome = self.aggregator.merge_and_persist(reading)
            except Exception as exc:  # noqa: BLE001 - keep merging the other cities
                logger.exception(
                    "Unexpected error merging weather data",
                    extra={"city": reading.city, "reason": str(exc)},
                )
                outcome = MergeFailure(
                    city=reading.city, date=reading.observed_date, reason=str(exc)
                )
            report.merged.append(outcome)

        report.duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Weather tick finished",
            extra={
                "reading_count": report.reading_count,
                "merged_count": len(report.merged) - len(report.failures),
                "failure_count": len(report.failures),
                "duration_ms": report.duration_ms,
            },
        )
        return report

    def daily_records(
        self, city: Optional[str] = None, day: Optional[date] = None
    ) -> List[DailyAggregate]:
        rows = self.aggregator.table.scan()
        if city is not None:
            rows = [row for row in rows if row.city.lower() == city.lower()]
        if day is not None:
            rows = [row for row in rows if row.date == day]
        return rows

    def shutdown(self) -> None:
        """Release worker threads and HTTP connections."""
        self.collector.shutdown()
        if self.dispatcher is not None:
            self.dispatcher.shutdown()
        close = getattr(self.collector.provider, "close", None)
        if callable(close):
            close()


def build_pipeline(settings: Settings, table: DailyWeatherTable) -> WeatherPipeline:
    """Wire a pipeline from explicit settings and storage."""
    provider = OpenWeatherClient(
        base_url=settings.provider_base_url,
        api_key=settings.api_key,
        timeout=settings.provider_timeout,
    )
    mailer = SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.email_user,
        password=settings.email_password,
        use_tls=settings.smtp_use_tls,
    )
    dispatcher = AlertDispatcher(
        mailer=mailer,
        recipient=settings.alert_recipient,
        sender=settings.email_user,
    )
    aggregator = DailyAggregator(
        table=table,
        alert_sink=dispatcher.submit,
        threshold_c=settings.alert_threshold_c,
    )
    collector = Collector(provider=provider, workers=settings.fetch_workers)
    return WeatherPipeline(
        cities=settings.cities,
        collector=collector,
        aggregator=aggregator,
        dispatcher=dispatcher,
    )


@lru_cache
def build_default_pipeline() -> WeatherPipeline:
    """Factory that wires the pipeline from environment settings."""
    return build_pipeline(get_settings(), build_default_table())
