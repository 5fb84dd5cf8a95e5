"""End-to-end tick behaviour with stubbed provider and mailer."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from email.message import EmailMessage

import httpx

from datastore.daily_table import DailyWeatherTable, PersistenceError
from models.records import MergeFailure
from services.aggregator import DailyAggregator, decode_temperatures
from services.alerts import AlertDispatcher
from services.collector import Collector
from services.pipeline import WeatherPipeline, build_pipeline
from services.provider import OpenWeatherClient
from settings import get_settings

CITIES = ("Delhi", "Mumbai", "Chennai")
JUNE_FIRST = int(datetime(2024, 6, 1, 12, tzinfo=timezone.utc).timestamp())
KELVIN = {"Delhi": 301.15, "Mumbai": 295.15, "Chennai": 303.65}


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.sent.append(message)


def _provider(failing: frozenset[str] = frozenset()) -> OpenWeatherClient:
    def handler(request: httpx.Request) -> httpx.Response:
        city = request.url.params["q"]
        if city in failing:
            return httpx.Response(503)
        return httpx.Response(
            200,
            json={"main": {"temp": KELVIN[city]}, "weather": [{"main": "Clear"}], "dt": JUNE_FIRST},
        )

    return OpenWeatherClient(
        base_url="https://weather.test/data/2.5/weather",
        api_key="key",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _pipeline(table: DailyWeatherTable, failing: frozenset[str] = frozenset()) -> tuple[WeatherPipeline, RecordingMailer]:
    mailer = RecordingMailer()
    dispatcher = AlertDispatcher(mailer, recipient="ops@example.com")
    aggregator = DailyAggregator(table=table, alert_sink=dispatcher.submit)
    pipeline = WeatherPipeline(
        cities=CITIES,
        collector=Collector(_provider(failing), workers=3),
        aggregator=aggregator,
        dispatcher=dispatcher,
    )
    return pipeline, mailer


def test_run_once_persists_rows_and_sends_alerts() -> None:
    table = DailyWeatherTable(name="weather_data")
    pipeline, mailer = _pipeline(table)

    report = pipeline.run_once()
    pipeline.shutdown()

    assert report.reading_count == 3
    assert report.failures == []
    rows = {row.city: row for row in table.scan()}
    assert set(rows) == set(CITIES)
    assert rows["Delhi"].max_temp == Decimal("28.00")
    assert rows["Mumbai"].alert_triggered is False
    assert sorted(message["Subject"] for message in mailer.sent) == [
        "Weather Alert for Chennai",
        "Weather Alert for Delhi",
    ]


def test_repeated_ticks_accumulate_into_todays_row() -> None:
    table = DailyWeatherTable(name="weather_data")
    pipeline, _ = _pipeline(table)

    pipeline.run_once()
    pipeline.run_once()
    pipeline.shutdown()

    row = table.find("Mumbai", date(2024, 6, 1))
    assert row is not None
    assert decode_temperatures(row.temperatures) == [Decimal("22.00"), Decimal("22.00")]
    assert len(table.scan()) == 3


def test_failed_city_fetch_is_left_out() -> None:
    table = DailyWeatherTable(name="weather_data")
    pipeline, _ = _pipeline(table, failing=frozenset({"Chennai"}))

    report = pipeline.run_once()
    pipeline.shutdown()

    assert report.reading_count == 2
    assert {row.city for row in table.scan()} == {"Delhi", "Mumbai"}


def test_persistence_failure_for_one_city_does_not_block_others(caplog) -> None:
    class FlakyTable(DailyWeatherTable):
        def insert(self, fields):
            if fields.city == "Mumbai":
                raise PersistenceError("lost connection")
            return super().insert(fields)

    table = FlakyTable(name="weather_data")
    pipeline, _ = _pipeline(table)

    with caplog.at_level(logging.ERROR):
        report = pipeline.run_once()
    pipeline.shutdown()

    assert [failure.city for failure in report.failures] == ["Mumbai"]
    assert {row.city for row in table.scan()} == {"Delhi", "Chennai"}


def test_unexpected_merge_error_is_contained() -> None:
    class ExplodingAggregator(DailyAggregator):
        def merge_and_persist(self, reading):
            if reading.city == "Delhi":
                raise KeyError("unexpected")
            return super().merge_and_persist(reading)

    table = DailyWeatherTable(name="weather_data")
    pipeline = WeatherPipeline(
        cities=CITIES,
        collector=Collector(_provider(), workers=3),
        aggregator=ExplodingAggregator(table=table),
    )

    report = pipeline.run_once()
    pipeline.shutdown()

    assert isinstance(report.merged[0], MergeFailure)
    assert {row.city for row in table.scan()} == {"Mumbai", "Chennai"}


def test_fetch_current_does_not_persist() -> None:
    table = DailyWeatherTable(name="weather_data")
    pipeline, mailer = _pipeline(table)

    readings = pipeline.fetch_current()
    pipeline.shutdown()

    assert [reading.city for reading in readings] == list(CITIES)
    assert table.scan() == []
    assert mailer.sent == []


def test_daily_records_filters_by_city_and_date() -> None:
    table = DailyWeatherTable(name="weather_data")
    pipeline, _ = _pipeline(table)
    pipeline.run_once()
    pipeline.shutdown()

    assert [row.city for row in pipeline.daily_records(city="delhi")] == ["Delhi"]
    assert len(pipeline.daily_records(day=date(2024, 6, 1))) == 3
    assert pipeline.daily_records(day=date(2024, 6, 2)) == []


def test_build_pipeline_wires_settings() -> None:
    settings = get_settings()
    pipeline = build_pipeline(settings, DailyWeatherTable(name="weather_data"))

    try:
        assert pipeline.cities == settings.cities
        assert pipeline.aggregator.threshold_c == settings.alert_threshold_c
        assert pipeline.dispatcher is not None
        assert pipeline.dispatcher.recipient == settings.alert_recipient
        assert pipeline.collector.executor._max_workers == settings.fetch_workers
    finally:
        pipeline.shutdown()
