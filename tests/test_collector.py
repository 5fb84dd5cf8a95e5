from __future__ import annotations

import threading
from decimal import Decimal

from models.records import CanonicalReading, FetchFailure
from services.collector import Collector

CITIES = ["Delhi", "Mumbai", "Chennai", "Bangalore", "Kolkata", "Hyderabad"]


class StubProvider:
    def __init__(self, failing: set[str] | None = None, raising: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.raising = raising or set()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch_one(self, city: str):
        with self._lock:
            self.calls.append(city)
        if city in self.raising:
            raise RuntimeError(f"boom for {city}")
        if city in self.failing:
            return FetchFailure(city=city, reason="provider returned status 500")
        return CanonicalReading(
            city=city,
            temperature_celsius=Decimal("21.50"),
            condition="Clouds",
            observed_at=1717200000,
        )


def test_collect_returns_successful_readings_in_city_order() -> None:
    collector = Collector(StubProvider(failing={"Mumbai", "Kolkata"}), workers=3)
    try:
        readings = collector.collect(CITIES)
    finally:
        collector.shutdown()

    assert [reading.city for reading in readings] == ["Delhi", "Chennai", "Bangalore", "Hyderabad"]
    assert len(readings) == len(CITIES) - 2


def test_collect_absorbs_unexpected_provider_exceptions() -> None:
    provider = StubProvider(raising={"Delhi"}, failing={"Chennai"})
    collector = Collector(provider, workers=2)
    try:
        readings = collector.collect(CITIES)
    finally:
        collector.shutdown()

    assert len(readings) == 4
    assert sorted(provider.calls) == sorted(CITIES)


def test_collect_all_failed_returns_empty_list() -> None:
    collector = Collector(StubProvider(failing=set(CITIES)), workers=6)
    try:
        assert collector.collect(CITIES) == []
    finally:
        collector.shutdown()


def test_collect_runs_fetches_concurrently() -> None:
    barrier = threading.Barrier(3)

    class CoordinatedProvider(StubProvider):
        def fetch_one(self, city: str):
            try:
                barrier.wait(timeout=1.0)
            except threading.BrokenBarrierError as exc:
                raise AssertionError("Fetches did not run concurrently") from exc
            return super().fetch_one(city)

    collector = Collector(CoordinatedProvider(), workers=3)
    try:
        readings = collector.collect(["Delhi", "Mumbai", "Chennai"])
    finally:
        collector.shutdown()

    assert len(readings) == 3
