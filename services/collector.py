"""Concurrent per-city collection of current weather readings."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Protocol

from models.records import CanonicalReading, FetchFailure, FetchOutcome

logger = logging.getLogger(__name__)


class WeatherProvider(Protocol):
    def fetch_one(self, city: str) -> FetchOutcome: ...


class Collector:
    """Fans provider calls out over a thread pool and keeps the successes."""

    def __init__(self, provider: WeatherProvider, workers: int = 6) -> None:
        self.provider = provider
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="weather-fetch"
        )

    def collect(self, cities: Iterable[str]) -> List[CanonicalReading]:
        """Fetch every city concurrently, returning readings in city order.

        A failing city is logged and left out; this method never raises.
        """
        ordered = list(dict.fromkeys(cities))
        start_time = time.perf_counter()
        outcomes = list(self.executor.map(self._fetch_guarded, ordered))

        readings = [outcome for outcome in outcomes if isinstance(outcome, CanonicalReading)]
        failures = len(outcomes) - len(readings)
        logger.info(
            "Collected weather readings",
            extra={
                "reading_count": len(readings),
                "failure_count": failures,
                "duration_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return readings

    def shutdown(self) -> None:
        self.executor.shutdown(wait=True)

    def _fetch_guarded(self, city: str) -> FetchOutcome:
        try:
            return self.provider.fetch_one(city)
        except Exception as exc:  # noqa: BLE001 - per-city isolation
            logger.exception(
                "Unexpected error fetching weather data",
                extra={"city": city, "reason": str(exc)},
            )
            return FetchFailure(city=city, reason=str(exc))
