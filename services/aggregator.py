"""Daily aggregation of weather readings against the persisted row."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from threading import Lock
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from app.schemas import DailyAggregateFields
from datastore.daily_table import DailyWeatherTable, PersistenceError
from models.records import AlertEvent, CanonicalReading, MergeFailure, MergeOutcome, MergeResult
from services.units import quantize

logger = logging.getLogger(__name__)

AlertSink = Callable[[AlertEvent], Any]

DEFAULT_ALERT_THRESHOLD_C = Decimal("25.0")


@dataclass(frozen=True)
class DailyStats:
    max_temp: Decimal
    min_temp: Decimal
    avg_temp: Decimal


def decode_temperatures(raw: Optional[str]) -> Optional[List[Decimal]]:
    """Parse stored samples; ``None`` means the stored value is not a numeric array."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, list):
        return None

    samples: List[Decimal] = []
    for item in data:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return None
        try:
            value = Decimal(str(item))
            if not value.is_finite():
                return None
            samples.append(quantize(value))
        except InvalidOperation:
            return None
    return samples


def encode_temperatures(samples: Sequence[Decimal]) -> str:
    return json.dumps([float(sample) for sample in samples])


def summarize(samples: Sequence[Decimal]) -> DailyStats:
    if not samples:
        raise ValueError("Cannot summarize an empty temperature sequence.")
    total = sum(samples, Decimal(0))
    return DailyStats(
        max_temp=max(samples),
        min_temp=min(samples),
        avg_temp=quantize(total / len(samples)),
    )


class KeyedLocks:
    """Mutual exclusion per key, dropping a key's lock once nobody holds it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: Dict[Any, Tuple[Lock, int]] = {}

    @contextmanager
    def hold(self, key: Any) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = Lock()
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class DailyAggregator:
    """Merges each reading into the (city, UTC date) row and flags alerts."""

    def __init__(
        self,
        table: DailyWeatherTable,
        alert_sink: Optional[AlertSink] = None,
        threshold_c: Decimal = DEFAULT_ALERT_THRESHOLD_C,
    ) -> None:
        self.table = table
        self.alert_sink = alert_sink
        self.threshold_c = threshold_c
        self._locks = KeyedLocks()

    def merge_and_persist(self, reading: CanonicalReading) -> MergeOutcome:
        day = reading.observed_date
        log_context = {"city": reading.city, "date": day.isoformat()}

        with self._locks.hold((reading.city, day)):
            try:
                existing = self.table.find(reading.city, day)

                alert_triggered = reading.temperature_celsius > self.threshold_c
                if alert_triggered:
                    self._emit_alert(reading)

                if existing is None:
                    samples = [reading.temperature_celsius]
                else:
                    stored = decode_temperatures(existing.temperatures)
                    if stored is None:
                        logger.warning(
                            "Stored temperatures are malformed; starting a new sequence",
                            extra={**log_context, "row_id": existing.id},
                        )
                        stored = []
                    samples = stored + [reading.temperature_celsius]

                stats = summarize(samples)
                fields = DailyAggregateFields(
                    city=reading.city,
                    date=day,
                    temperatures=encode_temperatures(samples),
                    max_temp=stats.max_temp,
                    min_temp=stats.min_temp,
                    avg_temp=stats.avg_temp,
                    dominant_weather=reading.condition,
                    alert_triggered=alert_triggered,
                )

                if existing is None:
                    row = self.table.insert(fields)
                    logger.info("Inserted weather data", extra={**log_context, "row_id": row.id})
                else:
                    row = self.table.update(existing.id, fields)
                    logger.info("Updated weather data", extra={**log_context, "row_id": row.id})
            except PersistenceError as exc:
                logger.error(
                    "Error saving weather data",
                    extra={**log_context, "reason": str(exc)},
                )
                return MergeFailure(city=reading.city, date=day, reason=str(exc))

        return MergeResult(
            row_id=row.id,
            city=reading.city,
            date=day,
            created=existing is None,
            alert_triggered=alert_triggered,
            temperatures=samples,
        )

    def _emit_alert(self, reading: CanonicalReading) -> None:
        if self.alert_sink is None:
            return
        event = AlertEvent(city=reading.city, temperature_celsius=reading.temperature_celsius)
        try:
            self.alert_sink(event)
        except Exception as exc:  # noqa: BLE001 - alerting never blocks the merge
            logger.error(
                "Error queueing weather alert",
                extra={"city": reading.city, "reason": str(exc)},
            )
