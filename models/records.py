"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Union


def observation_date(observed_at: int) -> date:
    """UTC calendar date of a Unix-seconds timestamp."""
    return datetime.fromtimestamp(observed_at, tz=timezone.utc).date()


@dataclass(slots=True, frozen=True)
class CanonicalReading:
    """A current-weather observation for one city, normalized to Celsius."""

    city: str
    temperature_celsius: Decimal
    condition: str
    observed_at: int

    @property
    def observed_date(self) -> date:
        return observation_date(self.observed_at)


@dataclass(slots=True, frozen=True)
class FetchFailure:
    """A city whose provider request could not produce a reading."""

    city: str
    reason: str


@dataclass(slots=True, frozen=True)
class AlertEvent:
    """Threshold exceeded for ``city`` at ``temperature_celsius``."""

    city: str
    temperature_celsius: Decimal


@dataclass(slots=True)
class MergeResult:
    row_id: int
    city: str
    date: date
    created: bool
    alert_triggered: bool
    temperatures: List[Decimal] = field(default_factory=list)


@dataclass(slots=True)
class MergeFailure:
    city: str
    date: date
    reason: str


FetchOutcome = Union[CanonicalReading, FetchFailure]
MergeOutcome = Union[MergeResult, MergeFailure]
