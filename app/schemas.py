"""Pydantic schemas for persisted rows and the HTTP API layer."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field, field_serializer

from models.records import CanonicalReading


class DailyAggregateFields(BaseModel):
    """Row contents for one city and UTC calendar day, minus the row id."""

    city: str
    date: dt.date
    temperatures: str = Field(
        ..., description="JSON array of Celsius samples in arrival order."
    )
    max_temp: Decimal
    min_temp: Decimal
    avg_temp: Decimal
    dominant_weather: str = Field(
        ..., description="Condition of the most recent reading for the day."
    )
    alert_triggered: bool = False


class DailyAggregate(DailyAggregateFields):
    """A persisted daily weather row."""

    id: int = Field(..., ge=1)


class WeatherReadingOut(BaseModel):
    """Wire shape of a canonical reading returned by the fetch endpoint."""

    city: str
    temperature: str = Field(..., description="Celsius, two fractional digits.")
    condition: str
    timestamp: int

    @classmethod
    def from_reading(cls, reading: CanonicalReading) -> "WeatherReadingOut":
        return cls(
            city=reading.city,
            temperature=f"{reading.temperature_celsius:.2f}",
            condition=reading.condition,
            timestamp=reading.observed_at,
        )


class DailyAggregateOut(BaseModel):
    """Daily row as exposed over HTTP with its samples decoded."""

    id: int
    city: str
    date: dt.date
    temperatures: List[Decimal] = Field(default_factory=list)
    max_temp: Decimal
    min_temp: Decimal
    avg_temp: Decimal
    dominant_weather: str
    alert_triggered: bool

    @field_serializer("temperatures", "max_temp", "min_temp", "avg_temp")
    def _as_float(self, value):
        if isinstance(value, list):
            return [float(item) for item in value]
        return float(value)
