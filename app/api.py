"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.schemas import DailyAggregateOut, WeatherReadingOut
from services.aggregator import decode_temperatures
from services.pipeline import WeatherPipeline, build_default_pipeline

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch weather data."

router = APIRouter()
weather_router = APIRouter(prefix="/api/weather", tags=["weather"])


def get_pipeline() -> WeatherPipeline:
    return build_default_pipeline()


@weather_router.get(
    "/fetch-weather",
    response_model=List[WeatherReadingOut],
    summary="Fetch current weather for every configured city without storing it.",
    responses={500: {"description": "Unexpected failure while collecting readings."}},
)
def fetch_weather(
    pipeline: WeatherPipeline = Depends(get_pipeline),
):
    try:
        readings = pipeline.fetch_current()
    except Exception:  # noqa: BLE001 - surfaced to the caller as a generic 500
        logger.exception("Error fetching weather data")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": FETCH_FAILED_MESSAGE},
        )
    return [WeatherReadingOut.from_reading(reading) for reading in readings]


@weather_router.get(
    "/daily",
    response_model=List[DailyAggregateOut],
    summary="List persisted daily aggregates, optionally filtered by city and date.",
)
def list_daily(
    city: Optional[str] = Query(default=None, description="City name, case-insensitive."),
    day: Optional[date] = Query(default=None, alias="date", description="UTC date, YYYY-MM-DD."),
    pipeline: WeatherPipeline = Depends(get_pipeline),
) -> List[DailyAggregateOut]:
    rows = pipeline.daily_records(city=city, day=day)
    return [
        DailyAggregateOut(
            id=row.id,
            city=row.city,
            date=row.date,
            temperatures=decode_temperatures(row.temperatures) or [],
            max_temp=row.max_temp,
            min_temp=row.min_temp,
            avg_temp=row.avg_temp,
            dominant_weather=row.dominant_weather,
            alert_triggered=row.alert_triggered,
        )
        for row in rows
    ]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok"}


router.include_router(weather_router)
