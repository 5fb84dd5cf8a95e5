from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from logging_config import configure_logging
from services.pipeline import build_default_pipeline
from services.scheduler import IntervalScheduler
from settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    pipeline = build_default_pipeline()
    scheduler: Optional[IntervalScheduler] = None
    if settings.scheduler_enabled:
        scheduler = IntervalScheduler(
            job=pipeline.run_once,
            interval_seconds=settings.schedule_interval_seconds,
            overlap_policy=settings.overlap_policy,
        )
        scheduler.start()
    app.state.scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()
        pipeline.shutdown()
        build_default_pipeline.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Weather Monitor",
        description="Periodic city weather collection with daily aggregates and threshold alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app

app = create_app()
