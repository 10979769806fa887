from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.scheduler import build_default_scheduler
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    scheduler = build_default_scheduler() if get_settings().scheduler_enabled else None
    if scheduler is not None:
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()
            build_default_scheduler.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Consumption Alarm Monitor",
        description="Periodic consumption threshold checks with deduplicated alarm history.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
