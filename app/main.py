from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from logging_config import configure_logging
from services.alert_relay import build_default_relay


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    relay = build_default_relay()
    try:
        yield
    finally:
        await relay.aclose()
        build_default_relay.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Water Level Alert Relay",
        description="Forwards deduplicated water level alerts to Telegram.",
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
