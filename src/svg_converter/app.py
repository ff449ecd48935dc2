"""FastAPI application factory for the SVG conversion service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router as api_router
from .config import Settings, get_settings, settings_dependency
from .errors import install_error_handlers
from .logging import configure_logging
from .monitoring import ensure_metrics_server
from .rendering import SessionJanitor

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.logging)

    metrics_disabled = os.getenv("SVG_DISABLE_METRICS", "false").lower() in {"1", "true", "yes"}
    if not metrics_disabled:
        ensure_metrics_server(settings.monitoring.prometheus_port)

    temp_root = Path(settings.storage.temp_dir)
    janitor = SessionJanitor(temp_root, default_delay=settings.storage.cleanup_delay_sec)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        temp_root.mkdir(parents=True, exist_ok=True)
        janitor.purge_stale(settings.storage.stale_after_sec)
        logger.info("SVG to PNG service ready, scratch area %s", temp_root.resolve())
        yield
        await janitor.shutdown()

    app = FastAPI(
        title="SVG to PNG Service",
        version=settings.api_version,
        lifespan=lifespan,
    )
    app.state.janitor = janitor
    app.dependency_overrides[settings_dependency] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(api_router)

    return app
