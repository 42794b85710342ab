"""FastAPI server exposing the health report."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from slmwatch import __version__
from slmwatch.api.health_routes import health_router
from slmwatch.health.indicator import SlmHealthIndicator, Thresholds
from slmwatch.health.service import HealthService
from slmwatch.lifecycle.provider import provider_from_settings

logger = logging.getLogger(__name__)


def build_health_service() -> HealthService:
    """Health service with the SLM indicator wired to the configured state source."""
    indicator = SlmHealthIndicator(provider_from_settings(), Thresholds.from_settings())
    return HealthService([indicator])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the health service unless one was injected beforehand."""
    if getattr(app.state, "health_service", None) is None:
        app.state.health_service = build_health_service()
    logger.info("Health indicators registered: %s", ", ".join(app.state.health_service.names))
    yield


def create_app(service: HealthService | None = None) -> FastAPI:
    app = FastAPI(
        title="slmwatch - SLM health indicator",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.health_service = service
    app.include_router(health_router)
    return app


app = create_app()
