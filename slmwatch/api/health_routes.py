"""API routes for the health report.

Endpoints:
  GET  /_health_report              — all indicators + aggregate status
  GET  /_health_report/{indicator}  — a single indicator
Both accept ``?verbose=false`` to skip the details block.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from slmwatch.errors import StateProviderError, UnknownIndicatorError
from slmwatch.health.service import HealthReport, HealthService

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["health"])


def _report(request: Request, indicator: str | None, verbose: bool) -> HealthReport:
    service: HealthService = request.app.state.health_service
    try:
        return service.get_health(indicator_name=indicator, explain=verbose)
    except UnknownIndicatorError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StateProviderError as e:
        logger.warning("Health report unavailable: %s", e)
        raise HTTPException(status_code=503, detail=str(e))


@health_router.get("/_health_report")
def health_report(request: Request, verbose: bool = True) -> dict[str, Any]:
    """Aggregate status of every registered indicator."""
    return _report(request, None, verbose).to_dict()


@health_router.get("/_health_report/{indicator}")
def indicator_report(indicator: str, request: Request, verbose: bool = True) -> dict[str, Any]:
    """Status of one indicator."""
    return _report(request, indicator, verbose).to_dict()
