"""Relay health and metrics endpoints."""
from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..core.config import settings

router = APIRouter()


@router.get("/health", summary="Relay readiness check")
async def relay_health() -> dict[str, object]:
    """Report whether the relay can reach Klipy with a server-held key."""
    return {
        "status": "ok",
        "providerConfigured": bool(settings.KLIPY_API_KEY),
        "sessionRequired": settings.RELAY_REQUIRE_SESSION,
    }


@router.get("/metrics", summary="Prometheus metrics feed")
async def relay_metrics() -> Response:
    """Request and relay outcome counters in Prometheus text format."""

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
