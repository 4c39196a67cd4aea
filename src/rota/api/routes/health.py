"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_routing_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.routing_client import check_health as routing_health_check
    return routing_health_check


@router.get("/health/routing", status_code=status.HTTP_200_OK)
def health_routing() -> dict:
    """Check the distance service. Route planning still works when it is down."""
    if not settings.routing_api_key:
        return {"service": "routing", "configured": False, "healthy": False}
    routing_health_check = _get_routing_health_check()
    return {"service": "routing", "configured": True, "healthy": routing_health_check()}
