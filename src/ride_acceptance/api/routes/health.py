"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.distance.maps_client import DistanceMatrixClient, check_health
from ...services.distance.resolver import DistanceResolver
from ..dependencies import get_resolver

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/maps", status_code=status.HTTP_200_OK)
async def health_maps(resolver: DistanceResolver = Depends(get_resolver)) -> dict:
    """Check the Distance Matrix API; estimates are used while it is unavailable."""
    client = resolver.client
    if client is None:
        return {"service": "google-maps", "configured": False, "healthy": False, "fallback": "estimated"}
    try:
        healthy = await check_health(client) if isinstance(client, DistanceMatrixClient) else True
        return {"service": "google-maps", "configured": True, "healthy": healthy}
    except Exception as e:
        return {"service": "google-maps", "configured": True, "healthy": False, "error": str(e)}
