"""Distance endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.distance import (
    CacheCleanupModel,
    CacheStatsModel,
    DistanceBatchIn,
    DistanceBatchResponse,
    DistanceModel,
    DistancePairIn,
    TripIn,
    TripModel,
)
from ...services.distance.models import DistanceRequest
from ...services.distance.resolver import DistanceResolver
from ...services.outputs.formatter import distance_to_model, trip_to_model
from ..dependencies import get_resolver

router = APIRouter(prefix="/distance", tags=["distance"])


@router.post("", response_model=DistanceModel, status_code=status.HTTP_200_OK)
async def resolve_distance(payload: DistancePairIn, resolver: DistanceResolver = Depends(get_resolver)) -> DistanceModel:
    try:
        result = await resolver.resolve(payload.origin, payload.destination)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return distance_to_model(result)


@router.post("/batch", response_model=DistanceBatchResponse, status_code=status.HTTP_200_OK)
async def resolve_distances(
    payload: DistanceBatchIn, resolver: DistanceResolver = Depends(get_resolver)
) -> DistanceBatchResponse:
    requests = [DistanceRequest(item.origin, item.destination) for item in payload.requests]
    results = await resolver.resolve_many(requests)
    return DistanceBatchResponse(results=[distance_to_model(result) for result in results])


@router.post("/trip", response_model=TripModel, status_code=status.HTTP_200_OK)
async def resolve_trip(payload: TripIn, resolver: DistanceResolver = Depends(get_resolver)) -> TripModel:
    """Total travel for a ride including the driver's approach and an optional return leg."""
    try:
        trip = await resolver.resolve_trip(
            payload.driver_address,
            payload.pickup_address,
            payload.provider_address,
            payload.round_trip,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error calculating trip distance: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to calculate trip distance: {str(exc)}"
        ) from exc
    return trip_to_model(trip)


@router.get("/cache/stats", response_model=CacheStatsModel, status_code=status.HTTP_200_OK)
def cache_stats(resolver: DistanceResolver = Depends(get_resolver)) -> CacheStatsModel:
    return CacheStatsModel(**resolver.cache.stats())


@router.post("/cache/cleanup", response_model=CacheCleanupModel, status_code=status.HTTP_200_OK)
def cache_cleanup(resolver: DistanceResolver = Depends(get_resolver)) -> CacheCleanupModel:
    """Remove expired cache entries."""
    removed = resolver.cache.cleanup()
    return CacheCleanupModel(removed=removed, size=len(resolver.cache))
