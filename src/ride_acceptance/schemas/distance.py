"""Distance request/response schemas."""

from __future__ import annotations

from typing import List, Literal

from .acceptance import CamelModel


class DistancePairIn(CamelModel):
    origin: str
    destination: str


class DistanceBatchIn(CamelModel):
    requests: List[DistancePairIn]


class TripIn(CamelModel):
    driver_address: str
    pickup_address: str
    provider_address: str
    round_trip: bool = False


class DistanceModel(CamelModel):
    kind: Literal["measured", "estimated"]
    distance_miles: float
    duration_seconds: float
    distance_text: str
    duration_text: str
    distance_meters: float
    cached: bool


class DistanceBatchResponse(CamelModel):
    results: List[DistanceModel]


class TripLegModel(CamelModel):
    name: str
    origin: str
    destination: str
    distance: DistanceModel


class TripModel(CamelModel):
    total_distance: str
    total_duration: str
    total_distance_miles: float
    total_distance_meters: float
    total_duration_seconds: float
    includes_estimates: bool
    legs: List[TripLegModel]


class CacheStatsModel(CamelModel):
    size: int
    max_size: int
    expiry_days: int
    hits: int
    misses: int


class CacheCleanupModel(CamelModel):
    removed: int
    size: int
