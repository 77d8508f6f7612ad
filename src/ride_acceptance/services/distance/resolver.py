"""Cache-aware distance resolution with batching and synthetic fallbacks."""

from __future__ import annotations

import logging
import random
from typing import Any, Protocol, Sequence

from ...config import settings
from .cache import DistanceCache, normalize_address
from .models import (
    METERS_PER_MILE,
    CachedDistance,
    DistanceRequest,
    DistanceResult,
    TripDistance,
    TripLeg,
)

logger = logging.getLogger(__name__)


class InvalidAddressError(ValueError):
    """Raised when a single-pair distance request is missing an address."""


class DistanceCapability(Protocol):
    async def matrix(
        self,
        origins: Sequence[str],
        destinations: Sequence[str],
        max_parallel_requests: int | None = None,
    ) -> list[list[dict[str, Any]]]:
        ...


def _is_blank(address: str | None) -> bool:
    return not address or not address.strip()


def _cell_to_cached(cell: dict[str, Any] | None) -> CachedDistance | None:
    """Convert a matrix cell into a cacheable value, or None for a failed cell."""
    if not cell or cell.get("status") != "OK":
        return None
    distance = cell.get("distance") or {}
    duration = cell.get("duration") or {}
    if distance.get("value") is None or duration.get("value") is None:
        return None
    return CachedDistance(
        distance_text=str(distance.get("text") or ""),
        duration_text=str(duration.get("text") or ""),
        distance_meters=float(distance["value"]),
        duration_seconds=float(duration["value"]),
    )


class DistanceResolver:
    """Resolve driving distances, consulting the cache before the maps service.

    Only measured results are cached. Synthetic estimates are returned to the
    caller tagged ``kind="estimated"`` and are recomputed on every request.
    """

    def __init__(
        self,
        cache: DistanceCache,
        client: DistanceCapability | None = None,
        *,
        rng: random.Random | None = None,
        fallback_min_miles: float | None = None,
        fallback_max_miles: float | None = None,
        fallback_minutes_per_mile: float | None = None,
    ) -> None:
        self.cache = cache
        self.client = client
        self._rng = rng or random.Random()
        self.fallback_min_miles = fallback_min_miles if fallback_min_miles is not None else settings.fallback_min_miles
        self.fallback_max_miles = fallback_max_miles if fallback_max_miles is not None else settings.fallback_max_miles
        self.fallback_minutes_per_mile = (
            fallback_minutes_per_mile if fallback_minutes_per_mile is not None else settings.fallback_minutes_per_mile
        )

    def estimate(self, origin: str | None, destination: str | None) -> DistanceResult:
        """Synthetic distance used when no measured result is available."""
        logger.debug(f"Using fallback distance estimate for {origin} to {destination}")
        span = self.fallback_max_miles - self.fallback_min_miles
        miles = round(self._rng.random() * span + self.fallback_min_miles, 1)
        minutes = round(miles * self.fallback_minutes_per_mile)
        return DistanceResult(
            kind="estimated",
            distance_miles=miles,
            duration_seconds=minutes * 60,
            distance_text=f"{miles} mi",
            duration_text=f"{minutes} min",
            distance_meters=miles * METERS_PER_MILE,
        )

    def _from_cache(self, origin: str, destination: str) -> DistanceResult | None:
        cached = self.cache.get(origin, destination)
        if cached is None:
            return None
        return DistanceResult.measured(cached, cached=True)

    async def resolve(self, origin: str, destination: str) -> DistanceResult:
        """Resolve one origin/destination pair."""
        if _is_blank(origin) or _is_blank(destination):
            raise InvalidAddressError("Origin and destination addresses are required.")

        hit = self._from_cache(origin, destination)
        if hit is not None:
            return hit

        if self.client is None:
            return self.estimate(origin, destination)

        try:
            grid = await self.client.matrix([origin], [destination])
        except Exception as exc:
            logger.warning(f"Distance lookup failed for {origin} to {destination}: {exc}. Using fallback estimate.")
            return self.estimate(origin, destination)

        cell = grid[0][0] if grid and grid[0] else None
        value = _cell_to_cached(cell)
        if value is None:
            logger.warning(f"Distance calculation failed for {origin} to {destination}: {(cell or {}).get('status')}")
            return self.estimate(origin, destination)

        self.cache.set(origin, destination, value)
        return DistanceResult.measured(value)

    async def resolve_many(
        self,
        requests: Sequence[DistanceRequest],
        max_parallel_requests: int | None = None,
    ) -> list[DistanceResult]:
        """Resolve many pairs with at most one call to the maps service.

        ``max_parallel_requests`` bounds the concurrent chunk requests the maps
        client issues for a large matrix.

        Results keep the order of ``requests``. Requests with a blank address
        resolve to an estimate instead of raising.
        """
        results: list[DistanceResult | None] = [None] * len(requests)
        pending: list[int] = []

        for index, request in enumerate(requests):
            if _is_blank(request.origin) or _is_blank(request.destination):
                results[index] = self.estimate(request.origin, request.destination)
                continue
            hit = self._from_cache(request.origin, request.destination)
            if hit is not None:
                results[index] = hit
            else:
                pending.append(index)

        if not pending:
            logger.debug(f"All {len(requests)} distance requests served from cache")
            return [result for result in results if result is not None]

        if self.client is None:
            for index in pending:
                results[index] = self.estimate(requests[index].origin, requests[index].destination)
            return [result for result in results if result is not None]

        # Unique addresses (by normalized form) keep the matrix as small as possible.
        origin_index: dict[str, int] = {}
        destination_index: dict[str, int] = {}
        origins: list[str] = []
        destinations: list[str] = []
        for index in pending:
            request = requests[index]
            origin_key = normalize_address(request.origin)
            if origin_key not in origin_index:
                origin_index[origin_key] = len(origins)
                origins.append(request.origin)
            destination_key = normalize_address(request.destination)
            if destination_key not in destination_index:
                destination_index[destination_key] = len(destinations)
                destinations.append(request.destination)

        logger.info(
            f"Resolving {len(pending)} uncached distances ({len(requests) - len(pending)} cached) "
            f"with a {len(origins)}x{len(destinations)} matrix request"
        )

        try:
            grid = await self.client.matrix(origins, destinations, max_parallel_requests=max_parallel_requests)
        except Exception as exc:
            logger.warning(f"Batch distance lookup failed: {exc}. Using fallback estimates for {len(pending)} requests.")
            for index in pending:
                results[index] = self.estimate(requests[index].origin, requests[index].destination)
            return [result for result in results if result is not None]

        for index in pending:
            request = requests[index]
            row = origin_index[normalize_address(request.origin)]
            column = destination_index[normalize_address(request.destination)]
            cell = grid[row][column] if row < len(grid) and column < len(grid[row]) else None
            value = _cell_to_cached(cell)
            if value is None:
                logger.warning(
                    f"Distance calculation failed for {request.origin} to {request.destination}: "
                    f"{(cell or {}).get('status')}"
                )
                results[index] = self.estimate(request.origin, request.destination)
                continue
            self.cache.set(request.origin, request.destination, value)
            results[index] = DistanceResult.measured(value)

        return [result for result in results if result is not None]

    async def distance_to_driver(self, driver_address: str, pickup_address: str) -> float:
        """Driver-to-pickup distance in miles, rounded to one decimal."""
        result = await self.resolve(driver_address, pickup_address)
        return round(result.distance_miles, 1)

    async def resolve_trip(
        self,
        driver_address: str,
        pickup_address: str,
        provider_address: str,
        round_trip: bool = False,
    ) -> TripDistance:
        """Total travel for a ride: driver to pickup, pickup to provider and the optional return leg."""
        for address in (driver_address, pickup_address, provider_address):
            if _is_blank(address):
                raise InvalidAddressError("Driver, pickup and provider addresses are required.")

        legs = [
            ("Driver to Pickup", driver_address, pickup_address),
            ("Pickup to Provider", pickup_address, provider_address),
        ]
        if round_trip:
            legs.append(("Provider to Pickup (Return)", provider_address, pickup_address))

        resolved = await self.resolve_many([DistanceRequest(origin, destination) for _, origin, destination in legs])
        trip_legs = [
            TripLeg(name=name, origin=origin, destination=destination, distance=distance)
            for (name, origin, destination), distance in zip(legs, resolved)
        ]

        total_meters = sum(leg.distance.distance_meters for leg in trip_legs)
        total_seconds = sum(leg.distance.duration_seconds for leg in trip_legs)
        trip = TripDistance(
            total_distance_text="",
            total_duration_text=f"{round(total_seconds / 60)} min",
            total_distance_meters=total_meters,
            total_duration_seconds=total_seconds,
            legs=trip_legs,
        )
        trip.total_distance_text = f"{trip.total_distance_miles} mi"
        return trip
