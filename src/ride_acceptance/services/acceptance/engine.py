"""Ride acceptance scoring and ranking."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ...models.domain import DriverProfile, RideCandidate
from ..distance.models import DistanceRequest, DistanceResult
from ..distance.resolver import DistanceResolver
from .factors import (
    day_of_week_factor,
    distance_factor,
    time_factor,
    time_of_day_factor,
    urgency_factor,
)
from .models import (
    AcceptanceFactors,
    AcceptanceOptions,
    AcceptanceScore,
    BatchResult,
    BatchSummary,
    ScoredRide,
)

FAILED_RANK = 999
DRIVER_ADDRESS_MISSING = "Driver address not available"
SCORING_FAILED = "Unable to calculate acceptance score"

# Thresholds on the unweighted sum of the five factor scores.
QUALITY_BUCKETS = ((2.5, "Excellent"), (2.0, "Good"), (1.5, "Fair"))

logger = logging.getLogger(__name__)


def quality_label(factor_sum: float) -> str:
    for threshold, label in QUALITY_BUCKETS:
        if factor_sum > threshold:
            return label
    return "Poor"


def acceptance_reason(factors: AcceptanceFactors, eligible: bool) -> str:
    if not eligible:
        return f"Not eligible: {factors.distance.reason}"
    label = quality_label(factors.score_sum())
    details = "; ".join(
        reason for reason in (factors.distance.reason, factors.time_of_day.reason, factors.day_of_week.reason) if reason
    )
    return f"{label} match: {details}"


def combine_factors(factors: AcceptanceFactors, options: AcceptanceOptions) -> float:
    """Weighted sum of the factor scores scaled to 0-100."""
    weights = options.weights
    raw = (
        factors.distance.score * weights.distance
        + factors.time.score * weights.time
        + factors.urgency.score * weights.urgency
        + factors.time_of_day.score * weights.time_of_day
        + factors.day_of_week.score * weights.day_of_week
    )
    if options.normalize_weights:
        total = weights.total
        raw = raw / total if total > 0 else 0.0
    return min(max(raw * 100, 0.0), 100.0)


def _failed_score(error: Exception) -> AcceptanceScore:
    return AcceptanceScore(score=0.0, rank=FAILED_RANK, eligible=False, reason=SCORING_FAILED, error=str(error))


def summarize(rides: Sequence[ScoredRide]) -> BatchSummary:
    total = len(rides)
    eligible = sum(1 for item in rides if item.acceptance.eligible)
    return BatchSummary(
        total_count=total,
        eligible_count=eligible,
        ineligible_count=total - eligible,
        average_score=sum(item.acceptance.score for item in rides) / total if total else 0.0,
        top_score=rides[0].acceptance.score if rides else 0.0,
    )


def rank_rides(rides: Sequence[ScoredRide]) -> list[ScoredRide]:
    """Order by score descending; ties keep input order. Ineligible rides stay flagged in place."""
    ranked = sorted(rides, key=lambda item: -item.acceptance.score)
    for index, item in enumerate(ranked):
        item.acceptance.rank = index + 1
    return ranked


class AcceptanceEngine:
    """Scores candidate rides for a driver and ranks them.

    Distances come from the injected :class:`DistanceResolver`; batch scoring
    resolves every driver-to-pickup distance with a single resolver call.
    """

    def __init__(
        self,
        resolver: DistanceResolver,
        options: AcceptanceOptions | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.resolver = resolver
        self.options = options or AcceptanceOptions.from_settings()
        self._clock = clock

    def evaluate(
        self,
        ride: RideCandidate,
        driver: DriverProfile,
        distance: Optional[DistanceResult],
        options: AcceptanceOptions | None = None,
        now: Optional[datetime] = None,
    ) -> AcceptanceScore:
        """Score one ride against an already resolved driver-to-pickup distance."""
        options = options or self.options
        now = now or self._clock()
        factors = AcceptanceFactors(
            distance=distance_factor(ride, driver, distance, options.max_distance),
            time=time_factor(ride, now),
            urgency=urgency_factor(ride),
            time_of_day=time_of_day_factor(ride, driver),
            day_of_week=day_of_week_factor(ride, driver, now),
        )
        miles = factors.distance.distance
        eligible = miles is not None and miles <= options.max_distance
        return AcceptanceScore(
            score=combine_factors(factors, options),
            eligible=eligible,
            reason=acceptance_reason(factors, eligible),
            factors=factors,
        )

    async def score(
        self,
        ride: RideCandidate,
        driver: DriverProfile,
        options: AcceptanceOptions | None = None,
    ) -> AcceptanceScore:
        """Score a single ride, resolving its distance on demand."""
        try:
            distance = None
            if driver.has_address and ride.pickup_location:
                distance = await self.resolver.resolve(driver.address, ride.pickup_location)
            return self.evaluate(ride, driver, distance, options)
        except Exception as exc:
            logger.exception(f"Error calculating acceptance score for ride {ride.id}: {exc}")
            return _failed_score(exc)

    async def process_batch(
        self,
        rides: Sequence[RideCandidate],
        driver: DriverProfile,
        options: AcceptanceOptions | None = None,
    ) -> BatchResult:
        """Score and rank every ride for the driver. Never raises for per-ride problems."""
        options = options or self.options
        logger.info(f"Processing {len(rides)} rides for driver acceptance scoring")

        if not driver.has_address:
            logger.warning("Driver has no address; every ride is ineligible")
            scored = [
                ScoredRide(ride=ride, acceptance=AcceptanceScore(score=0.0, eligible=False, reason=DRIVER_ADDRESS_MISSING))
                for ride in rides
            ]
            ranked = rank_rides(scored)
            return BatchResult(rides=ranked, summary=summarize(ranked))

        distances: dict[int, DistanceResult] = {}
        with_pickup = [index for index, ride in enumerate(rides) if ride.pickup_location]
        if with_pickup:
            requests = [DistanceRequest(driver.address, rides[index].pickup_location) for index in with_pickup]
            resolved = await self.resolver.resolve_many(requests, max_parallel_requests=options.batch_size)
            distances = dict(zip(with_pickup, resolved))

        now = self._clock()
        scored = []
        for index, ride in enumerate(rides):
            try:
                acceptance = self.evaluate(ride, driver, distances.get(index), options, now)
            except Exception as exc:
                logger.exception(f"Error calculating acceptance score for ride {ride.id}: {exc}")
                acceptance = _failed_score(exc)
            scored.append(ScoredRide(ride=ride, acceptance=acceptance))

        ranked = rank_rides(scored)
        summary = summarize(ranked)
        logger.info(
            f"Processed {summary.total_count} rides: {summary.eligible_count} eligible, "
            f"top score {summary.top_score:.1f}"
        )
        return BatchResult(rides=ranked, summary=summary)
