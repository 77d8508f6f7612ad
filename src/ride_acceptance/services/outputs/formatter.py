"""Utilities to serialize scoring and distance results into API payloads."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from pydantic.alias_generators import to_camel

from ...models.domain import RideCandidate
from ...schemas.acceptance import AcceptanceModel, RankResponse, SummaryModel
from ...schemas.distance import DistanceModel, TripLegModel, TripModel
from ..acceptance.models import AcceptanceFactors, AcceptanceScore, BatchResult, ScoredRide
from ..distance.models import DistanceResult, TripDistance


def _camel_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in data.items()}


def factors_to_json(factors: AcceptanceFactors | None) -> dict[str, Any]:
    if factors is None:
        return {}
    return {to_camel(name): _camel_keys(values) for name, values in asdict(factors).items()}


def ride_to_json(ride: RideCandidate) -> dict[str, Any]:
    return {
        **ride.extra,
        "id": ride.id,
        "pickupLocation": ride.pickup_location,
        "providerLocation": ride.provider_location,
        "appointmentDate": ride.appointment_date,
        "appointmentTime": ride.appointment_time,
        "roundTrip": ride.round_trip,
        "notes": ride.notes,
        "appointmentType": ride.appointment_type,
        "distanceToProvider": ride.distance_to_provider,
    }


def acceptance_to_model(acceptance: AcceptanceScore) -> AcceptanceModel:
    factors = factors_to_json(acceptance.factors)
    if acceptance.error:
        factors["error"] = acceptance.error
    return AcceptanceModel(
        score=round(acceptance.score, 2),
        rank=acceptance.rank,
        eligible=acceptance.eligible,
        reason=acceptance.reason,
        factors=factors,
        error=acceptance.error,
    )


def scored_ride_to_json(item: ScoredRide) -> dict[str, Any]:
    payload = ride_to_json(item.ride)
    payload["acceptance"] = acceptance_to_model(item.acceptance).model_dump(by_alias=True)
    return payload


def batch_result_to_response(result: BatchResult) -> RankResponse:
    summary = result.summary
    return RankResponse(
        rides=[scored_ride_to_json(item) for item in result.rides],
        summary=SummaryModel(
            total_count=summary.total_count,
            eligible_count=summary.eligible_count,
            ineligible_count=summary.ineligible_count,
            average_score=round(summary.average_score, 2),
            top_score=round(summary.top_score, 2),
        ),
    )


def distance_to_model(result: DistanceResult) -> DistanceModel:
    return DistanceModel(
        kind=result.kind,
        distance_miles=result.distance_miles,
        duration_seconds=result.duration_seconds,
        distance_text=result.distance_text,
        duration_text=result.duration_text,
        distance_meters=round(result.distance_meters, 1),
        cached=result.cached,
    )


def trip_to_model(trip: TripDistance) -> TripModel:
    return TripModel(
        total_distance=trip.total_distance_text,
        total_duration=trip.total_duration_text,
        total_distance_miles=trip.total_distance_miles,
        total_distance_meters=round(trip.total_distance_meters, 1),
        total_duration_seconds=trip.total_duration_seconds,
        includes_estimates=trip.includes_estimates,
        legs=[
            TripLegModel(
                name=leg.name,
                origin=leg.origin,
                destination=leg.destination,
                distance=distance_to_model(leg.distance),
            )
            for leg in trip.legs
        ],
    )
