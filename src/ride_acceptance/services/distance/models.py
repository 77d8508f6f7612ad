"""Distance domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal

METERS_PER_MILE = 1609.34
MILES_PER_METER = 0.000621371

DistanceKind = Literal["measured", "estimated"]


@dataclass(frozen=True, slots=True)
class CachedDistance:
    distance_text: str
    duration_text: str
    distance_meters: float
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class DistanceRequest:
    origin: str
    destination: str


@dataclass(frozen=True, slots=True)
class DistanceResult:
    """A driving distance, tagged with whether it was measured or estimated."""

    kind: DistanceKind
    distance_miles: float
    duration_seconds: float
    distance_text: str
    duration_text: str
    distance_meters: float
    cached: bool = False

    @property
    def is_estimated(self) -> bool:
        return self.kind == "estimated"

    @classmethod
    def measured(cls, value: CachedDistance, *, cached: bool = False) -> DistanceResult:
        return cls(
            kind="measured",
            distance_miles=round(value.distance_meters * MILES_PER_METER, 1),
            duration_seconds=value.duration_seconds,
            distance_text=value.distance_text,
            duration_text=value.duration_text,
            distance_meters=value.distance_meters,
            cached=cached,
        )


@dataclass(slots=True)
class TripLeg:
    name: str
    origin: str
    destination: str
    distance: DistanceResult


@dataclass(slots=True)
class TripDistance:
    total_distance_text: str
    total_duration_text: str
    total_distance_meters: float
    total_duration_seconds: float
    legs: List[TripLeg]

    @property
    def total_distance_miles(self) -> float:
        return round(self.total_distance_meters * MILES_PER_METER, 1)

    @property
    def includes_estimates(self) -> bool:
        return any(leg.distance.is_estimated for leg in self.legs)
