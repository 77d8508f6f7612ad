"""Acceptance scoring domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, List, Mapping, Optional

from ...config import Settings, settings
from ...models.domain import RideCandidate


@dataclass(frozen=True, slots=True)
class AcceptanceWeights:
    distance: float = 1.0
    time: float = 0.3
    urgency: float = 0.2
    time_of_day: float = 0.25
    day_of_week: float = 0.15

    @property
    def total(self) -> float:
        return self.distance + self.time + self.urgency + self.time_of_day + self.day_of_week


# Flat option keys accepted from configuration records and request payloads.
_OPTION_KEYS = {
    "maxDistance": "max_distance",
    "normalizeWeights": "normalize_weights",
    "batchSize": "batch_size",
}
_WEIGHT_KEYS = {
    "distanceWeight": "distance",
    "timeWeight": "time",
    "urgencyWeight": "urgency",
    "timeOfDayWeight": "time_of_day",
    "dayOfWeekWeight": "day_of_week",
}


@dataclass(frozen=True, slots=True)
class AcceptanceOptions:
    max_distance: float = 50.0
    weights: AcceptanceWeights = field(default_factory=AcceptanceWeights)
    normalize_weights: bool = False
    batch_size: int = 5

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> AcceptanceOptions:
        config = config or settings
        return cls(
            max_distance=config.max_driver_distance,
            weights=AcceptanceWeights(
                distance=config.distance_weight,
                time=config.time_weight,
                urgency=config.urgency_weight,
                time_of_day=config.time_of_day_weight,
                day_of_week=config.day_of_week_weight,
            ),
            normalize_weights=config.normalize_weights,
            batch_size=config.processing_batch_size,
        )

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> AcceptanceOptions:
        """Apply a flat camelCase record; keys that are missing or None keep their current value."""
        if not overrides:
            return self
        option_changes = {
            attribute: overrides[key] for key, attribute in _OPTION_KEYS.items() if overrides.get(key) is not None
        }
        weight_changes = {
            attribute: float(overrides[key]) for key, attribute in _WEIGHT_KEYS.items() if overrides.get(key) is not None
        }
        if "max_distance" in option_changes:
            option_changes["max_distance"] = float(option_changes["max_distance"])
            if option_changes["max_distance"] <= 0:
                raise ValueError("maxDistance must be greater than 0")
        if "batch_size" in option_changes:
            option_changes["batch_size"] = int(option_changes["batch_size"])
        if any(value < 0 for value in weight_changes.values()):
            raise ValueError("Weights must be >= 0")
        return replace(self, weights=replace(self.weights, **weight_changes), **option_changes)

    def as_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {key: getattr(self, attribute) for key, attribute in _OPTION_KEYS.items()}
        record.update({key: getattr(self.weights, attribute) for key, attribute in _WEIGHT_KEYS.items()})
        return record


@dataclass(slots=True)
class DistanceFactor:
    score: float
    reason: str
    distance: Optional[float] = None
    duration: Optional[str] = None
    total_distance: Optional[float] = None
    total_time: Optional[int] = None
    is_round_trip: bool = False
    distance_kind: Optional[str] = None


@dataclass(slots=True)
class TimeFactor:
    score: float
    reason: str
    hours_until_appointment: Optional[float] = None
    day_of_week: Optional[str] = None
    is_weekend: Optional[bool] = None


@dataclass(slots=True)
class UrgencyFactor:
    score: float
    reason: str
    is_urgent: bool = False


@dataclass(slots=True)
class TimeOfDayFactor:
    score: float
    reason: str
    hour: Optional[int] = None
    slot: Optional[str] = None
    base_score: Optional[float] = None
    adjustment: float = 0.0


@dataclass(slots=True)
class DayOfWeekFactor:
    score: float
    reason: str
    day_of_week: Optional[str] = None
    base_score: Optional[float] = None
    adjustment: float = 0.0
    advance_notice_bonus: float = 0.0


@dataclass(slots=True)
class AcceptanceFactors:
    distance: DistanceFactor
    time: TimeFactor
    urgency: UrgencyFactor
    time_of_day: TimeOfDayFactor
    day_of_week: DayOfWeekFactor

    def score_sum(self) -> float:
        return sum(getattr(self, item.name).score for item in fields(self))


@dataclass(slots=True)
class AcceptanceScore:
    score: float
    eligible: bool
    reason: str
    factors: Optional[AcceptanceFactors] = None
    rank: int = 0
    error: Optional[str] = None


@dataclass(slots=True)
class ScoredRide:
    ride: RideCandidate
    acceptance: AcceptanceScore


@dataclass(slots=True)
class BatchSummary:
    total_count: int
    eligible_count: int
    ineligible_count: int
    average_score: float
    top_score: float


@dataclass(slots=True)
class BatchResult:
    rides: List[ScoredRide]
    summary: BatchSummary
