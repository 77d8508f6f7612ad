"""Acceptance request/response schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.domain import DriverProfile, RideCandidate


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DriverIn(CamelModel):
    address: Optional[str] = None
    preferred_shift: Optional[str] = None
    availability: Optional[str] = None
    age_group: Optional[str] = None
    employment: Optional[str] = None
    slot_acceptance_rates: Dict[str, float] = Field(
        default_factory=dict,
        description="Historical acceptance rate per time slot (early_morning, morning, afternoon, ...).",
    )

    def to_domain(self) -> DriverProfile:
        return DriverProfile.from_record(self.model_dump(by_alias=True))


class RideIn(CamelModel):
    """A ride record from the scheduling workflow. Unknown fields are passed through."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Union[str, int]
    pickup_location: Optional[str] = None
    provider_location: Optional[str] = None
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None
    round_trip: Union[bool, str, None] = False
    notes: Optional[str] = None
    appointment_type: Optional[str] = None
    distance_to_provider: Union[float, str, None] = None

    def to_domain(self) -> RideCandidate:
        return RideCandidate.from_record(self.model_dump(by_alias=True))


class AcceptanceOptionsIn(CamelModel):
    max_distance: Optional[float] = Field(default=None, gt=0)
    distance_weight: Optional[float] = Field(default=None, ge=0)
    time_weight: Optional[float] = Field(default=None, ge=0)
    urgency_weight: Optional[float] = Field(default=None, ge=0)
    time_of_day_weight: Optional[float] = Field(default=None, ge=0)
    day_of_week_weight: Optional[float] = Field(default=None, ge=0)
    normalize_weights: Optional[bool] = None
    batch_size: Optional[int] = Field(default=None, ge=1)

    def to_overrides(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RankRequest(CamelModel):
    driver: DriverIn
    rides: List[RideIn]
    options: Optional[AcceptanceOptionsIn] = None


class ScoreRequest(CamelModel):
    driver: DriverIn
    ride: RideIn
    options: Optional[AcceptanceOptionsIn] = None


class AcceptanceModel(CamelModel):
    score: float
    rank: int
    eligible: bool
    reason: str
    factors: Dict[str, Any]
    error: Optional[str] = None


class SummaryModel(CamelModel):
    total_count: int
    eligible_count: int
    ineligible_count: int
    average_score: float
    top_score: float


class RankResponse(CamelModel):
    rides: List[Dict[str, Any]]
    summary: SummaryModel


class AcceptanceConfigModel(CamelModel):
    max_distance: float
    distance_weight: float
    time_weight: float
    urgency_weight: float
    time_of_day_weight: float
    day_of_week_weight: float
    normalize_weights: bool
    batch_size: int
