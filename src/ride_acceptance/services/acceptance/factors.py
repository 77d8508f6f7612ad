"""Factor scorers for ride acceptance.

Every scorer maps a ride (and, where relevant, the driver) to a sub-score in
[0, 1] plus a short rationale. Scorers never raise: missing or unparseable
input yields the neutral score 0.5 with a reason saying why.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from ...models.domain import DriverProfile, RideCandidate
from ..distance.models import DistanceResult
from .models import DayOfWeekFactor, DistanceFactor, TimeFactor, TimeOfDayFactor, UrgencyFactor

NEUTRAL_SCORE = 0.5
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

# Trip estimate constants
DEFAULT_PICKUP_TO_PROVIDER_MILES = 5.0
AVERAGE_SPEED_MPH = 25.0
ONE_WAY_APPOINTMENT_MINUTES = 30
ROUND_TRIP_APPOINTMENT_MINUTES = 60

URGENT_KEYWORDS = ("urgent", "emergency", "asap", "critical", "immediate")
URGENT_APPOINTMENT_TYPES = ("emergency", "urgent care", "dialysis", "chemotherapy", "surgery")

# (start hour inclusive, end hour exclusive, slot, base preference); hours outside fall into "night".
TIME_SLOTS = (
    (6, 9, "early_morning", 0.7),
    (9, 12, "morning", 0.9),
    (12, 15, "afternoon", 0.8),
    (15, 18, "late_afternoon", 0.7),
    (18, 21, "evening", 0.6),
)
NIGHT_SLOT = ("night", 0.3)
DEFAULT_SLOT_ACCEPTANCE_RATE = 0.5

# Indexed 0=Sunday..6=Saturday
DAY_BASE_SCORES = (0.4, 0.8, 0.9, 0.9, 0.9, 0.8, 0.6)
MAX_PREFERENCE_ADJUSTMENT = 0.5
WEEKEND_NOTICE_THRESHOLD_HOURS = 48.0
WEEKEND_NOTICE_HORIZON_HOURS = 168.0
MAX_WEEKEND_NOTICE_BONUS = 0.2

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp]\.?[Mm]\.?)?\s*$")
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d")


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def parse_time(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse "HH:MM", "HH:MM:SS" or "H:MM AM/PM" into (hour, minute)."""
    if not value:
        return None
    match = _TIME_PATTERN.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    meridiem = match.group(3)
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        is_pm = meridiem[0].lower() == "p"
        hour = hour % 12 + (12 if is_pm else 0)
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    text = value.strip()
    # Spreadsheet exports sometimes carry a full ISO timestamp.
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def appointment_datetime(ride: RideCandidate, *, require_time: bool = True) -> Optional[datetime]:
    day = parse_date(ride.appointment_date)
    if day is None:
        return None
    parsed_time = parse_time(ride.appointment_time)
    if parsed_time is None:
        if require_time:
            return None
        parsed_time = (0, 0)
    return datetime(day.year, day.month, day.day, parsed_time[0], parsed_time[1])


def weekday_index(day: date) -> int:
    """0=Sunday..6=Saturday."""
    return (day.weekday() + 1) % 7


def is_weekend(day_index: int) -> bool:
    return day_index in (0, 6)


def _hours_until(when: datetime, now: datetime) -> float:
    return (when - now).total_seconds() / 3600


def distance_factor(
    ride: RideCandidate,
    driver: DriverProfile,
    distance: Optional[DistanceResult],
    max_distance: float,
) -> DistanceFactor:
    """Closer pickups score higher: 1.0 at the driver's door, 0.1 at ``max_distance``, 0 beyond."""
    if not driver.has_address or not ride.pickup_location:
        return DistanceFactor(score=0.1, reason="Missing location data")
    if distance is None:
        return DistanceFactor(score=0.1, reason="Distance calculation failed")

    miles = distance.distance_miles
    if miles > max_distance:
        return DistanceFactor(
            score=0.0,
            distance=miles,
            duration=distance.duration_text,
            distance_kind=distance.kind,
            reason=f"Distance ({miles} mi) exceeds maximum ({max_distance:g} mi)",
        )

    score = max(0.1, 1.0 - miles / max_distance)

    pickup_to_provider = ride.distance_to_provider or DEFAULT_PICKUP_TO_PROVIDER_MILES
    total_distance = miles + pickup_to_provider + (pickup_to_provider if ride.round_trip else 0.0)
    driving_minutes = total_distance / AVERAGE_SPEED_MPH * 60
    appointment_minutes = ROUND_TRIP_APPOINTMENT_MINUTES if ride.round_trip else ONE_WAY_APPOINTMENT_MINUTES
    total_distance = round(total_distance, 1)

    reason = f"{miles} miles from driver"
    if ride.round_trip:
        reason += f" ({total_distance} mi total)"
    if distance.is_estimated:
        reason += " (estimated)"

    return DistanceFactor(
        score=score,
        distance=miles,
        duration=distance.duration_text,
        total_distance=total_distance,
        total_time=round(driving_minutes + appointment_minutes),
        is_round_trip=ride.round_trip,
        distance_kind=distance.kind,
        reason=reason,
    )


def time_factor(ride: RideCandidate, now: Optional[datetime] = None) -> TimeFactor:
    """Advance-notice score: rides bookable in the next 1-3 days are easiest to plan around."""
    if not ride.appointment_date or not ride.appointment_time:
        return TimeFactor(score=NEUTRAL_SCORE, reason="No appointment time data")
    when = appointment_datetime(ride)
    if when is None:
        return TimeFactor(score=NEUTRAL_SCORE, reason="Unrecognized appointment date or time")

    hours = _hours_until(when, now or datetime.now())
    if hours < 2:
        score = 0.3
    elif hours < 24:
        score = 0.8
    elif hours < 72:
        score = 1.0
    else:
        score = 0.7

    day_index = weekday_index(when.date())
    weekend = is_weekend(day_index)
    if not weekend:
        score += 0.1

    return TimeFactor(
        score=min(score, 1.0),
        hours_until_appointment=round(hours, 1),
        day_of_week=DAY_NAMES[day_index],
        is_weekend=weekend,
        reason=f"{round(hours)}h advance notice, {'weekend' if weekend else 'weekday'}",
    )


def urgency_factor(ride: RideCandidate) -> UrgencyFactor:
    score = NEUTRAL_SCORE

    notes = ride.notes.lower()
    if any(keyword in notes for keyword in URGENT_KEYWORDS):
        score += 0.3

    appointment_type = (ride.appointment_type or "").lower()
    if any(kind in appointment_type for kind in URGENT_APPOINTMENT_TYPES):
        score += 0.2

    # Patient also needs the ride home
    if ride.round_trip:
        score += 0.1

    score = min(score, 1.0)
    is_urgent = score > 0.7
    return UrgencyFactor(
        score=score,
        is_urgent=is_urgent,
        reason="High priority ride" if is_urgent else "Standard priority",
    )


def time_slot(hour: int) -> tuple[str, float]:
    """Slot name and base preference for an hour of the day."""
    for start, end, slot, base in TIME_SLOTS:
        if start <= hour < end:
            return slot, base
    return NIGHT_SLOT


def _time_of_day_adjustment(slot: str, driver: DriverProfile) -> float:
    rate = driver.slot_acceptance_rates.get(slot, DEFAULT_SLOT_ACCEPTANCE_RATE)
    adjustment = rate - DEFAULT_SLOT_ACCEPTANCE_RATE
    if driver.preferred_shift == "night" and slot in ("evening", "night"):
        adjustment += 0.3
    if driver.availability == "part-time" and slot in ("afternoon", "late_afternoon"):
        adjustment += 0.2
    return _clamp(adjustment, -MAX_PREFERENCE_ADJUSTMENT, MAX_PREFERENCE_ADJUSTMENT)


def time_of_day_factor(ride: RideCandidate, driver: DriverProfile) -> TimeOfDayFactor:
    parsed = parse_time(ride.appointment_time)
    if parsed is None:
        return TimeOfDayFactor(score=NEUTRAL_SCORE, reason="No appointment time data")

    hour, minute = parsed
    slot, base = time_slot(hour)
    adjustment = _time_of_day_adjustment(slot, driver)
    return TimeOfDayFactor(
        score=_clamp(base + adjustment, 0.0, 1.0),
        hour=hour,
        slot=slot,
        base_score=base,
        adjustment=adjustment,
        reason=f"{hour:02d}:{minute:02d} {slot.replace('_', ' ')} slot",
    )


def _is_senior(driver: DriverProfile) -> bool:
    return driver.age_group in ("senior", "65+") or driver.employment == "retired"


def _is_student(driver: DriverProfile) -> bool:
    return driver.employment == "student" or driver.age_group == "student"


def _day_of_week_adjustment(weekend: bool, driver: DriverProfile) -> float:
    adjustment = 0.0
    if driver.availability == "weekends-only":
        adjustment += 0.4 if weekend else -0.6
    elif driver.availability == "weekdays-only":
        adjustment += -0.4 if weekend else 0.2
    if _is_senior(driver) and not weekend:
        adjustment += 0.15
    if _is_student(driver) and weekend:
        adjustment += 0.25
    return _clamp(adjustment, -MAX_PREFERENCE_ADJUSTMENT, MAX_PREFERENCE_ADJUSTMENT)


def weekend_notice_bonus(hours_until: float) -> float:
    """Extra credit for weekend rides booked well ahead, growing up to a one-week horizon."""
    if hours_until <= WEEKEND_NOTICE_THRESHOLD_HOURS:
        return 0.0
    span = WEEKEND_NOTICE_HORIZON_HOURS - WEEKEND_NOTICE_THRESHOLD_HOURS
    progress = min(1.0, (hours_until - WEEKEND_NOTICE_THRESHOLD_HOURS) / span)
    return MAX_WEEKEND_NOTICE_BONUS * progress


def day_of_week_factor(
    ride: RideCandidate,
    driver: DriverProfile,
    now: Optional[datetime] = None,
) -> DayOfWeekFactor:
    when = appointment_datetime(ride, require_time=False)
    if when is None:
        return DayOfWeekFactor(score=NEUTRAL_SCORE, reason="No appointment date data")

    day_index = weekday_index(when.date())
    weekend = is_weekend(day_index)
    base = DAY_BASE_SCORES[day_index]
    adjustment = _day_of_week_adjustment(weekend, driver)
    score = _clamp(base + adjustment, 0.0, 1.0)

    bonus = 0.0
    if weekend:
        bonus = weekend_notice_bonus(_hours_until(when, now or datetime.now()))
        score = min(1.0, score + bonus)

    reason = DAY_NAMES[day_index]
    if bonus > 0:
        reason += " with advance notice"
    return DayOfWeekFactor(
        score=score,
        day_of_week=DAY_NAMES[day_index],
        base_score=base,
        adjustment=adjustment,
        advance_notice_bonus=round(bonus, 3),
        reason=reason,
    )
