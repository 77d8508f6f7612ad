from datetime import datetime

import pytest

from conftest import NOW
from ride_acceptance.models.domain import DriverProfile, RideCandidate
from ride_acceptance.services.acceptance import factors
from ride_acceptance.services.distance.models import DistanceResult

DRIVER = DriverProfile(address="10 Driver Way")
SATURDAY_MORNING = datetime(2026, 10, 24, 10, 0)


def _ride(**overrides) -> RideCandidate:
    values = {
        "id": "R1",
        "pickup_location": "1 Patient Rd",
        "provider_location": "Mercy Clinic",
        "appointment_date": "2026-10-21",
        "appointment_time": "10:00",
    }
    values.update(overrides)
    return RideCandidate(**values)


def _measured(miles: float) -> DistanceResult:
    return DistanceResult(
        kind="measured",
        distance_miles=miles,
        duration_seconds=miles * 120,
        distance_text=f"{miles} mi",
        duration_text=f"{round(miles * 2)} mins",
        distance_meters=miles * 1609.34,
    )


@pytest.mark.parametrize(
    "value, expected",
    [
        ("10:00", (10, 0)),
        ("09:30:00", (9, 30)),
        ("2:15 PM", (14, 15)),
        ("12:00 AM", (0, 0)),
        ("12:45 pm", (12, 45)),
        ("7:05am", (7, 5)),
        ("25:00", None),
        ("13:00 PM", None),
        ("noon", None),
        (None, None),
    ],
)
def test_parse_time(value, expected):
    assert factors.parse_time(value) == expected


def test_distance_factor_linear_decay_and_trip_totals():
    ride = _ride(round_trip=True, distance_to_provider=7.5)

    result = factors.distance_factor(ride, DRIVER, _measured(10.0), max_distance=50)

    assert result.score == pytest.approx(0.8)
    assert result.total_distance == 25.0
    assert result.total_time == 120
    assert result.is_round_trip
    assert result.reason == "10.0 miles from driver (25.0 mi total)"


def test_distance_factor_defaults_provider_leg():
    result = factors.distance_factor(_ride(), DRIVER, _measured(5.0), max_distance=50)

    assert result.score == pytest.approx(0.9)
    assert result.total_distance == 10.0
    assert result.total_time == 54


def test_distance_factor_boundary_and_over_limit():
    at_limit = factors.distance_factor(_ride(), DRIVER, _measured(50.0), max_distance=50)
    over = factors.distance_factor(_ride(), DRIVER, _measured(51.0), max_distance=50)

    assert at_limit.score == pytest.approx(0.1)
    assert at_limit.distance == 50.0
    assert over.score == 0.0
    assert "exceeds maximum" in over.reason


def test_distance_factor_missing_locations():
    no_address = factors.distance_factor(_ride(), DriverProfile(), None, max_distance=50)
    no_pickup = factors.distance_factor(_ride(pickup_location=None), DRIVER, None, max_distance=50)

    assert no_address.score == 0.1
    assert no_address.distance is None
    assert no_pickup.reason == "Missing location data"


def test_distance_factor_flags_estimates():
    estimate = DistanceResult(
        kind="estimated",
        distance_miles=8.0,
        duration_seconds=1200,
        distance_text="8.0 mi",
        duration_text="20 min",
        distance_meters=8.0 * 1609.34,
    )

    result = factors.distance_factor(_ride(), DRIVER, estimate, max_distance=50)

    assert result.distance_kind == "estimated"
    assert result.reason.endswith("(estimated)")


@pytest.mark.parametrize(
    "date, time, expected",
    [
        ("2026-10-19", "11:00", 0.4),  # 1h, weekday
        ("2026-10-19", "20:00", 0.9),  # 10h, weekday
        ("2026-10-21", "10:00", 1.0),  # 48h, weekday, capped
        ("2026-10-24", "10:00", 0.7),  # 120h, Saturday
        ("2026-10-22", "09:00", 1.0),  # 71h, weekday
    ],
)
def test_time_factor_bands(date, time, expected):
    result = factors.time_factor(_ride(appointment_date=date, appointment_time=time), NOW)

    assert result.score == pytest.approx(expected)


def test_time_factor_reports_notice_and_day():
    result = factors.time_factor(_ride(), NOW)

    assert result.hours_until_appointment == 48.0
    assert result.day_of_week == "Wednesday"
    assert result.is_weekend is False
    assert result.reason == "48h advance notice, weekday"


def test_time_factor_neutral_without_schedule():
    assert factors.time_factor(_ride(appointment_time=None), NOW).score == 0.5
    assert factors.time_factor(_ride(appointment_date="someday"), NOW).score == 0.5


def test_urgency_factor_keywords_and_types():
    standard = factors.urgency_factor(_ride())
    urgent = factors.urgency_factor(_ride(notes="Patient needs pickup ASAP", appointment_type="Dialysis", round_trip=True))
    notes_only = factors.urgency_factor(_ride(notes="Critical follow-up"))

    assert standard.score == 0.5
    assert not standard.is_urgent
    assert urgent.score == 1.0
    assert urgent.is_urgent
    assert urgent.reason == "High priority ride"
    assert notes_only.score == pytest.approx(0.8)
    assert notes_only.is_urgent


@pytest.mark.parametrize(
    "time, slot, expected",
    [
        ("07:00", "early_morning", 0.7),
        ("10:30 AM", "morning", 0.9),
        ("1:00 PM", "afternoon", 0.8),
        ("16:00", "late_afternoon", 0.7),
        ("19:15", "evening", 0.6),
        ("22:00", "night", 0.3),
        ("5:00 AM", "night", 0.3),
    ],
)
def test_time_of_day_base_bands(time, slot, expected):
    result = factors.time_of_day_factor(_ride(appointment_time=time), DRIVER)

    assert result.slot == slot
    assert result.score == pytest.approx(expected)


def test_time_of_day_driver_preferences():
    night_driver = DriverProfile(address="x", preferred_shift="night")
    part_timer = DriverProfile(address="x", availability="part-time")
    historic = DriverProfile(address="x", slot_acceptance_rates={"morning": 0.2})

    assert factors.time_of_day_factor(_ride(appointment_time="22:00"), night_driver).score == pytest.approx(0.6)
    assert factors.time_of_day_factor(_ride(appointment_time="10:00"), night_driver).score == pytest.approx(0.9)
    assert factors.time_of_day_factor(_ride(appointment_time="13:00"), part_timer).score == pytest.approx(1.0)
    assert factors.time_of_day_factor(_ride(appointment_time="10:00"), historic).score == pytest.approx(0.6)


def test_time_of_day_adjustment_is_clamped():
    driver = DriverProfile(address="x", preferred_shift="night", slot_acceptance_rates={"night": 1.0})

    result = factors.time_of_day_factor(_ride(appointment_time="23:00"), driver)

    assert result.adjustment == pytest.approx(0.5)
    assert result.score == pytest.approx(0.8)


def test_time_of_day_neutral_when_unparseable():
    assert factors.time_of_day_factor(_ride(appointment_time="after lunch"), DRIVER).score == 0.5


@pytest.mark.parametrize(
    "date, day, expected",
    [
        ("2026-10-19", "Monday", 0.8),
        ("2026-10-20", "Tuesday", 0.9),
        ("2026-10-22", "Thursday", 0.9),
        ("2026-10-23", "Friday", 0.8),
    ],
)
def test_day_of_week_base_table(date, day, expected):
    result = factors.day_of_week_factor(_ride(appointment_date=date), DRIVER, NOW)

    assert result.day_of_week == day
    assert result.score == pytest.approx(expected)


def test_day_of_week_driver_adjustments():
    weekends_only = DriverProfile(address="x", availability="weekends-only")
    weekdays_only = DriverProfile(address="x", availability="weekdays-only")
    retiree = DriverProfile(address="x", employment="retired")
    student = DriverProfile(address="x", employment="student")
    wednesday = _ride(appointment_date="2026-10-21")
    saturday = _ride(appointment_date="2026-10-24", appointment_time="10:00")

    assert factors.day_of_week_factor(wednesday, weekends_only, NOW).score == pytest.approx(0.4)
    assert factors.day_of_week_factor(wednesday, weekdays_only, NOW).score == pytest.approx(1.0)
    assert factors.day_of_week_factor(wednesday, retiree, NOW).score == pytest.approx(1.0)
    # Saturday 10:00 is 120h out: bonus 0.2 * (72 / 120) = 0.12
    assert factors.day_of_week_factor(saturday, weekdays_only, NOW).score == pytest.approx(0.32)
    assert factors.day_of_week_factor(saturday, student, NOW).score == pytest.approx(0.97)


def test_weekend_advance_notice_bonus():
    sunday_short_notice = _ride(appointment_date="2026-10-25", appointment_time="10:00")
    short = factors.day_of_week_factor(sunday_short_notice, DRIVER, SATURDAY_MORNING)
    long = factors.day_of_week_factor(sunday_short_notice, DRIVER, NOW)

    assert short.advance_notice_bonus == 0.0
    assert short.score == pytest.approx(0.4)
    # 144h of notice
    assert long.advance_notice_bonus == pytest.approx(0.16)
    assert long.score == pytest.approx(0.56)


def test_weekend_notice_bonus_caps_at_one_week():
    assert factors.weekend_notice_bonus(48) == 0.0
    assert factors.weekend_notice_bonus(108) == pytest.approx(0.1)
    assert factors.weekend_notice_bonus(500) == pytest.approx(0.2)


def test_day_of_week_neutral_without_date():
    assert factors.day_of_week_factor(_ride(appointment_date=None), DRIVER, NOW).score == 0.5
