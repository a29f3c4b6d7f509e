"""Tests for feature extraction."""

from datetime import date

import pytest

from app.exceptions import InvalidInputError
from app.features import (
    FEATURE_COUNT,
    FEATURE_NAMES,
    extract_features,
    parse_slot_date,
    parse_slot_hour,
    time_of_day_flags,
)
from conftest import CARDIO_ID, GP_ID, make_record


def _history_ten_visits():
    # 3 early cancellations, then 7 completed visits, last one on 2025-06-04
    days = ["2025-03-01", "2025-03-10", "2025-03-20", "2025-04-01", "2025-04-15",
            "2025-04-29", "2025-05-10", "2025-05-20", "2025-05-28", "2025-06-04"]
    return [
        make_record(f"r{i}", d, doctor_id=GP_ID, cancelled=i < 3, completed=i >= 3)
        for i, d in enumerate(days)
    ]


def test_parse_slot_hour_12_hour_clock():
    assert parse_slot_hour("09:00 AM") == 9
    assert parse_slot_hour("12:00 PM") == 12
    assert parse_slot_hour("12:30 AM") == 0
    assert parse_slot_hour("06:30 PM") == 18
    assert parse_slot_hour("14:30") == 14
    assert parse_slot_hour("10 AM") == 10
    assert parse_slot_hour("3 pm") == 15


@pytest.mark.parametrize("bad", ["", "noon", "25:00", "13:00 PM", "10:7 AM"])
def test_parse_slot_hour_unparseable_defaults_to_noon(bad):
    assert parse_slot_hour(bad) == 12


def test_parse_slot_date_formats():
    assert parse_slot_date("2025-01-15") == date(2025, 1, 15)
    assert parse_slot_date("15_01_2025") == date(2025, 1, 15)
    assert parse_slot_date("15/01/2025") == date(2025, 1, 15)
    assert parse_slot_date("next tuesday") is None


def test_time_of_day_buckets():
    assert time_of_day_flags(9) == (1, 0, 0)
    assert time_of_day_flags(11) == (1, 0, 0)
    assert time_of_day_flags(12) == (0, 1, 0)
    assert time_of_day_flags(16) == (0, 1, 0)
    assert time_of_day_flags(17) == (0, 0, 1)
    assert time_of_day_flags(23) == (0, 0, 1)


def test_hours_before_nine_set_no_time_bucket():
    assert time_of_day_flags(8) == (0, 0, 0)
    assert time_of_day_flags(0) == (0, 0, 0)


def test_empty_history_defaults():
    f = extract_features([], CARDIO_ID, "2025-06-16", "10:00 AM")

    assert len(f) == FEATURE_COUNT == len(FEATURE_NAMES)
    assert f.cancellation_rate == 0
    assert f.completion_rate == 0.5
    assert f.total_appointments_norm == 0
    assert f.recent_cancellations_norm == 0
    assert f.days_since_last_appointment_norm == pytest.approx(30 / 90)
    assert f.is_first_visit_to_doctor == 1
    assert f.average_lead_time_norm == 0.5
    assert f.payment_rate == 0.5
    assert (f.morning_slot, f.afternoon_slot, f.evening_slot) == (1, 0, 0)
    assert f.is_weekend == 0


def test_end_to_end_example_features():
    # 2025-06-14 is a Saturday, 10 days after the last visit
    f = extract_features(_history_ten_visits(), CARDIO_ID, "2025-06-14", "06:00 PM")

    assert f.cancellation_rate == pytest.approx(0.3)
    assert f.completion_rate == 1.0
    assert f.total_appointments_norm == 0.5
    assert f.recent_cancellations_norm == 0
    assert f.days_since_last_appointment_norm == pytest.approx(10 / 90)
    assert f.is_first_visit_to_doctor == 1
    assert f.evening_slot == 1
    assert f.morning_slot == 0 and f.afternoon_slot == 0
    assert f.is_weekend == 1


def test_only_history_before_target_date_counts():
    history = [
        make_record("past", "2025-06-01", doctor_id=CARDIO_ID),
        make_record("same-day", "2025-06-10", cancelled=True, completed=False),
        make_record("future", "2025-07-01", cancelled=True, completed=False),
    ]
    f = extract_features(history, CARDIO_ID, "2025-06-10", "10:00 AM")

    assert f.total_appointments_norm == pytest.approx(1 / 20)
    assert f.cancellation_rate == 0
    assert f.is_first_visit_to_doctor == 0


def test_recent_cancellations_use_chronological_order():
    # given out of order; the three latest are all cancelled
    history = [
        make_record("c3", "2025-05-30", cancelled=True, completed=False),
        make_record("ok1", "2025-01-10"),
        make_record("c1", "2025-05-01", cancelled=True, completed=False),
        make_record("ok2", "2025-02-10"),
        make_record("c2", "2025-05-15", cancelled=True, completed=False),
    ]
    f = extract_features(history, GP_ID, "2025-06-10", "10:00 AM")

    assert f.recent_cancellations_norm == 1.0
    assert f.days_since_last_appointment_norm == pytest.approx(11 / 90)


def test_completion_rate_ignores_cancelled_visits():
    history = [
        make_record("a", "2025-01-01", completed=True),
        make_record("b", "2025-01-02", completed=False),
        # cancelled but flagged completed upstream: must not count either way
        make_record("c", "2025-01-03", cancelled=True, completed=True),
    ]
    f = extract_features(history, GP_ID, "2025-02-01", "10:00 AM")
    assert f.completion_rate == 0.5


def test_long_gap_is_capped():
    history = [make_record("old", "2023-01-01", payment=True)]
    f = extract_features(history, GP_ID, "2025-06-10", "10:00 AM")
    assert f.days_since_last_appointment_norm == 1.0
    assert f.payment_rate == 1.0


def test_unparseable_time_lands_in_afternoon():
    f = extract_features([], GP_ID, "2025-06-16", "whenever")
    assert (f.morning_slot, f.afternoon_slot, f.evening_slot) == (0, 1, 0)


def test_unparseable_target_date_raises():
    with pytest.raises(InvalidInputError):
        extract_features([], GP_ID, "someday", "10:00 AM")


def test_history_rows_with_bad_dates_are_skipped():
    history = [
        make_record("bad", "not-a-date", cancelled=True, completed=False),
        make_record("good", "2025-06-01"),
    ]
    f = extract_features(history, GP_ID, "2025-06-10", "10:00 AM")
    assert f.total_appointments_norm == pytest.approx(1 / 20)
    assert f.cancellation_rate == 0


def test_all_fields_in_unit_interval():
    f = extract_features(_history_ten_visits(), GP_ID, "2025-06-16", "02:30 PM")
    assert all(0.0 <= v <= 1.0 for v in f)
    assert f.morning_slot + f.afternoon_slot + f.evening_slot == 1
