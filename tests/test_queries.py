"""Tests for the shared database lookups."""

from app.queries import booked_slot_times, patient_history
from conftest import CARDIO_ID, GP_ID


def test_booked_slot_times_ignores_cancelled(db):
    assert booked_slot_times(db, CARDIO_ID, "2025-06-16") == ["10:00 AM"]


def test_booked_slot_times_other_day_or_doctor(db):
    assert booked_slot_times(db, CARDIO_ID, "2025-06-17") == []
    assert booked_slot_times(db, GP_ID, "2025-06-16") == []


def test_patient_history(db):
    history = patient_history(db, "patient-1")
    assert sorted(r.id for r in history) == ["a1", "a2"]
    assert all(r.patient_id == "patient-1" for r in history)
    assert patient_history(db, "nobody") == []
