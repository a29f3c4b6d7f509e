"""
Turn a patient's appointment history plus a candidate booking into the
fixed-length feature vector the no-show model is trained on.

Every field is normalised into [0, 1] (or is a 0/1 flag). The order of
FEATURE_NAMES is the order of the vector and must never change for a
trained model.
"""

import logging
import re
from datetime import date, datetime
from typing import Iterable, NamedTuple, Optional

import numpy as np

from app.exceptions import InvalidInputError
from app.schemas import AppointmentRecord

logger = logging.getLogger(__name__)

FEATURE_NAMES = [
    "cancellationRate",
    "completionRate",
    "totalAppointmentsNorm",
    "recentCancellationsNorm",
    "daysSinceLastAppointmentNorm",
    "isFirstVisitToDoctor",
    "averageLeadTimeNorm",
    "paymentRate",
    "morningSlot",
    "afternoonSlot",
    "eveningSlot",
    "isWeekend",
]
FEATURE_COUNT = len(FEATURE_NAMES)

# normalisation caps
TOTAL_APPOINTMENTS_CAP = 20
RECENT_WINDOW = 3
DAYS_SINCE_CAP = 90
DEFAULT_DAYS_SINCE = 30
LEAD_TIME_CAP = 14
# lead time isn't recorded anywhere upstream, so every booking gets the same value
DEFAULT_LEAD_TIME_DAYS = 7

DEFAULT_HOUR = 12

_DATE_FORMATS = ("%Y-%m-%d", "%d_%m_%Y", "%d/%m/%Y")
_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([AaPp][Mm])?\s*$")


class FeatureVector(NamedTuple):
    cancellation_rate: float
    completion_rate: float
    total_appointments_norm: float
    recent_cancellations_norm: float
    days_since_last_appointment_norm: float
    is_first_visit_to_doctor: int
    average_lead_time_norm: float
    payment_rate: float
    morning_slot: int
    afternoon_slot: int
    evening_slot: int
    is_weekend: int

    def to_array(self) -> np.ndarray:
        return np.asarray(self, dtype=float)


def parse_slot_date(value: str) -> Optional[date]:
    """Parse '2025-01-15', '15_01_2025' or '15/01/2025'. Returns None if none match."""
    if not value:
        return None
    value = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_slot_hour(slot_time: str) -> int:
    """
    24-hour hour for a slot label like '02:30 PM'.

    '12:xx PM' is noon and '12:xx AM' is midnight; minutes are optional
    ('10 AM'). A bare '14:30' is read as 24-hour time. Anything
    unparseable falls back to noon.
    """
    match = _TIME_RE.match(slot_time or "")
    if not match:
        logger.debug("Unparseable slot time %r, defaulting to %d:00", slot_time, DEFAULT_HOUR)
        return DEFAULT_HOUR

    hour = int(match.group(1))
    period = (match.group(3) or "").upper()
    if period:
        if not 1 <= hour <= 12:
            return DEFAULT_HOUR
        if period == "PM" and hour != 12:
            hour += 12
        elif period == "AM" and hour == 12:
            hour = 0
    elif hour > 23:
        return DEFAULT_HOUR
    return hour


def time_of_day_flags(hour: int) -> tuple[int, int, int]:
    """(morning, afternoon, evening). Hours before 9 set none of them."""
    morning = int(9 <= hour < 12)
    afternoon = int(12 <= hour < 17)
    evening = int(hour >= 17)
    return morning, afternoon, evening


def _prior_history(
    history: Iterable[AppointmentRecord], target: date
) -> list[tuple[date, AppointmentRecord]]:
    prior = []
    for record in history:
        record_date = parse_slot_date(record.slot_date)
        if record_date is None:
            logger.debug("Skipping appointment %s with unparseable date %r", record.id, record.slot_date)
            continue
        if record_date < target:
            prior.append((record_date, record))
    # stable: same-day records keep their input order
    prior.sort(key=lambda item: item[0])
    return prior


def extract_features(
    history: Iterable[AppointmentRecord],
    doctor_id: str,
    slot_date: str,
    slot_time: str,
) -> FeatureVector:
    target = parse_slot_date(slot_date)
    if target is None:
        raise InvalidInputError(f"Unrecognised slot date: {slot_date!r}")

    prior = _prior_history(history, target)
    records = [r for _, r in prior]
    total = len(records)

    cancelled = sum(1 for r in records if r.cancelled)
    cancellation_rate = cancelled / total if total else 0.0

    not_cancelled = [r for r in records if not r.cancelled]
    completed = sum(1 for r in not_cancelled if r.is_completed)
    completion_rate = completed / len(not_cancelled) if not_cancelled else 0.5

    recent = records[-RECENT_WINDOW:]
    recent_cancellations = sum(1 for r in recent if r.cancelled)

    if prior:
        days_since = (target - prior[-1][0]).days
    else:
        days_since = DEFAULT_DAYS_SINCE

    is_first_visit = int(not any(r.doctor_id == doctor_id for r in records))

    paid = sum(1 for r in records if r.payment)
    payment_rate = paid / total if total else 0.5

    morning, afternoon, evening = time_of_day_flags(parse_slot_hour(slot_time))

    return FeatureVector(
        cancellation_rate=cancellation_rate,
        completion_rate=completion_rate,
        total_appointments_norm=min(total / TOTAL_APPOINTMENTS_CAP, 1.0),
        recent_cancellations_norm=recent_cancellations / RECENT_WINDOW,
        days_since_last_appointment_norm=min(max(days_since / DAYS_SINCE_CAP, 0.0), 1.0),
        is_first_visit_to_doctor=is_first_visit,
        average_lead_time_norm=min(DEFAULT_LEAD_TIME_DAYS / LEAD_TIME_CAP, 1.0),
        payment_rate=payment_rate,
        morning_slot=morning,
        afternoon_slot=afternoon,
        evening_slot=evening,
        is_weekend=int(target.weekday() >= 5),
    )
