"""Rank a doctor's free slots for a day by a simple desirability heuristic."""

from dataclasses import dataclass
from typing import Iterable

from app.features import parse_slot_date, parse_slot_hour

# half-hour slots, no bookings between 12:30 PM and 02:00 PM
SLOT_CATALOGUE = [
    "09:00 AM", "09:30 AM", "10:00 AM", "10:30 AM", "11:00 AM", "11:30 AM",
    "12:00 PM", "12:30 PM", "02:00 PM", "02:30 PM", "03:00 PM", "03:30 PM",
    "04:00 PM", "04:30 PM", "05:00 PM", "05:30 PM", "06:00 PM", "06:30 PM",
]
POST_LUNCH_SLOTS = ("02:00 PM", "02:30 PM")

BASE_SCORE = 50


@dataclass(frozen=True)
class TimeSlot:
    time: str
    score: int
    label: str


def slot_label(slot: str) -> str:
    hour = parse_slot_hour(slot)
    if 9 <= hour < 12:
        return "Morning"
    if 12 <= hour < 14:
        return "Lunch"
    if 14 <= hour < 17:
        return "Afternoon"
    return "Evening"


def slot_score(slot: str, date: str, booked: set[str]) -> int:
    score = BASE_SCORE
    hour = parse_slot_hour(slot)

    if 10 <= hour <= 11:
        score += 20
    elif 14 <= hour <= 16:
        score += 15
    elif hour == 9 or hour >= 18:
        score -= 10

    day = parse_slot_date(date)
    if day is not None and day.weekday() < 5:
        score += 10

    # both neighbours taken
    if slot in SLOT_CATALOGUE:
        i = SLOT_CATALOGUE.index(slot)
        if 0 < i < len(SLOT_CATALOGUE) - 1:
            if SLOT_CATALOGUE[i - 1] in booked and SLOT_CATALOGUE[i + 1] in booked:
                score -= 5

    if slot in POST_LUNCH_SLOTS:
        score += 5

    return max(0, min(100, score))


def score_available_slots(booked_slots: Iterable[str], date: str) -> list[TimeSlot]:
    """Unbooked catalogue slots for `date`, best first. Ties keep catalogue order."""
    booked = set(booked_slots)
    slots = [
        TimeSlot(time=slot, score=slot_score(slot, date, booked), label=slot_label(slot))
        for slot in SLOT_CATALOGUE
        if slot not in booked
    ]
    return sorted(slots, key=lambda s: s.score, reverse=True)
