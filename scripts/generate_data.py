"""
Generate synthetic doctors and appointment history and seed the database.

Creates one doctor per speciality and ~6k appointments over a year so the
retrain endpoint and scripts/train_model.py have something real-shaped
to learn from (~20% of appointments end up cancelled or missed).
"""

import random
from datetime import date, timedelta

import numpy as np
from faker import Faker
from sqlalchemy import func

from app.database import Base, SessionLocal, engine
from app.features import parse_slot_hour
from app.models import Appointment, Doctor
from app.slots import SLOT_CATALOGUE
from app.symptoms import SPECIALITY_KEYWORDS

fake = Faker("en_IN")
Faker.seed(42)
np.random.seed(42)
random.seed(42)

# -- tunables --
NUM_PATIENTS = 600
NUM_APPOINTMENTS = 6000
DATE_START = date(2024, 1, 1)
DATE_END = date(2024, 12, 31)


def generate_doctors(session):
    doctors = []
    for speciality, keywords in SPECIALITY_KEYWORDS.items():
        years = random.randint(3, 25)
        d = Doctor(
            id=fake.uuid4(),
            name=f"Dr. {fake.name()}",
            email=fake.unique.email(),
            speciality=speciality,
            degree=random.choice(["MBBS", "MBBS, MD", "MBBS, MS", "BDS, MDS"]),
            experience=f"{years} years",
            about=f"{speciality} with {years} years of practice. {fake.sentence(nb_words=10)}",
            rating=round(random.uniform(3.0, 5.0), 1),
            fees=random.choice([400, 500, 700, 900, 1200, 1500]),
            available=random.random() > 0.1,
            keywords=random.sample(keywords, k=min(4, len(keywords))),
        )
        doctors.append(d)
    session.add_all(doctors)
    session.flush()
    return doctors


def _patient_reliability(n: int) -> dict[str, float]:
    """Per-patient baseline miss rate; most patients are reliable, a few aren't."""
    return {fake.uuid4(): float(np.clip(np.random.beta(2, 9), 0.01, 0.8)) for _ in range(n)}


def _miss_probability(base: float, slot_time: str, day: date, paid: bool, first_visit: bool) -> float:
    p = base
    hour = parse_slot_hour(slot_time)
    if hour >= 17:
        p += 0.05
    if day.weekday() >= 5:
        p += 0.08
    if paid:
        p -= 0.10
    if first_visit:
        p += 0.07
    return float(np.clip(p + np.random.normal(0, 0.01), 0.01, 0.9))


def generate_appointments(session, doctors):
    patients = _patient_reliability(NUM_PATIENTS)
    patient_ids = list(patients)
    seen_pairs = set()
    span = (DATE_END - DATE_START).days

    appointments = []
    for _ in range(NUM_APPOINTMENTS):
        patient_id = random.choice(patient_ids)
        doctor = random.choice(doctors)
        day = DATE_START + timedelta(days=random.randint(0, span))
        slot_time = random.choice(SLOT_CATALOGUE)
        paid = random.random() < 0.45

        first_visit = (patient_id, doctor.id) not in seen_pairs
        seen_pairs.add((patient_id, doctor.id))

        p = _miss_probability(patients[patient_id], slot_time, day, paid, first_visit)
        roll = random.random()
        cancelled = roll < p * 0.4
        completed = not cancelled and roll >= p

        appointments.append(Appointment(
            id=fake.uuid4(),
            patient_id=patient_id,
            doctor_id=doctor.id,
            slot_date=day.isoformat(),
            slot_time=slot_time,
            amount=float(doctor.fees),
            cancelled=cancelled,
            payment=paid,
            is_completed=completed,
        ))

    session.add_all(appointments)
    session.flush()
    return appointments


def main():
    print("Creating tables...")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    session = SessionLocal()
    try:
        print(f"Generating {len(SPECIALITY_KEYWORDS)} doctors...")
        doctors = generate_doctors(session)

        print(f"Generating {NUM_APPOINTMENTS} appointments for {NUM_PATIENTS} patients...")
        generate_appointments(session, doctors)

        session.commit()

        total = session.query(func.count(Appointment.id)).scalar()
        missed = (
            session.query(func.count(Appointment.id))
            .filter((Appointment.cancelled.is_(True)) | (Appointment.is_completed.is_(False)))
            .scalar()
        )
        rate = missed / total * 100
        print(f"\nDone. {total} appointments, {missed} cancelled or missed ({rate:.1f}%)")
    finally:
        session.close()


if __name__ == "__main__":
    main()
