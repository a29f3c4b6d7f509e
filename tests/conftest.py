"""
Test fixtures. Uses an in-memory SQLite database so tests
don't need PostgreSQL running.
"""

import os
import tempfile

# must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MODEL_PATH", os.path.join(tempfile.mkdtemp(), "noshow_model.joblib"))
os.environ.setdefault("PERSIST_MODEL", "false")
os.environ.setdefault("SYNTHETIC_SAMPLES", "200")
os.environ.setdefault("RANDOM_SEED", "7")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base, get_db
from app.models import Appointment, Doctor
from app.schemas import AppointmentRecord

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = sessionmaker(bind=test_engine, autoflush=False, autocommit=False)

CARDIO_ID = "11111111-1111-1111-1111-111111111111"
GP_ID = "22222222-2222-2222-2222-222222222222"
DERM_ID = "33333333-3333-3333-3333-333333333333"


def make_record(
    id: str,
    slot_date: str,
    doctor_id: str = GP_ID,
    slot_time: str = "10:00 AM",
    patient_id: str = "patient-1",
    cancelled: bool = False,
    completed: bool = True,
    payment: bool = False,
) -> AppointmentRecord:
    return AppointmentRecord(
        id=id,
        patient_id=patient_id,
        doctor_id=doctor_id,
        slot_date=slot_date,
        slot_time=slot_time,
        cancelled=cancelled,
        is_completed=completed,
        payment=payment,
        amount=500.0,
    )


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=test_engine)
    session = TestSession()

    session.add_all([
        Doctor(
            id=CARDIO_ID, name="Dr. Ramesh Agarwal", speciality="Cardiologist",
            experience="22 years", about="Leading cardiologist treating heart and chest conditions.",
            rating=4.8, fees=1500, available=True, keywords=["heart", "chest", "palpitation"],
        ),
        Doctor(
            id=GP_ID, name="Dr. Rajesh Kumar", speciality="General Physician",
            experience="15", about="General physician for fever, cough and preventive care.",
            rating=4.2, fees=500, available=True, keywords=["fever", "cough", "cold"],
        ),
        Doctor(
            id=DERM_ID, name="Dr. Vikram Singh", speciality="Dermatologist",
            experience="10", about="Expert in skin conditions and acne.",
            rating=4.9, fees=700, available=False, keywords=["skin", "acne"],
        ),
    ])
    session.add_all([
        Appointment(
            id="a1", patient_id="patient-1", doctor_id=GP_ID, slot_date="2025-05-01",
            slot_time="10:00 AM", amount=500, cancelled=False, payment=True, is_completed=True,
        ),
        Appointment(
            id="a2", patient_id="patient-1", doctor_id=GP_ID, slot_date="2025-05-20",
            slot_time="06:00 PM", amount=500, cancelled=True, payment=False, is_completed=False,
        ),
        Appointment(
            id="a3", patient_id="patient-2", doctor_id=CARDIO_ID, slot_date="2025-06-16",
            slot_time="10:00 AM", amount=1500, cancelled=False, payment=True, is_completed=False,
        ),
        Appointment(
            id="a4", patient_id="patient-3", doctor_id=CARDIO_ID, slot_date="2025-06-16",
            slot_time="11:00 AM", amount=1500, cancelled=True, payment=False, is_completed=False,
        ),
    ])
    session.commit()

    yield session

    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def client(db):
    from app.main import app

    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
