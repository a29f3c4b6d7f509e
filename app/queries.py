"""Database lookups shared by the REST routes and the GraphQL resolvers."""

from sqlalchemy.orm import Session

from app.models import Appointment
from app.schemas import AppointmentRecord


def patient_history(db: Session, patient_id: str) -> list[AppointmentRecord]:
    rows = db.query(Appointment).filter(Appointment.patient_id == patient_id).all()
    return [AppointmentRecord.model_validate(r) for r in rows]


def booked_slot_times(db: Session, doctor_id: str, date: str) -> list[str]:
    """Slot times already taken for a doctor on a day. Cancelled bookings free their slot."""
    rows = (
        db.query(Appointment.slot_time)
        .filter(
            Appointment.doctor_id == doctor_id,
            Appointment.slot_date == date,
            Appointment.cancelled.is_not(True),
        )
        .all()
    )
    return [r.slot_time for r in rows]
