"""
Batch-score upcoming appointments and save no-show probabilities to the DB.

Meant to run as a daily job (cron, scheduled task, etc.). Uses the model
saved at MODEL_PATH, or a synthetic bootstrap model if none has been saved.
"""

from collections import defaultdict
from datetime import date

from app.database import SessionLocal
from app.features import parse_slot_date
from app.models import Appointment
from app.noshow import NoShowService
from app.schemas import AppointmentRecord


def main():
    service = NoShowService()
    service.bootstrap()

    session = SessionLocal()
    try:
        rows = session.query(Appointment).all()
        history = defaultdict(list)
        for row in rows:
            history[row.patient_id].append(AppointmentRecord.model_validate(row))

        today = date.today()
        scored = 0
        high_risk = 0
        for appt in rows:
            day = parse_slot_date(appt.slot_date)
            if day is None or day < today or appt.cancelled or appt.is_completed:
                continue

            prediction = service.predict(
                history[appt.patient_id], appt.doctor_id, appt.slot_date, appt.slot_time
            )
            appt.noshow_probability = prediction["probability"]
            scored += 1
            if prediction["risk_level"] == "high":
                high_risk += 1

        session.commit()
        print(f"Scored {scored} upcoming appointments")
        print(f"  {high_risk} flagged as high-risk (>= 0.5)")
    finally:
        session.close()


if __name__ == "__main__":
    main()
