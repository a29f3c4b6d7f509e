"""No-show prediction service: features -> model -> risk level, factors and advice."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, Optional, Sequence

import numpy as np

from app import config
from app.exceptions import InsufficientDataError, TrainingFailure
from app.features import FEATURE_COUNT, FEATURE_NAMES, FeatureVector, extract_features, parse_slot_date
from app.risk_model import SOURCE_FALLBACK, RiskModel, confidence, feature_importance
from app.schemas import AppointmentRecord

logger = logging.getLogger(__name__)

DEFAULT_SLOT_TIME = "10:00 AM"

LOW_RISK_BELOW = 0.25
HIGH_RISK_FROM = 0.5


def risk_level(probability: float) -> str:
    if probability < LOW_RISK_BELOW:
        return "low"
    if probability < HIGH_RISK_FROM:
        return "medium"
    return "high"


def is_no_show(record: AppointmentRecord) -> bool:
    return record.cancelled or not record.is_completed


def risk_factors(features: FeatureVector) -> list[str]:
    factors = []

    if features.cancellation_rate > 0.3:
        factors.append(f"High cancellation history ({round(features.cancellation_rate * 100)}%)")
    elif features.cancellation_rate > 0.15:
        factors.append(f"Moderate cancellation history ({round(features.cancellation_rate * 100)}%)")

    if features.completion_rate < 0.7:
        factors.append(f"Low completion rate ({round(features.completion_rate * 100)}%)")

    if features.total_appointments_norm < 0.15:
        factors.append("Limited appointment history")

    if features.recent_cancellations_norm >= 0.66:
        factors.append("Recent cancellation pattern detected")

    if features.is_first_visit_to_doctor == 1:
        factors.append("First visit to this doctor")

    if features.payment_rate < 0.3:
        factors.append("Low prepayment history")
    elif features.payment_rate > 0.7:
        factors.append("Good prepayment history (reduces risk)")

    if features.evening_slot == 1:
        factors.append("Evening slot (higher no-show tendency)")

    if features.is_weekend == 1:
        factors.append("Weekend appointment (higher no-show tendency)")

    if not factors:
        factors.append("No significant risk factors identified")
    return factors


def recommendations_for(level: str, features: FeatureVector) -> list[str]:
    if level == "high":
        recs = [
            "Send appointment confirmation request 48 hours before",
            "Send multiple reminders (SMS + Email + App notification)",
            "Consider requiring deposit or prepayment",
            "Add to waitlist backup for double-booking consideration",
            "Schedule follow-up confirmation call",
        ]
    elif level == "medium":
        recs = [
            "Send reminder 24 hours before appointment",
            "Enable easy rescheduling via app/SMS",
            "Send day-of reminder 2 hours before",
        ]
    else:
        recs = [
            "Standard reminder 24 hours before is sufficient",
            "Consider loyalty rewards for consistent attendance",
        ]

    if features.is_first_visit_to_doctor == 1:
        recs.append("Send welcome package with clinic directions and parking info")
        recs.append("Offer virtual check-in option to reduce wait anxiety")

    if features.payment_rate < 0.3:
        recs.append("Offer prepayment discount to incentivize commitment")

    return recs


def build_training_set(records: Sequence[AppointmentRecord]) -> tuple[np.ndarray, np.ndarray]:
    """
    One row per appointment, built from that patient's earlier appointments.

    History is joined on patient_id. A record without a patient id is
    scored against an empty history. Records with an unparseable slot date
    can't be placed in time and are left out.
    """
    by_patient: dict[str, list[AppointmentRecord]] = defaultdict(list)
    for record in records:
        if record.patient_id:
            by_patient[record.patient_id].append(record)

    rows, labels = [], []
    for record in records:
        if parse_slot_date(record.slot_date) is None:
            continue
        history = by_patient.get(record.patient_id, []) if record.patient_id else []
        rows.append(extract_features(history, record.doctor_id, record.slot_date, record.slot_time))
        labels.append(int(is_no_show(record)))

    X = np.array(rows, dtype=float).reshape(-1, FEATURE_COUNT)
    return X, np.array(labels, dtype=int)


@dataclass
class RetrainResult:
    success: bool
    appointments_used: int
    message: str


class NoShowService:
    """
    Owns the one live RiskModel for the process.

    Built once at startup and shared by every request; retraining swaps the
    model inside RiskModel so readers never see a half-fitted one.
    """

    def __init__(
        self,
        model: Optional[RiskModel] = None,
        model_path: Optional[str] = None,
        persist: Optional[bool] = None,
        min_training_records: Optional[int] = None,
        synthetic_samples: Optional[int] = None,
    ):
        self.model = model or RiskModel(
            steps=config.TRAINING_STEPS,
            learning_rate=config.LEARNING_RATE,
            seed=config.RANDOM_SEED,
        )
        self.model_path = model_path if model_path is not None else config.MODEL_PATH
        self.persist = persist if persist is not None else config.PERSIST_MODEL
        self.min_training_records = (
            min_training_records if min_training_records is not None else config.MIN_TRAINING_RECORDS
        )
        self.synthetic_samples = synthetic_samples or config.SYNTHETIC_SAMPLES

    def bootstrap(self) -> None:
        """Load the persisted model if there is one, else fit on synthetic data."""
        if self.persist and self.model_path and Path(self.model_path).exists():
            try:
                if self.model.load(self.model_path):
                    return
            except Exception as e:
                logger.error("Could not load model from %s: %s", self.model_path, e)

        try:
            self.model.train_synthetic(self.synthetic_samples)
        except TrainingFailure:
            logger.warning("Serving no-show predictions from the fallback rule")

    def predict(
        self,
        history: Iterable[AppointmentRecord],
        doctor_id: str,
        slot_date: Optional[str] = None,
        slot_time: Optional[str] = None,
    ) -> dict:
        slot_date = slot_date or date.today().isoformat()
        slot_time = slot_time or DEFAULT_SLOT_TIME

        features = extract_features(history, doctor_id, slot_date, slot_time)
        raw, source = self.model.predict(features.to_array())
        if source == SOURCE_FALLBACK:
            logger.debug("No-show prediction for doctor %s served by fallback rule", doctor_id)

        probability = min(max(raw, 0.0), 1.0)
        level = risk_level(probability)

        return {
            "probability": round(probability, 2),
            "risk_level": level,
            "factors": risk_factors(features),
            "recommendations": recommendations_for(level, features),
            "feature_importance": feature_importance(features),
            "model_confidence": round(confidence(probability), 2),
            "source": source,
        }

    def retrain(self, records: Sequence[AppointmentRecord]) -> RetrainResult:
        count = len(records)
        if count < self.min_training_records:
            logger.warning(
                "Insufficient data for training. Need at least %d appointments, got %d.",
                self.min_training_records, count,
            )
            raise InsufficientDataError(count, self.min_training_records)

        logger.info("Training model with %d real appointments...", count)
        X, y = build_training_set(records)
        try:
            self.model.train(X, y)
        except TrainingFailure as e:
            return RetrainResult(False, count, f"Model retraining failed: {e}")

        if self.persist and self.model_path:
            try:
                self.model.save(self.model_path)
            except OSError as e:
                logger.error("Could not persist model to %s: %s", self.model_path, e)

        return RetrainResult(True, count, "Model retrained successfully")

    def model_stats(self) -> dict:
        return {
            "is_trained": self.model.is_trained,
            "feature_count": len(FEATURE_NAMES),
            "feature_names": list(FEATURE_NAMES),
        }


def analyze_patterns_by_time_slot(records: Iterable[AppointmentRecord]) -> dict[str, float]:
    """Share of no-shows per slot time, rounded to 2 places."""
    totals: dict[str, int] = defaultdict(int)
    misses: dict[str, int] = defaultdict(int)
    for record in records:
        totals[record.slot_time] += 1
        if is_no_show(record):
            misses[record.slot_time] += 1
    return {slot: round(misses[slot] / totals[slot], 2) for slot in totals}
