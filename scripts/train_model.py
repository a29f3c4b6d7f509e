"""
Retrain the no-show model on the appointments in the database.

Evaluates a hold-out split first (classification report + AUC), then fits
on everything and saves the model to MODEL_PATH, where the API picks it up
on its next start.
"""

import sys

import pandas as pd
from sklearn.metrics import classification_report, roc_auc_score
from sklearn.model_selection import train_test_split

from app import config
from app.database import engine
from app.exceptions import InsufficientDataError, TrainingFailure
from app.noshow import NoShowService, build_training_set
from app.risk_model import RiskModel
from app.schemas import AppointmentRecord


def load_records() -> list[AppointmentRecord]:
    df = pd.read_sql(
        "SELECT id, patient_id, doctor_id, slot_date, slot_time, amount, "
        "cancelled, payment, is_completed FROM appointments",
        engine,
    )
    df = df.astype(object).where(df.notna(), None)
    return [AppointmentRecord(**row) for row in df.to_dict(orient="records")]


def evaluate(X, y) -> None:
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.2, random_state=42, stratify=y
    )
    model = RiskModel(config.TRAINING_STEPS, config.LEARNING_RATE, seed=42)
    model.train(X_train, y_train)

    probs = [model.predict(row)[0] for row in X_test]
    preds = [int(p >= 0.5) for p in probs]

    print("=" * 50)
    print("LOGISTIC REGRESSION (hold-out)")
    print("=" * 50)
    print(classification_report(y_test, preds, target_names=["attended", "no-show"], zero_division=0))
    print(f"AUC: {roc_auc_score(y_test, probs):.4f}\n")

    print("Coefficients:")
    for name, w in sorted(model.coefficients().items(), key=lambda x: -abs(x[1])):
        print(f"  {name:32s} {w:+.4f}")


def main():
    print("Loading appointments from database...")
    records = load_records()
    print(f"Loaded {len(records)} appointments")

    X, y = build_training_set(records)
    print(f"Built {len(X)} feature rows, {int(y.sum())} labelled no-show\n")

    if len(set(y)) > 1 and len(y) >= 10:
        try:
            evaluate(X, y)
        except TrainingFailure as e:
            print(f"Hold-out evaluation failed: {e}")

    service = NoShowService(persist=True)
    try:
        result = service.retrain(records)
    except InsufficientDataError as e:
        print(e)
        sys.exit(1)

    print(result.message)
    if result.success:
        print(f"Model saved to {service.model_path}")
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
