"""
Logistic-regression no-show model with a fixed-weight fallback.

The live classifier is only ever replaced as a whole: a new one is fitted
off to the side and swapped in under a lock, so concurrent predictions see
either the old model or the new one.
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import joblib
import numpy as np
from sklearn.linear_model import SGDClassifier

from app.exceptions import FeatureShapeError, TrainingFailure
from app.features import FEATURE_COUNT, FEATURE_NAMES

logger = logging.getLogger(__name__)

DEFAULT_STEPS = 1000
DEFAULT_LEARNING_RATE = 0.1

# used when no model is trained or inference blows up
FALLBACK_BASE = 0.2
FALLBACK_WEIGHTS = np.array([0.25, -0.2, -0.1, 0.2, 0.05, 0.1, 0.08, -0.15, -0.05, 0.0, 0.05, 0.08])

# static sensitivity proxy, not a real marginal effect
IMPORTANCE_WEIGHTS = np.array([0.25, 0.2, 0.1, 0.2, 0.05, 0.1, 0.08, 0.15, 0.05, 0.03, 0.07, 0.08])

SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"


def fallback_probability(vector) -> float:
    """Base rate plus a fixed weighted sum. Not clamped; the caller does that."""
    try:
        values = np.nan_to_num(np.asarray(vector, dtype=float)[:FEATURE_COUNT])
        return float(FALLBACK_BASE + values @ FALLBACK_WEIGHTS[: len(values)])
    except (TypeError, ValueError):
        return FALLBACK_BASE


def confidence(probability: float) -> float:
    return abs(probability - 0.5) * 2


def feature_importance(vector) -> dict[str, float]:
    values = np.asarray(vector, dtype=float)
    return {
        name: round(float(v * w), 2)
        for name, v, w in zip(FEATURE_NAMES, values, IMPORTANCE_WEIGHTS)
    }


def generate_synthetic_training_set(
    samples: int, seed: Optional[int] = None
) -> tuple[np.ndarray, np.ndarray]:
    """
    Procedurally generated (features, labels) used to bootstrap a model
    before any real appointment history exists.

    Each row's no-show probability starts at 0.15 and moves with the known
    risk factors (cancellations, completions, recent cancellations, first
    visit, lead time, prepayment, evening and weekend slots). It is clamped
    to [0, 1], jittered by up to +/-0.05, and the label is drawn from it.
    """
    if samples < 1:
        raise ValueError("samples must be at least 1")
    rng = np.random.default_rng(seed)

    X = np.zeros((samples, FEATURE_COUNT))
    y = np.zeros(samples, dtype=int)

    for i in range(samples):
        cancellation_rate = rng.random()
        completion_rate = rng.random()
        total_appointments = rng.integers(0, 20)
        recent_cancellations = rng.integers(0, 3)
        days_since_last = rng.integers(0, 90)
        is_first_visit = int(rng.random() > 0.7)
        average_lead_time = rng.integers(0, 14)
        payment_rate = rng.random()
        morning = int(rng.random() > 0.66)
        afternoon = int(morning == 0 and rng.random() > 0.5)
        evening = int(morning == 0 and afternoon == 0)
        is_weekend = int(rng.random() > 0.7)

        X[i] = [
            cancellation_rate,
            completion_rate,
            min(total_appointments / 20, 1),
            recent_cancellations / 3,
            min(days_since_last / 90, 1),
            is_first_visit,
            min(average_lead_time / 14, 1),
            payment_rate,
            morning,
            afternoon,
            evening,
            is_weekend,
        ]

        p = 0.15
        p += cancellation_rate * 0.3
        p += (1 - completion_rate) * 0.2
        p += recent_cancellations * 0.15
        p += is_first_visit * 0.1
        p += (average_lead_time / 14) * 0.1
        p -= payment_rate * 0.2
        p += evening * 0.05
        p += is_weekend * 0.1
        p = min(max(p, 0.0), 1.0)
        p += (rng.random() - 0.5) * 0.1

        y[i] = int(rng.random() < p)

    return X, y


class RiskModel:
    def __init__(
        self,
        steps: int = DEFAULT_STEPS,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        seed: Optional[int] = None,
    ):
        self.steps = steps
        self.learning_rate = learning_rate
        self.seed = seed
        self.feature_names = list(FEATURE_NAMES)
        self.trained_at: Optional[datetime] = None
        self._classifier: Optional[SGDClassifier] = None
        self._lock = threading.Lock()

    @property
    def is_trained(self) -> bool:
        return self._classifier is not None

    def _new_classifier(self) -> SGDClassifier:
        # plain per-sample gradient descent on log loss, run for the full
        # number of epochs
        return SGDClassifier(
            loss="log_loss",
            penalty=None,
            learning_rate="constant",
            eta0=self.learning_rate,
            max_iter=self.steps,
            tol=None,
            random_state=self.seed,
        )

    def train(self, X, y) -> None:
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=int)
        try:
            if X.ndim != 2 or X.shape[1] != FEATURE_COUNT:
                raise ValueError(f"training matrix must be (n, {FEATURE_COUNT}), got {X.shape}")
            if not np.isfinite(X).all():
                raise ValueError("training matrix contains NaN or infinite values")
            classifier = self._new_classifier()
            classifier.fit(X, y)
        except (ValueError, FloatingPointError, np.linalg.LinAlgError) as e:
            logger.error("Failed to train no-show model on %d samples: %s", len(X), e)
            raise TrainingFailure(str(e)) from e

        with self._lock:
            self._classifier = classifier
            self.trained_at = datetime.now(timezone.utc)
        logger.info("No-show model trained on %d samples (%d no-shows)", len(y), int(y.sum()))

    def train_synthetic(self, samples: int) -> None:
        logger.info("Training no-show model on %d synthetic samples...", samples)
        X, y = generate_synthetic_training_set(samples, seed=self.seed)
        self.train(X, y)

    def predict(self, vector) -> tuple[float, str]:
        """
        Raw no-show probability for one feature vector, and which path
        produced it ("model" or "fallback").
        """
        values = np.asarray(vector, dtype=float).ravel()
        if values.shape[0] != FEATURE_COUNT:
            raise FeatureShapeError(FEATURE_COUNT, values.shape[0])

        with self._lock:
            classifier = self._classifier

        if classifier is None:
            return fallback_probability(values), SOURCE_FALLBACK

        try:
            probability = float(classifier.predict_proba(values.reshape(1, -1))[0][1])
            if not np.isfinite(probability):
                raise ValueError("non-finite probability")
            return probability, SOURCE_MODEL
        except (ValueError, FloatingPointError, AttributeError, IndexError) as e:
            logger.warning("Model inference failed, using fallback rule: %s", e)
            return fallback_probability(values), SOURCE_FALLBACK

    def coefficients(self) -> Optional[dict[str, float]]:
        with self._lock:
            classifier = self._classifier
        if classifier is None:
            return None
        return dict(zip(self.feature_names, (float(w) for w in classifier.coef_[0])))

    def save(self, path) -> None:
        with self._lock:
            classifier = self._classifier
            trained_at = self.trained_at
        if classifier is None:
            raise ValueError("Model is not trained")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(
            {"model": classifier, "features": self.feature_names, "trained_at": trained_at},
            path,
        )
        logger.info("No-show model saved to %s", path)

    def load(self, path) -> bool:
        """Swap in a persisted model. Returns False if it doesn't fit this feature set."""
        bundle = joblib.load(path)
        features = bundle.get("features", [])
        classifier = bundle.get("model")
        if list(features) != self.feature_names or classifier is None:
            logger.warning(
                "Ignoring model at %s: built for %d features, expected %d",
                path, len(features), FEATURE_COUNT,
            )
            return False

        with self._lock:
            self._classifier = classifier
            self.trained_at = bundle.get("trained_at")
        logger.info("Loaded no-show model from %s", path)
        return True
