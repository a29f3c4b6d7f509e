"""Tests for the logistic-regression risk model and its fallback rule."""

import threading

import numpy as np
import pytest

from app.exceptions import FeatureShapeError, TrainingFailure
from app.features import FEATURE_COUNT, FEATURE_NAMES
from app.risk_model import (
    FALLBACK_BASE,
    SOURCE_FALLBACK,
    SOURCE_MODEL,
    RiskModel,
    confidence,
    fallback_probability,
    feature_importance,
    generate_synthetic_training_set,
)


@pytest.fixture(scope="module")
def trained_model():
    model = RiskModel(steps=50, learning_rate=0.1, seed=3)
    model.train_synthetic(300)
    return model


def _vector(**overrides):
    values = dict.fromkeys(FEATURE_NAMES, 0.0)
    values["completionRate"] = 0.5
    values["afternoonSlot"] = 1.0
    values.update(overrides)
    return np.array([values[name] for name in FEATURE_NAMES])


def test_synthetic_set_shape_and_bounds():
    X, y = generate_synthetic_training_set(500, seed=1)

    assert X.shape == (500, FEATURE_COUNT)
    assert y.shape == (500,)
    assert ((X >= 0) & (X <= 1)).all()
    assert set(np.unique(y)) <= {0, 1}
    # exactly one time-of-day bucket per row
    assert (X[:, 8:11].sum(axis=1) == 1).all()


def test_synthetic_set_is_reproducible_with_seed():
    X1, y1 = generate_synthetic_training_set(50, seed=11)
    X2, y2 = generate_synthetic_training_set(50, seed=11)
    assert np.array_equal(X1, X2)
    assert np.array_equal(y1, y2)


def test_synthetic_set_needs_a_sample():
    with pytest.raises(ValueError):
        generate_synthetic_training_set(0)


def test_untrained_model_uses_fallback():
    model = RiskModel()
    assert not model.is_trained

    vec = _vector()
    prob, source = model.predict(vec)
    assert source == SOURCE_FALLBACK
    assert prob == pytest.approx(fallback_probability(vec))


def test_fallback_rule_values():
    vec = np.zeros(FEATURE_COUNT)
    assert fallback_probability(vec) == pytest.approx(FALLBACK_BASE)

    vec[0] = 1.0  # cancellationRate
    assert fallback_probability(vec) == pytest.approx(0.45)


def test_fallback_monotonic_in_cancellation_rate():
    probs = [fallback_probability(_vector(cancellationRate=c)) for c in np.linspace(0, 1, 11)]
    assert all(b >= a for a, b in zip(probs, probs[1:]))


def test_fallback_never_raises_on_garbage():
    assert fallback_probability(["x"] * FEATURE_COUNT) == FALLBACK_BASE


def test_train_marks_model_trained(trained_model):
    assert trained_model.is_trained
    assert trained_model.trained_at is not None

    prob, source = trained_model.predict(_vector())
    assert source == SOURCE_MODEL
    assert 0.0 <= prob <= 1.0


def test_wrong_length_vector_is_a_hard_error(trained_model):
    with pytest.raises(FeatureShapeError):
        trained_model.predict(np.zeros(FEATURE_COUNT - 1))
    with pytest.raises(ValueError):
        RiskModel().predict(np.zeros(FEATURE_COUNT + 2))


def test_single_class_training_fails_and_keeps_untrained_state():
    model = RiskModel(steps=10)
    X = np.random.default_rng(0).random((60, FEATURE_COUNT))

    with pytest.raises(TrainingFailure):
        model.train(X, np.zeros(60, dtype=int))
    assert not model.is_trained


def test_failed_retrain_keeps_previous_model():
    model = RiskModel(steps=20, seed=0)
    X, y = generate_synthetic_training_set(200, seed=0)
    model.train(X, y)
    before = model.coefficients()

    with pytest.raises(TrainingFailure):
        model.train(X, np.ones(len(y), dtype=int))
    with pytest.raises(TrainingFailure):
        model.train(np.zeros((5, 3)), [0, 1, 0, 1, 0])

    assert model.is_trained
    assert model.coefficients() == before


def test_predictions_keep_old_model_while_retraining(monkeypatch):
    model = RiskModel(steps=20, seed=0)
    model.train(*generate_synthetic_training_set(200, seed=0))
    before = model.coefficients()

    fitting = threading.Event()
    release = threading.Event()
    make_classifier = model._new_classifier

    def held_classifier():
        classifier = make_classifier()
        fit = classifier.fit

        def held_fit(X, y):
            fitting.set()
            release.wait(timeout=10)
            return fit(X, y)

        classifier.fit = held_fit
        return classifier

    monkeypatch.setattr(model, "_new_classifier", held_classifier)
    X, y = generate_synthetic_training_set(300, seed=9)
    worker = threading.Thread(target=model.train, args=(X, y))
    worker.start()

    try:
        assert fitting.wait(timeout=10)
        for _ in range(20):
            _, source = model.predict(_vector())
            assert source == SOURCE_MODEL
            assert model.coefficients() == before
    finally:
        release.set()
        worker.join(timeout=30)

    assert not worker.is_alive()
    assert model.is_trained
    assert model.coefficients() != before


def test_inference_error_falls_back(monkeypatch):
    model = RiskModel(steps=10, seed=0)
    model.train(*generate_synthetic_training_set(100, seed=0))

    def boom(_):
        raise ValueError("numerical trouble")

    monkeypatch.setattr(model._classifier, "predict_proba", boom)
    vec = _vector()
    prob, source = model.predict(vec)
    assert source == SOURCE_FALLBACK
    assert prob == pytest.approx(fallback_probability(vec))


def test_confidence():
    assert confidence(0.5) == 0
    assert confidence(1.0) == 1
    assert confidence(0.0) == 1
    assert confidence(0.75) == pytest.approx(0.5)


def test_feature_importance_is_value_times_weight():
    vec = _vector(cancellationRate=0.4, isFirstVisitToDoctor=1.0, isWeekend=1.0)
    importance = feature_importance(vec)

    assert list(importance) == FEATURE_NAMES
    assert importance["cancellationRate"] == 0.1
    assert importance["completionRate"] == 0.1
    assert importance["isFirstVisitToDoctor"] == 0.1
    assert importance["isWeekend"] == 0.08
    assert importance["paymentRate"] == 0


def test_save_and_load(tmp_path, trained_model):
    path = tmp_path / "nested" / "model.joblib"
    trained_model.save(path)

    fresh = RiskModel()
    assert fresh.load(path)
    assert fresh.is_trained

    vec = _vector(cancellationRate=0.8)
    assert fresh.predict(vec)[0] == pytest.approx(trained_model.predict(vec)[0])


def test_load_rejects_other_feature_sets(tmp_path, trained_model):
    import joblib

    path = tmp_path / "old.joblib"
    joblib.dump({"model": trained_model._classifier, "features": ["a", "b"]}, path)

    fresh = RiskModel()
    assert fresh.load(path) is False
    assert not fresh.is_trained


def test_save_untrained_model_raises(tmp_path):
    with pytest.raises(ValueError):
        RiskModel().save(tmp_path / "m.joblib")
