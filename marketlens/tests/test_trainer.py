"""
Tests for the training loop and the training orchestrator.
"""

import numpy as np
import torch
import pytest

from marketlens.config import MarketLensConfig
from marketlens.exceptions import ArtifactStoreError, TrainingError
from marketlens.model import ANOMALY_MODEL, REGIME_MODEL, TREND_MODEL, ModelRegistry, build_model
from marketlens.storage import ArtifactStore, InMemoryArtifactStore, artifact_key
from marketlens.training import (
    ModelTrainer,
    TrainingBatch,
    TrainingData,
    TrainingEvaluator,
    TrainingOrchestrator,
)


def _config(**overrides):
    values = dict(num_epochs=2, batch_size=8, show_progress=False)
    values.update(overrides)
    return MarketLensConfig(**values)


def _trend_data(n=20, seed=0):
    rng = np.random.default_rng(seed)
    features = rng.normal(size=(n, 30, 5)).astype(np.float32)
    labels = np.eye(3, dtype=np.float32)[rng.integers(0, 3, n)]
    return TrainingData(features, labels)


def _anomaly_data(n=20, seed=0):
    rng = np.random.default_rng(seed)
    return TrainingData(rng.random((n, 30)).astype(np.float32))


class ReadOnlyStore(ArtifactStore):
    """Store that reads nothing and rejects writes"""

    def download(self, key):
        return None

    def upload(self, key, document):
        raise ArtifactStoreError(key, "bucket is read-only")


def _state(model):
    return {k: v.clone() for k, v in model.state_dict().items()}


def test_evaluator_accuracy():
    """Test argmax accuracy with one-hot and index targets"""
    evaluator = TrainingEvaluator()
    assert evaluator.compute_metrics() == {}

    logits = torch.tensor([[2.0, 0.0, 0.0], [0.0, 2.0, 0.0]])
    evaluator.update(logits, torch.tensor([[1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]))
    evaluator.update(logits, torch.tensor([0, 1]))

    assert evaluator.compute_metrics()['accuracy'] == pytest.approx(0.75)


def test_trainer_history_classifier():
    """Test per-epoch metrics for a classifier"""
    config = _config()
    model = build_model(TREND_MODEL, config)
    trainer = ModelTrainer(model, 1e-3, 'categorical_crossentropy', config, name=TREND_MODEL,
                           input_shape=(30, 5))

    data = _trend_data()
    history = trainer.fit(data.features, data.labels)

    assert set(history) == {'loss', 'accuracy', 'val_loss', 'val_accuracy'}
    assert all(len(v) == 2 for v in history.values())
    assert all(np.isfinite(v).all() for v in history.values())
    assert trainer.global_step == 2 * 2  # 16 training samples in batches of 8


def test_trainer_history_autoencoder():
    """Test the autoencoder reconstructs its input without accuracy"""
    config = _config(num_epochs=3)
    trainer = ModelTrainer(build_model(ANOMALY_MODEL, config), 1e-3, 'mse', config)

    history = trainer.fit(_anomaly_data().features)

    assert set(history) == {'loss', 'val_loss'}
    assert len(history['loss']) == 3


def test_trainer_holds_out_trailing_samples():
    """Test the last validation_split fraction is the validation set"""
    config = _config()
    trainer = ModelTrainer(build_model(ANOMALY_MODEL, config), 1e-3, 'mse', config)
    inputs = torch.arange(10, dtype=torch.float32).unsqueeze(1).repeat(1, 30)

    train_set, val_set = trainer._split(inputs, inputs)

    assert len(train_set) == 8
    assert len(val_set) == 2
    assert val_set[0][0][0].item() == 8.0


def test_trainer_without_validation():
    """Test validation_split=0 trains on everything"""
    config = _config(validation_split=0.0)
    trainer = ModelTrainer(build_model(ANOMALY_MODEL, config), 1e-3, 'mse', config)

    history = trainer.fit(_anomaly_data(n=10).features)

    assert set(history) == {'loss'}


def test_trainer_rejects_bad_inputs():
    """Test malformed samples raise before training starts"""
    config = _config()
    trainer = ModelTrainer(build_model(TREND_MODEL, config), 1e-3, 'categorical_crossentropy',
                           config, input_shape=(30, 5))

    with pytest.raises(ValueError):
        trainer.fit(np.zeros((10, 20, 5)), np.zeros((10, 3)))
    with pytest.raises(ValueError):
        trainer.fit(np.zeros((10, 30, 5)), None)
    with pytest.raises(ValueError):
        trainer.fit(np.zeros((10, 30, 5)), np.zeros((4, 3)))
    with pytest.raises(ValueError):
        trainer.fit(np.full((10, 30, 5), np.nan), np.zeros((10, 3)))
    with pytest.raises(ValueError):
        trainer.fit(np.zeros((1, 30, 5)), np.zeros((1, 3)))
    with pytest.raises(ValueError):
        ModelTrainer(build_model(TREND_MODEL, config), 1e-3, 'hinge', config)


def test_orchestrator_swaps_and_persists():
    """Test successful training persists the model and serves it"""
    config = _config()
    store = InMemoryArtifactStore()
    registry = ModelRegistry(store, config)
    old_entry = registry.load(TREND_MODEL)
    old_state = _state(old_entry.model)

    outcome = TrainingOrchestrator(registry).train_model(TREND_MODEL, _trend_data())

    assert outcome.succeeded
    assert outcome.persisted
    assert outcome.saved_at is not None
    assert outcome.samples == 20
    assert len(outcome.history['loss']) == 2

    entry = registry.get(TREND_MODEL)
    assert entry.is_trained
    assert entry.model is not old_entry.model
    assert not entry.model.training
    assert store.download(artifact_key(TREND_MODEL)) is not None

    # The previously served instance was never trained in place
    for key, value in old_entry.model.state_dict().items():
        assert value.equal(old_state[key])


def test_orchestrator_failure_leaves_model_serving():
    """Test a failed fit raises and keeps the previous model"""
    config = _config()
    store = InMemoryArtifactStore()
    registry = ModelRegistry(store, config)
    old_entry = registry.load(REGIME_MODEL)

    bad = TrainingData(np.zeros((20, 30, 10), dtype=np.float32), np.zeros((20, 2), dtype=np.float32))
    with pytest.raises(TrainingError):
        TrainingOrchestrator(registry).train_model(REGIME_MODEL, bad)

    assert registry.get(REGIME_MODEL) is old_entry
    assert store.keys() == []


def test_orchestrator_save_failure_still_serves():
    """Test a failed upload is reported but the new model is served"""
    config = _config()
    registry = ModelRegistry(ReadOnlyStore(), config)
    registry.load(ANOMALY_MODEL)

    outcome = TrainingOrchestrator(registry).train_model(ANOMALY_MODEL, _anomaly_data())

    assert outcome.succeeded
    assert not outcome.persisted
    assert outcome.saved_at is None
    assert registry.get(ANOMALY_MODEL).is_trained


def test_orchestrator_trains_unavailable_model_from_scratch():
    """Test a model marked unavailable is rebuilt and trained"""
    config = _config()
    registry = ModelRegistry(InMemoryArtifactStore(), config)
    registry.mark_unavailable(ANOMALY_MODEL, "failed to load")

    TrainingOrchestrator(registry).train_model(ANOMALY_MODEL, _anomaly_data())

    assert registry.require(ANOMALY_MODEL).is_trained


def test_train_models_isolates_failures():
    """Test one failing model does not stop the others"""
    config = _config()
    registry = ModelRegistry(InMemoryArtifactStore(), config)
    registry.load_all()

    batch = TrainingBatch(
        trend=TrainingData(np.zeros((20, 10, 5), dtype=np.float32), np.zeros((20, 3), dtype=np.float32)),
        anomaly=_anomaly_data(),
    )
    outcomes = TrainingOrchestrator(registry).train_models(batch)

    assert set(outcomes) == {TREND_MODEL, ANOMALY_MODEL}
    assert not outcomes[TREND_MODEL].succeeded
    assert 'trend' in outcomes[TREND_MODEL].error
    assert outcomes[ANOMALY_MODEL].succeeded
    assert not registry.get(TREND_MODEL).is_trained
    assert registry.get(ANOMALY_MODEL).is_trained


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
