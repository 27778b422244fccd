"""
Training Orchestrator - retrains served models without disturbing inference.

Each run trains a deep copy of the served model. Only after fitting
succeeds is the copy persisted and swapped into the registry, so a failed
run leaves the previous model serving and a concurrent prediction always
sees one complete model.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import torch.nn as nn

from ..config import MarketLensConfig
from ..data.training_data import TrainingBatch, TrainingData
from ..exceptions import TrainingError
from ..model.factory import ANOMALY_MODEL, REGIME_MODEL, TREND_MODEL, build_model, learning_rate_for
from ..model.registry import ModelRegistry
from ..model.serialization import model_to_document
from ..storage.artifact_store import ArtifactStore, artifact_key
from .trainer import CATEGORICAL_CROSSENTROPY, MEAN_SQUARED_ERROR, ModelTrainer

logger = logging.getLogger(__name__)


LOSS_FOR_MODEL = {
    TREND_MODEL: CATEGORICAL_CROSSENTROPY,
    ANOMALY_MODEL: MEAN_SQUARED_ERROR,
    REGIME_MODEL: CATEGORICAL_CROSSENTROPY,
}


@dataclass(frozen=True)
class TrainingOutcome:
    """Result of one model's training run"""
    name: str
    history: Dict[str, List[float]] = field(default_factory=dict)
    samples: int = 0
    persisted: bool = False
    saved_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def final_metrics(self) -> Dict[str, float]:
        return {k: v[-1] for k, v in self.history.items() if v}


class TrainingOrchestrator:
    """
    Fits, persists and swaps in the named models.

    Args:
        registry: Registry serving the models
        store: Artifact store for trained models (defaults to the registry's)
        config: MarketLens configuration (defaults to the registry's)
    """

    def __init__(
        self,
        registry: ModelRegistry,
        store: Optional[ArtifactStore] = None,
        config: Optional[MarketLensConfig] = None,
    ):
        self.registry = registry
        self.store = store or registry.store
        self.config = config or registry.config

    def input_shape(self, name: str) -> Tuple[int, ...]:
        return {
            TREND_MODEL: self.config.trend_window_shape,
            ANOMALY_MODEL: (self.config.anomaly_input_dim,),
            REGIME_MODEL: self.config.regime_window_shape,
        }[name]

    def train_model(self, name: str, data: TrainingData) -> TrainingOutcome:
        """
        Train name on data, persist it and serve it.

        Raises:
            TrainingError: Fitting failed; the served model is unchanged
        """
        if name not in LOSS_FOR_MODEL:
            raise TrainingError(name, "unknown model")

        try:
            candidate = copy.deepcopy(self._base_model(name))
            trainer = ModelTrainer(
                candidate,
                learning_rate=learning_rate_for(name, self.config),
                loss=LOSS_FOR_MODEL[name],
                config=self.config,
                name=name,
                input_shape=self.input_shape(name),
            )
            history = trainer.fit(data.features, data.labels)
        except Exception as e:
            logger.error("Error training %s model: %s", name, e, exc_info=True)
            raise TrainingError(name, str(e)) from e

        candidate.eval()
        persisted, saved_at = self._persist(name, candidate)
        self.registry.swap(name, candidate, is_trained=True)
        logger.info("%s model trained successfully", name)

        return TrainingOutcome(
            name=name,
            history=history,
            samples=len(data),
            persisted=persisted,
            saved_at=saved_at,
        )

    def train_models(self, batch: TrainingBatch) -> Dict[str, TrainingOutcome]:
        """
        Train every model that has samples in batch.

        A failure of one model is logged and reported in its outcome; the
        remaining models still train.
        """
        outcomes = {}
        for name, data in batch.items():
            try:
                outcomes[name] = self.train_model(name, data)
            except TrainingError as e:
                outcomes[name] = TrainingOutcome(name=name, samples=len(data), error=str(e))
        return outcomes

    def _base_model(self, name: str) -> nn.Module:
        """Served model to start from, or a fresh topology when none is usable"""
        entry = self.registry.get(name)
        if entry is None:
            entry = self.registry.load(name)
        if entry.model is not None:
            return entry.model
        logger.warning("No usable %s model to retrain, starting from a new one", name)
        return build_model(name, self.config)

    def _persist(self, name: str, model: nn.Module) -> Tuple[bool, Optional[str]]:
        key = artifact_key(name)
        try:
            self.store.upload(key, model_to_document(name, model))
        except Exception as e:
            logger.error("Error saving %s model to %s: %s", name, key, e, exc_info=True)
            return False, None
        logger.info("%s model saved to storage under %s", name, key)
        return True, datetime.now(timezone.utc).isoformat()
