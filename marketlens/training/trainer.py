"""
Supervised fitting loop for the MarketLens models.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np
import torch
import torch.nn as nn
from torch.utils.data import DataLoader, TensorDataset
from tqdm import tqdm

from ..config import MarketLensConfig
from ..utils.logging_utils import MetricsLogger
from ..utils.torch_utils import inference_scope
from .evaluation import TrainingEvaluator

logger = logging.getLogger(__name__)


CATEGORICAL_CROSSENTROPY = 'categorical_crossentropy'
MEAN_SQUARED_ERROR = 'mse'


class ModelTrainer:
    """
    Trainer for one MarketLens model.

    Follows Keras fit() semantics: the trailing validation_split fraction of
    the samples is held out before shuffling, the rest is shuffled into
    mini-batches each epoch, and loss/accuracy are reported per epoch for
    both parts.

    Args:
        model: Model to fit in place (callers pass a copy of the served model)
        learning_rate: Adam learning rate
        loss: 'categorical_crossentropy' (classifiers, one-hot labels) or
            'mse' (autoencoder, target = input)
        config: MarketLens configuration (epochs, batch size, split, device)
        name: Model name used in logs
        input_shape: Expected per-sample feature shape, e.g. (30, 5)
    """

    def __init__(
        self,
        model: nn.Module,
        learning_rate: float,
        loss: str = CATEGORICAL_CROSSENTROPY,
        config: Optional[MarketLensConfig] = None,
        name: str = 'model',
        input_shape: Optional[Tuple[int, ...]] = None,
    ):
        self.config = config or MarketLensConfig()
        self.device = self.config.device
        self.model = model.to(self.device)
        self.name = name
        self.input_shape = tuple(input_shape) if input_shape is not None else None

        if loss == CATEGORICAL_CROSSENTROPY:
            # Accepts class-probability targets
            self.criterion = nn.CrossEntropyLoss()
        elif loss == MEAN_SQUARED_ERROR:
            self.criterion = nn.MSELoss()
        else:
            raise ValueError(f"Unknown loss: {loss}")
        self.loss = loss
        self.is_classifier = loss == CATEGORICAL_CROSSENTROPY

        self.optimizer = torch.optim.Adam(self.model.parameters(), lr=learning_rate)
        self.evaluator = TrainingEvaluator()
        self.metrics_logger = MetricsLogger(self.config.metrics_log_file or None)

        self.current_epoch = 0
        self.global_step = 0

    def fit(
        self,
        features: np.ndarray,
        labels: Optional[np.ndarray] = None,
    ) -> Dict[str, List[float]]:
        """
        Train for config.num_epochs epochs.

        Args:
            features: (N, *input_shape) samples
            labels: (N, num_classes) one-hot labels; ignored for 'mse'

        Returns:
            history: Per-epoch lists under 'loss' and 'val_loss' (plus
                'accuracy' and 'val_accuracy' for classifiers); validation
                keys are absent when nothing is held out

        Raises:
            ValueError: Malformed inputs or a non-finite loss
        """
        inputs, targets = self._to_tensors(features, labels)
        train_set, val_set = self._split(inputs, targets)

        generator = torch.Generator().manual_seed(self.config.seed)
        train_loader = DataLoader(
            train_set,
            batch_size=self.config.batch_size,
            shuffle=self.config.shuffle,
            generator=generator,
        )
        val_loader = None
        if val_set is not None:
            val_loader = DataLoader(val_set, batch_size=self.config.batch_size, shuffle=False)

        logger.info(
            "Training %s model on %d samples (%d held out for validation)",
            self.name, len(train_set), 0 if val_set is None else len(val_set),
        )

        history: Dict[str, List[float]] = {}
        for epoch in range(self.config.num_epochs):
            self.current_epoch = epoch

            metrics = self.train_epoch(train_loader)
            if val_loader is not None:
                val_metrics = self.validate(val_loader)
                metrics.update({f'val_{k}': v for k, v in val_metrics.items()})

            for key, value in metrics.items():
                history.setdefault(key, []).append(value)
            self.metrics_logger.log(metrics, epoch + 1, model_name=self.name)

        final = ', '.join(f"{k} = {v[-1]:.4f}" for k, v in history.items())
        self.metrics_logger.log_summary(f"{self.name} training finished after {self.config.num_epochs} epochs: {final}")
        return history

    def train_epoch(self, loader: DataLoader) -> Dict[str, float]:
        """Train for one epoch"""
        self.model.train()
        self.evaluator.reset()
        total_loss = 0.0
        count = 0

        pbar = tqdm(
            loader,
            desc=f"{self.name} epoch {self.current_epoch + 1}/{self.config.num_epochs}",
            disable=not self.config.show_progress,
            leave=False,
        )
        for x, y in pbar:
            loss, outputs = self.train_step(x, y)
            total_loss += loss * len(x)
            count += len(x)
            if self.is_classifier:
                self.evaluator.update(outputs, y.to(self.device))

            pbar.set_postfix({
                'loss': f"{loss:.4f}",
                'step': self.global_step,
            })

        metrics = {'loss': total_loss / max(count, 1)}
        metrics.update(self.evaluator.compute_metrics())
        return metrics

    def train_step(self, x: torch.Tensor, y: torch.Tensor) -> Tuple[float, torch.Tensor]:
        """Single optimisation step; returns the batch loss and detached outputs"""
        x = x.to(self.device)
        y = y.to(self.device)

        outputs = self.model(x)
        loss = self.criterion(outputs, y)
        if not torch.isfinite(loss):
            raise ValueError(f"Non-finite loss at epoch {self.current_epoch + 1}")

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        self.global_step += 1
        return loss.item(), outputs.detach()

    def validate(self, loader: DataLoader) -> Dict[str, float]:
        """Loss (and accuracy) over the held-out samples"""
        self.evaluator.reset()
        total_loss = 0.0
        count = 0

        with inference_scope(self.model) as model:
            for x, y in loader:
                x = x.to(self.device)
                y = y.to(self.device)
                outputs = model(x)
                total_loss += self.criterion(outputs, y).item() * len(x)
                count += len(x)
                if self.is_classifier:
                    self.evaluator.update(outputs, y)

        metrics = {'loss': total_loss / max(count, 1)}
        metrics.update(self.evaluator.compute_metrics())
        return metrics

    def _to_tensors(
        self,
        features: np.ndarray,
        labels: Optional[np.ndarray],
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        features = np.asarray(features, dtype=np.float32)
        if features.ndim < 2 or len(features) == 0:
            raise ValueError(f"Expected a non-empty batch of samples, got shape {features.shape}")
        if self.input_shape is not None and features.shape[1:] != self.input_shape:
            raise ValueError(
                f"Expected samples of shape {self.input_shape}, got {features.shape[1:]}"
            )
        if not np.isfinite(features).all():
            raise ValueError("Features contain NaN or infinite values")

        inputs = torch.from_numpy(features)
        if not self.is_classifier:
            return inputs, inputs.clone()

        if labels is None:
            raise ValueError(f"{self.name} model requires labels")
        labels = np.asarray(labels, dtype=np.float32)
        if labels.ndim != 2 or len(labels) != len(features):
            raise ValueError(
                f"Expected one label row per sample, got labels {labels.shape} "
                f"for features {features.shape}"
            )
        return inputs, torch.from_numpy(labels)

    def _split(self, inputs: torch.Tensor, targets: torch.Tensor):
        """Hold out the trailing validation_split fraction, like Keras"""
        n = len(inputs)
        split_at = int(math.floor(n * (1.0 - self.config.validation_split)))
        if split_at == 0:
            raise ValueError(
                f"{n} samples leave nothing to train on with "
                f"validation_split={self.config.validation_split}"
            )
        train_set = TensorDataset(inputs[:split_at], targets[:split_at])
        if split_at == n:
            return train_set, None
        return train_set, TensorDataset(inputs[split_at:], targets[split_at:])
