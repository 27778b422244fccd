"""
Training metrics.

Accumulates per-batch predictions over an epoch and reports argmax
accuracy for the classifiers.
"""

import torch
from typing import Dict


class TrainingEvaluator:
    """
    Running classification accuracy.

    Targets may be class indices (batch,) or one-hot / soft labels
    (batch, num_classes); the argmax is compared either way.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Reset accumulated statistics"""
        self.correct = 0
        self.total = 0

    def update(self, logits: torch.Tensor, targets: torch.Tensor) -> None:
        """
        Update with a batch of predictions.

        Args:
            logits: Model outputs (batch, num_classes)
            targets: Class indices or one-hot labels
        """
        predicted = logits.argmax(dim=-1)
        if targets.dim() > 1:
            targets = targets.argmax(dim=-1)
        self.correct += int((predicted == targets).sum().item())
        self.total += int(targets.numel())

    def compute_metrics(self) -> Dict[str, float]:
        """
        Returns:
            metrics: {'accuracy': fraction correct}, empty before any update
        """
        if self.total == 0:
            return {}
        return {'accuracy': self.correct / self.total}
