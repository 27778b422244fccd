"""
Output Heads - class logits and their conversion to predictions.

Both classifiers (trend and liquidity regime) end in a linear layer over
their backbone features; softmax turns the logits into class probabilities
and argmax picks the predicted class.
"""

import torch
import torch.nn as nn
import torch.nn.functional as F
from typing import Dict


class ClassificationHead(nn.Module):
    """
    Linear classification head.

    Args:
        input_dim: Dimension of input features from backbone
        num_classes: Number of output classes
    """

    def __init__(self, input_dim: int, num_classes: int):
        super().__init__()

        self.input_dim = input_dim
        self.num_classes = num_classes

        self.linear = nn.Linear(input_dim, num_classes)

    def forward(self, features: torch.Tensor) -> torch.Tensor:
        """
        Args:
            features: Backbone features (batch, input_dim)

        Returns:
            logits: (batch, num_classes)
        """
        return self.linear(features)

    @staticmethod
    def get_predictions(logits: torch.Tensor) -> Dict[str, torch.Tensor]:
        """
        Convert raw logits to predictions.

        Args:
            logits: Raw outputs from forward pass (batch, num_classes)

        Returns:
            predictions: Dictionary with:
                - probs: Softmax probabilities (batch, num_classes)
                - class: Predicted class index (batch,)
                - confidence: Probability of the predicted class (batch,)
        """
        probs = F.softmax(logits, dim=-1)
        confidence, predicted = probs.max(dim=-1)

        return {
            'probs': probs,
            'class': predicted,
            'confidence': confidence,
        }
