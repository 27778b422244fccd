"""
Liquidity Regime Classifier - monetary conditions from macro history.

Classifies the liquidity regime as tightening or easing from a 60-day
window of ten macro indicators (rates, yields, VIX, dollar index, credit
spread, reserves, money supply, Fed balance sheet, repo rate).

The window is flattened and passed through narrowing dense layers; a
flattened feed-forward network has the same input/output contract as an
attention model over the sequence.
"""

import torch
import torch.nn as nn
from typing import Any, Dict, List, Optional

from .output_heads import ClassificationHead


class LiquidityRegimeClassifier(nn.Module):
    """
    Feed-forward regime classifier over a flattened macro window.

    Regimes:
    0: Tightening (rising policy rates, shrinking liquidity)
    1: Easing (falling policy rates, expanding liquidity)

    Args:
        sequence_length: Macro observations per window
        num_features: Indicators per observation
        hidden_dims: Dense widths (e.g. [128, 64, 32])
        dropouts: Dropout after each dense layer
        num_regimes: Number of regime classes
    """

    CLASSES = ('tightening', 'easing')

    def __init__(
        self,
        sequence_length: int = 60,
        num_features: int = 10,
        hidden_dims: Optional[List[int]] = None,
        dropouts: Optional[List[float]] = None,
        num_regimes: int = 2,
    ):
        super().__init__()

        self.sequence_length = sequence_length
        self.num_features = num_features
        self.hidden_dims = list(hidden_dims or [128, 64, 32])
        self.dropouts = list(dropouts or [0.3, 0.3, 0.2])
        self.num_regimes = num_regimes

        # Regime feature extractor
        layers: List[nn.Module] = [nn.Flatten()]
        prev = sequence_length * num_features
        for dim, rate in zip(self.hidden_dims, self.dropouts):
            layers.extend([nn.Linear(prev, dim), nn.ReLU(), nn.Dropout(rate)])
            prev = dim
        self.feature_extractor = nn.Sequential(*layers)

        # Regime classifier head
        self.classifier = ClassificationHead(prev, num_regimes)

    def forward(self, macro_window: torch.Tensor) -> torch.Tensor:
        """
        Classify liquidity regime.

        Args:
            macro_window: Normalized macro windows (batch, sequence_length, num_features)

        Returns:
            regime_logits: Logits for each regime class (batch, num_regimes)
        """
        regime_features = self.feature_extractor(macro_window)
        return self.classifier(regime_features)

    def predict_proba(self, macro_window: torch.Tensor) -> torch.Tensor:
        """Regime probabilities (batch, num_regimes)"""
        return ClassificationHead.get_predictions(self(macro_window))['probs']

    def get_config(self) -> Dict[str, Any]:
        return {
            'sequence_length': self.sequence_length,
            'num_features': self.num_features,
            'hidden_dims': self.hidden_dims,
            'dropouts': self.dropouts,
            'num_regimes': self.num_regimes,
        }
