"""
Trend Classifier - next-period direction from a window of OHLCV bars.

Two stacked LSTM layers read the 30-bar window of relative OHLC moves and
log volume; the last hidden state feeds a 3-way classifier over
[up, down, stable].
"""

import torch
import torch.nn as nn
from typing import Any, Dict, List, Optional

from .output_heads import ClassificationHead


class TrendClassifier(nn.Module):
    """
    Stacked LSTM trend classifier.

    Args:
        sequence_length: Bars per window
        num_features: Features per bar
        hidden_dims: Width of each LSTM layer (e.g. [100, 50])
        dropout: Dropout after each LSTM layer
        num_classes: Output classes ([up, down, stable])
    """

    CLASSES = ('up', 'down', 'stable')

    def __init__(
        self,
        sequence_length: int = 30,
        num_features: int = 5,
        hidden_dims: Optional[List[int]] = None,
        dropout: float = 0.2,
        num_classes: int = 3,
    ):
        super().__init__()

        self.sequence_length = sequence_length
        self.num_features = num_features
        self.hidden_dims = list(hidden_dims or [100, 50])
        self.dropout_rate = dropout
        self.num_classes = num_classes

        input_dims = [num_features] + self.hidden_dims[:-1]
        self.lstm_layers = nn.ModuleList([
            nn.LSTM(input_size=in_dim, hidden_size=out_dim, batch_first=True)
            for in_dim, out_dim in zip(input_dims, self.hidden_dims)
        ])
        self.dropout = nn.Dropout(dropout)

        self.head = ClassificationHead(self.hidden_dims[-1], num_classes)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: Feature windows (batch, sequence_length, num_features)

        Returns:
            logits: (batch, num_classes)
        """
        for lstm in self.lstm_layers:
            x, _ = lstm(x)
            x = self.dropout(x)

        # Last timestep summarises the window
        return self.head(x[:, -1, :])

    def predict_proba(self, x: torch.Tensor) -> torch.Tensor:
        """Class probabilities (batch, num_classes)"""
        return ClassificationHead.get_predictions(self(x))['probs']

    def get_config(self) -> Dict[str, Any]:
        return {
            'sequence_length': self.sequence_length,
            'num_features': self.num_features,
            'hidden_dims': self.hidden_dims,
            'dropout': self.dropout_rate,
            'num_classes': self.num_classes,
        }
