"""
Turning-Point Autoencoder - anomaly scoring of recent price shape.

A dense autoencoder squeezes a 30-step window of [0, 1]-scaled closing
prices through a 2-unit bottleneck and reconstructs it. Windows unlike the
ones seen in training reconstruct poorly; the mean squared reconstruction
error is the anomaly score used to flag potential tops and bottoms.
"""

import torch
import torch.nn as nn
from typing import Any, Dict, List, Optional


class TurningPointAutoencoder(nn.Module):
    """
    Mirrored dense autoencoder with sigmoid output.

    Args:
        input_dim: Window length (e.g. 30)
        encoder_dims: Strictly narrowing encoder widths (e.g. [16, 8, 4, 2]);
            the decoder mirrors them back to input_dim
    """

    def __init__(
        self,
        input_dim: int = 30,
        encoder_dims: Optional[List[int]] = None,
    ):
        super().__init__()

        self.input_dim = input_dim
        self.encoder_dims = list(encoder_dims or [16, 8, 4, 2])

        encoder = []
        prev = input_dim
        for dim in self.encoder_dims:
            encoder.extend([nn.Linear(prev, dim), nn.ReLU()])
            prev = dim
        self.encoder = nn.Sequential(*encoder)

        decoder = []
        for dim in reversed(self.encoder_dims[:-1]):
            decoder.extend([nn.Linear(prev, dim), nn.ReLU()])
            prev = dim
        decoder.extend([nn.Linear(prev, input_dim), nn.Sigmoid()])
        self.decoder = nn.Sequential(*decoder)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: Normalized price windows (batch, input_dim)

        Returns:
            reconstruction: (batch, input_dim) in [0, 1]
        """
        return self.decoder(self.encoder(x))

    def reconstruction_error(self, x: torch.Tensor) -> torch.Tensor:
        """Mean squared reconstruction error per window (batch,)"""
        reconstruction = self(x)
        return ((x - reconstruction) ** 2).mean(dim=-1)

    def get_config(self) -> Dict[str, Any]:
        return {
            'input_dim': self.input_dim,
            'encoder_dims': self.encoder_dims,
        }
