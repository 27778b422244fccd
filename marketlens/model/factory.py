"""
Model names and constructors.
"""

import torch.nn as nn
from typing import Dict, Type

from ..config import MarketLensConfig
from .regime_classifier import LiquidityRegimeClassifier
from .trend_classifier import TrendClassifier
from .turning_point_autoencoder import TurningPointAutoencoder


TREND_MODEL = 'trend'
ANOMALY_MODEL = 'anomaly'
REGIME_MODEL = 'regime'

MODEL_NAMES = (TREND_MODEL, ANOMALY_MODEL, REGIME_MODEL)

MODEL_CLASSES: Dict[str, Type[nn.Module]] = {
    'TrendClassifier': TrendClassifier,
    'TurningPointAutoencoder': TurningPointAutoencoder,
    'LiquidityRegimeClassifier': LiquidityRegimeClassifier,
}


def build_model(name: str, config: MarketLensConfig) -> nn.Module:
    """Construct a fresh, untrained model for name"""
    if name == TREND_MODEL:
        return TrendClassifier(
            sequence_length=config.trend_sequence_length,
            num_features=config.trend_num_features,
            hidden_dims=config.trend_hidden_dims,
            dropout=config.trend_dropout,
        )
    if name == ANOMALY_MODEL:
        return TurningPointAutoencoder(
            input_dim=config.anomaly_input_dim,
            encoder_dims=config.anomaly_encoder_dims,
        )
    if name == REGIME_MODEL:
        return LiquidityRegimeClassifier(
            sequence_length=config.regime_sequence_length,
            num_features=config.regime_num_features,
            hidden_dims=config.regime_hidden_dims,
            dropouts=config.regime_dropouts,
        )
    raise ValueError(f"Unknown model name: {name}")


def learning_rate_for(name: str, config: MarketLensConfig) -> float:
    return {
        TREND_MODEL: config.trend_learning_rate,
        ANOMALY_MODEL: config.anomaly_learning_rate,
        REGIME_MODEL: config.regime_learning_rate,
    }[name]
