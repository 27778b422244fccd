"""Model components for MarketLens"""

from .output_heads import ClassificationHead
from .trend_classifier import TrendClassifier
from .turning_point_autoencoder import TurningPointAutoencoder
from .regime_classifier import LiquidityRegimeClassifier
from .factory import (
    TREND_MODEL,
    ANOMALY_MODEL,
    REGIME_MODEL,
    MODEL_NAMES,
    MODEL_CLASSES,
    build_model,
    learning_rate_for,
)
from .serialization import model_to_document, model_from_document
from .registry import ModelEntry, ModelRegistry

__all__ = [
    "ClassificationHead",
    "TrendClassifier",
    "TurningPointAutoencoder",
    "LiquidityRegimeClassifier",
    "TREND_MODEL",
    "ANOMALY_MODEL",
    "REGIME_MODEL",
    "MODEL_NAMES",
    "MODEL_CLASSES",
    "build_model",
    "learning_rate_for",
    "model_to_document",
    "model_from_document",
    "ModelEntry",
    "ModelRegistry",
]
