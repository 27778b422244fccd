"""Data pipeline for MarketLens"""

from .records import (
    MACRO_FIELDS,
    MarketBar,
    MacroPoint,
    bars_from_records,
    macro_from_records,
    bars_from_frame,
    macro_from_frame,
    bars_to_frame,
    bars_from_closes,
)
from .preprocessor import FeatureNormalizer, minmax_scale
from .synthetic_history import SyntheticHistoryGenerator
from .training_data import (
    TREND_CLASSES,
    REGIME_CLASSES,
    TrainingData,
    TrainingBatch,
    build_trend_samples,
    build_anomaly_samples,
    build_regime_samples,
    build_training_batch,
)

__all__ = [
    "MACRO_FIELDS",
    "MarketBar",
    "MacroPoint",
    "bars_from_records",
    "macro_from_records",
    "bars_from_frame",
    "macro_from_frame",
    "bars_to_frame",
    "bars_from_closes",
    "FeatureNormalizer",
    "minmax_scale",
    "SyntheticHistoryGenerator",
    "TREND_CLASSES",
    "REGIME_CLASSES",
    "build_trend_samples",
    "build_anomaly_samples",
    "build_regime_samples",
    "TrainingData",
    "TrainingBatch",
    "build_training_batch",
]
