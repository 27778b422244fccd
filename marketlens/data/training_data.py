"""
Training data builders - labelled windows from raw historical series.

- Trend: sliding 30-bar windows labelled by the next bar's close change
  (> +threshold: up, < -threshold: down, otherwise stable), one-hot
- Anomaly: sliding 30-close windows scaled to [0, 1]; flat windows skipped
- Regime: sliding 60-day macro windows labelled tightening when the last
  fed funds rate in the window is above the first, easing otherwise

Windows are produced with the same FeatureNormalizer used at inference, so
training and serving see identical features.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Sequence, Tuple

import numpy as np

from ..config import MarketLensConfig
from .preprocessor import FeatureNormalizer
from .records import MacroPoint, MarketBar

logger = logging.getLogger(__name__)


TREND_CLASSES = ('up', 'down', 'stable')
REGIME_CLASSES = ('tightening', 'easing')


@dataclass
class TrainingData:
    """
    Samples for one model.

    The autoencoder takes features only; its target is its own input.
    """
    features: np.ndarray
    labels: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.features)


@dataclass
class TrainingBatch:
    """Per-model training data; None skips that model"""
    trend: Optional[TrainingData] = None
    anomaly: Optional[TrainingData] = None
    regime: Optional[TrainingData] = None

    def items(self) -> Iterator[Tuple[str, TrainingData]]:
        """(model name, data) for every model with at least one sample"""
        for name in ('trend', 'anomaly', 'regime'):
            data = getattr(self, name)
            if data is not None and len(data) > 0:
                yield name, data


def trend_label(last_close: float, next_close: float, threshold: float = 0.01) -> np.ndarray:
    """One-hot [up, down, stable] label for a move from last_close to next_close"""
    change = (next_close - last_close) / last_close if last_close else 0.0
    if change > threshold:
        index = 0
    elif change < -threshold:
        index = 1
    else:
        index = 2
    return np.eye(len(TREND_CLASSES), dtype=np.float32)[index]


def regime_label(start_rate: Optional[float], end_rate: Optional[float]) -> np.ndarray:
    """One-hot [tightening, easing] label from a fed funds rate move"""
    index = 0 if (end_rate or 0.0) > (start_rate or 0.0) else 1
    return np.eye(len(REGIME_CLASSES), dtype=np.float32)[index]


def build_trend_samples(
    bars_by_symbol: Dict[str, Sequence[MarketBar]],
    config: Optional[MarketLensConfig] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build trend windows and labels.

    Args:
        bars_by_symbol: Symbol -> bars, oldest first
        config: MarketLens configuration

    Returns:
        features: (N, trend_sequence_length, trend_num_features)
        labels: (N, 3) one-hot
    """
    config = config or MarketLensConfig()
    normalizer = FeatureNormalizer(config)
    seq_len = config.trend_sequence_length

    features, labels = [], []
    for symbol, bars in bars_by_symbol.items():
        bars = list(bars)
        for start in range(len(bars) - seq_len):
            window = bars[start:start + seq_len]
            next_bar = bars[start + seq_len]
            features.append(normalizer.market_window(window))
            labels.append(trend_label(window[-1].close, next_bar.close, config.trend_label_threshold))

    logger.info("Built %d trend samples from %d symbols", len(features), len(bars_by_symbol))
    return _stack(features, config.trend_window_shape), _stack(labels, (len(TREND_CLASSES),))


def build_anomaly_samples(
    bars_by_symbol: Dict[str, Sequence[MarketBar]],
    config: Optional[MarketLensConfig] = None,
) -> np.ndarray:
    """
    Build normalized closing-price windows for the autoencoder.

    Returns:
        features: (N, anomaly_input_dim)
    """
    config = config or MarketLensConfig()
    normalizer = FeatureNormalizer(config)
    length = config.anomaly_input_dim

    features = []
    for symbol, bars in bars_by_symbol.items():
        closes = [bar.close for bar in bars]
        for start in range(len(closes) - length + 1):
            window = closes[start:start + length]
            if max(window) == min(window):
                continue
            features.append(normalizer.price_window(window))

    logger.info("Built %d autoencoder samples", len(features))
    return _stack(features, (length,))


def build_regime_samples(
    points: Sequence[MacroPoint],
    config: Optional[MarketLensConfig] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build macro windows and tightening/easing labels.

    Returns:
        features: (N, regime_sequence_length, regime_num_features)
        labels: (N, 2) one-hot
    """
    config = config or MarketLensConfig()
    normalizer = FeatureNormalizer(config)
    seq_len = config.regime_sequence_length
    points = list(points)

    features, labels = [], []
    for start in range(len(points) - seq_len + 1):
        window = points[start:start + seq_len]
        features.append(normalizer.macro_window(window))
        labels.append(regime_label(window[0].fed_funds_rate, window[-1].fed_funds_rate))

    logger.info("Built %d regime samples", len(features))
    return _stack(features, config.regime_window_shape), _stack(labels, (len(REGIME_CLASSES),))


def _stack(items, shape: tuple) -> np.ndarray:
    if not items:
        return np.zeros((0,) + tuple(shape), dtype=np.float32)
    return np.stack(items).astype(np.float32)


def build_training_batch(
    bars_by_symbol: Optional[Dict[str, Sequence[MarketBar]]] = None,
    macro_points: Optional[Sequence[MacroPoint]] = None,
    config: Optional[MarketLensConfig] = None,
) -> TrainingBatch:
    """
    Build samples for every model the inputs can feed.

    Bars feed the trend classifier and the autoencoder; macro points feed
    the regime classifier. Models left without samples are None.
    """
    config = config or MarketLensConfig()
    batch = TrainingBatch()

    if bars_by_symbol:
        features, labels = build_trend_samples(bars_by_symbol, config)
        if len(features):
            batch.trend = TrainingData(features, labels)
        features = build_anomaly_samples(bars_by_symbol, config)
        if len(features):
            batch.anomaly = TrainingData(features)

    if macro_points:
        features, labels = build_regime_samples(macro_points, config)
        if len(features):
            batch.regime = TrainingData(features, labels)

    return batch
