"""
Feature Normalizer - turns raw bars and macro rows into bounded model inputs.

Handles:
- OHLC relative to the previous close, log volume (trend window)
- Min-max scaling of closing prices to [0, 1] (autoencoder window)
- Per-column min-max scaling of macro indicators (regime window)

Bad upstream data never raises: every method falls back to a well-defined
default window and logs the condition.
"""

import logging
import math
from typing import Optional, Sequence, Union

import numpy as np
import torch

from ..config import MarketLensConfig
from .records import MacroPoint, MarketBar

logger = logging.getLogger(__name__)


class FeatureNormalizer:
    """
    Builds the fixed-shape feature windows consumed by the three models.

    All windows are taken from the most recent end of the input, which is
    expected oldest-to-newest.

    Args:
        config: MarketLens configuration (window shapes)
    """

    def __init__(self, config: Optional[MarketLensConfig] = None):
        self.config = config or MarketLensConfig()

        self.trend_shape = self.config.trend_window_shape
        self.price_length = self.config.anomaly_input_dim
        self.regime_shape = self.config.regime_window_shape

    # ----- defaults -----

    def default_market_window(self) -> np.ndarray:
        return np.zeros(self.trend_shape, dtype=np.float32)

    def default_price_window(self) -> np.ndarray:
        return np.full(self.price_length, 0.5, dtype=np.float32)

    def default_macro_window(self) -> np.ndarray:
        return np.full(self.regime_shape, 0.5, dtype=np.float32)

    # ----- trend window -----

    def market_window(self, bars: Sequence[MarketBar]) -> np.ndarray:
        """
        Normalize the latest bars for the trend classifier.

        Each row is [open/prev - 1, high/prev - 1, low/prev - 1,
        close/prev - 1, ln(max(volume, 1))], where prev is the bar's
        prev_close (its open when prev_close is missing).

        Args:
            bars: Market bars, oldest first, at least trend_sequence_length

        Returns:
            window: (trend_sequence_length, 5) float32 array; all zeros when
                the input is too short or malformed
        """
        seq_len = self.trend_shape[0]
        if bars is None or len(bars) < seq_len:
            logger.warning(
                "Insufficient market data for trend window: %d bars, need %d",
                0 if bars is None else len(bars), seq_len,
            )
            return self.default_market_window()

        try:
            rows = []
            for bar in list(bars)[-seq_len:]:
                reference = bar.reference_price
                rows.append([
                    bar.open / reference - 1,
                    bar.high / reference - 1,
                    bar.low / reference - 1,
                    bar.close / reference - 1,
                    math.log(max(bar.volume or 0.0, 1.0)),
                ])
            window = np.asarray(rows, dtype=np.float32)
        except (AttributeError, TypeError, ValueError, ZeroDivisionError) as e:
            logger.warning("Malformed market bars, using default trend window: %s", e)
            return self.default_market_window()

        if not np.isfinite(window).all():
            logger.warning("Non-finite values in trend window, using default")
            return self.default_market_window()

        return window

    # ----- autoencoder window -----

    def price_window(self, prices: Sequence[Union[float, MarketBar]]) -> np.ndarray:
        """
        Min-max scale the latest closing prices to [0, 1].

        Args:
            prices: Closing prices or bars (their close is used), oldest first

        Returns:
            window: (anomaly_input_dim,) float32 array; constant 0.5 when all
                prices are equal or the input is too short or malformed
        """
        length = self.price_length
        if prices is None or len(prices) < length:
            logger.warning(
                "Insufficient price data for autoencoder window: %d prices, need %d",
                0 if prices is None else len(prices), length,
            )
            return self.default_price_window()

        try:
            closes = np.asarray(
                [p.close if isinstance(p, MarketBar) else p for p in list(prices)[-length:]],
                dtype=np.float64,
            )
        except (TypeError, ValueError) as e:
            logger.warning("Malformed price data, using default price window: %s", e)
            return self.default_price_window()

        if not np.isfinite(closes).all():
            logger.warning("Non-finite prices, using default price window")
            return self.default_price_window()

        return minmax_scale(closes, constant=0.5).astype(np.float32)

    # ----- regime window -----

    def macro_window(self, points: Sequence[MacroPoint]) -> np.ndarray:
        """
        Min-max normalize each macro indicator column over the latest window.

        Absent indicators count as 0. A column with zero range is left
        unscaled (it is already constant).

        Args:
            points: Macro points, oldest first, at least regime_sequence_length
                (shorter series are backfilled upstream)

        Returns:
            window: (regime_sequence_length, regime_num_features) float32 array;
                constant 0.5 when the input is too short or malformed
        """
        seq_len, num_features = self.regime_shape
        if points is None or len(points) < seq_len:
            logger.warning(
                "Insufficient macro data for regime window: %d points, need %d",
                0 if points is None else len(points), seq_len,
            )
            return self.default_macro_window()

        try:
            raw = np.asarray([p.as_vector() for p in list(points)[-seq_len:]], dtype=np.float64)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Malformed macro data, using default regime window: %s", e)
            return self.default_macro_window()

        if raw.shape != (seq_len, num_features) or not np.isfinite(raw).all():
            logger.warning("Unexpected macro window shape %s, using default", raw.shape)
            return self.default_macro_window()

        col_min = raw.min(axis=0)
        col_range = raw.max(axis=0) - col_min
        scaled = raw.copy()
        varying = col_range > 0
        scaled[:, varying] = (raw[:, varying] - col_min[varying]) / col_range[varying]

        return scaled.astype(np.float32)

    @staticmethod
    def to_tensor(window: np.ndarray, device: str = 'cpu') -> torch.Tensor:
        """Add the batch axis: (...) -> (1, ...) float32 tensor"""
        return torch.as_tensor(window, dtype=torch.float32, device=device).unsqueeze(0)


def minmax_scale(values: np.ndarray, constant: float = 0.5) -> np.ndarray:
    """
    Scale a 1-D array to [0, 1].

    Returns a constant array when max equals min, so the range is never
    divided by zero.
    """
    values = np.asarray(values, dtype=np.float64)
    low, high = values.min(), values.max()
    span = high - low
    if span == 0:
        return np.full(values.shape, constant)
    return (values - low) / span
