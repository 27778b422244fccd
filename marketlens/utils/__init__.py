"""Utility functions for MarketLens"""

from .logging_utils import setup_logger, MetricsLogger
from .market_utils import (
    linear_regression_slope,
    rolling_trendline_slopes,
    price_changes,
    trailing_change,
    signal_strength,
)
from .torch_utils import inference_scope, set_seed

__all__ = [
    "setup_logger",
    "MetricsLogger",
    "linear_regression_slope",
    "rolling_trendline_slopes",
    "price_changes",
    "trailing_change",
    "signal_strength",
    "inference_scope",
    "set_seed",
]
