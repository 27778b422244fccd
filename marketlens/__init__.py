"""
MarketLens: predictive market-analysis engine.

Turns raw price and macroeconomic time series into three forecasts:
- Trend direction (up/down/stable) from a 30-bar OHLCV window
- Turning points (tops/bottoms) from autoencoder reconstruction error
- Liquidity regime (tightening/easing) from a 60-day macro window

Plus the feature normalisation, synthetic macro backfill, training and
model-lifecycle machinery around them.
"""

__version__ = "0.1.0"
__author__ = "MarketLens Team"

from .config import MarketLensConfig
from .exceptions import (
    MarketLensError,
    ModelUnavailableError,
    TrainingError,
    ArtifactStoreError,
)
from .model.registry import ModelRegistry
from .analysis.engine import MarketAnalysisEngine
from .training.orchestrator import TrainingOrchestrator

__all__ = [
    "MarketLensConfig",
    "MarketLensError",
    "ModelUnavailableError",
    "TrainingError",
    "ArtifactStoreError",
    "ModelRegistry",
    "MarketAnalysisEngine",
    "TrainingOrchestrator",
]
