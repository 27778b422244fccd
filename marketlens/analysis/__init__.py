"""Market analysis: predictors, results and the analysis engine"""

from .results import (
    TrendDirection,
    TurningPointType,
    LiquidityRegime,
    TrendResult,
    TurningPointResult,
    RegimeResult,
    AnalysisReport,
)
from .summary import build_summary
from .predictors import TrendPredictor, TurningPointDetector, RegimePredictor
from .engine import MarketAnalysisEngine

__all__ = [
    "TrendDirection",
    "TurningPointType",
    "LiquidityRegime",
    "TrendResult",
    "TurningPointResult",
    "RegimeResult",
    "AnalysisReport",
    "build_summary",
    "TrendPredictor",
    "TurningPointDetector",
    "RegimePredictor",
    "MarketAnalysisEngine",
]
