"""
Market Analysis Engine - the three predictors behind one entry point.

analyze() runs trend, turning-point and regime inference as independent
concurrent tasks, waits for all three and assembles an AnalysisReport. A
failed predictor contributes its unknown/none result; the report is always
complete.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Union

from ..config import MarketLensConfig
from ..data.preprocessor import FeatureNormalizer
from ..data.records import MacroPoint, MarketBar
from ..data.synthetic_history import SyntheticHistoryGenerator
from ..model.registry import ModelRegistry
from ..storage.artifact_store import ArtifactStore
from .predictors import RegimePredictor, TrendPredictor, TurningPointDetector
from .results import AnalysisReport, RegimeResult, TrendResult, TurningPointResult
from .summary import build_summary

logger = logging.getLogger(__name__)


class MarketAnalysisEngine:
    """
    Predictive market analysis over a model registry.

    Args:
        registry: Registry serving the trend, anomaly and regime models
        config: MarketLens configuration (defaults to the registry's)
        normalizer: Feature normalizer shared by the predictors
        backfill: Synthetic macro history source for short macro series
    """

    def __init__(
        self,
        registry: ModelRegistry,
        config: Optional[MarketLensConfig] = None,
        normalizer: Optional[FeatureNormalizer] = None,
        backfill: Optional[SyntheticHistoryGenerator] = None,
    ):
        self.registry = registry
        self.config = config or registry.config
        self.normalizer = normalizer or FeatureNormalizer(self.config)

        self.trend_predictor = TrendPredictor(registry, self.normalizer, self.config)
        self.turning_point_detector = TurningPointDetector(registry, self.normalizer, self.config)
        self.regime_predictor = RegimePredictor(registry, self.normalizer, backfill, self.config)

    @classmethod
    def from_store(
        cls,
        store: ArtifactStore,
        config: Optional[MarketLensConfig] = None,
        **kwargs,
    ) -> 'MarketAnalysisEngine':
        """Build a registry over store, load every model and wrap it"""
        registry = ModelRegistry(store, config)
        registry.load_all()
        return cls(registry, config, **kwargs)

    def predict_trend(self, bars: Sequence[MarketBar]) -> TrendResult:
        return self.trend_predictor.predict(bars)

    def detect_turning_points(self, prices: Sequence[Union[float, MarketBar]]) -> TurningPointResult:
        return self.turning_point_detector.detect(prices)

    def predict_liquidity_regime(self, points: Optional[Sequence[MacroPoint]]) -> RegimeResult:
        return self.regime_predictor.predict(points)

    def analyze(
        self,
        market_bars: Sequence[MarketBar],
        macro_points: Optional[Sequence[MacroPoint]],
        price_bars: Optional[Sequence[Union[float, MarketBar]]] = None,
    ) -> AnalysisReport:
        """
        Run all three predictors concurrently and summarize.

        Args:
            market_bars: OHLCV bars for the trend classifier, oldest first
            macro_points: Macro series, oldest first (any length)
            price_bars: Bars or closes for turning-point detection; defaults
                to market_bars

        Returns:
            report: AnalysisReport with all three results and the summary
        """
        if price_bars is None:
            price_bars = market_bars

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            trend_future = executor.submit(self.predict_trend, market_bars)
            turning_future = executor.submit(self.detect_turning_points, price_bars)
            regime_future = executor.submit(self.predict_liquidity_regime, macro_points)

            trend = trend_future.result()
            turning_points = turning_future.result()
            regime = regime_future.result()

        summary = build_summary(trend, turning_points, regime, self.config.warning_confidence)
        logger.info(
            "Analysis complete: trend=%s, turning point=%s, regime=%s",
            trend.direction.value, turning_points.type.value, regime.regime.value,
        )
        return AnalysisReport(trend, turning_points, regime, summary)
