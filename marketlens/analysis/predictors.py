"""
Predictors - one per served model.

Each predictor normalizes its input, runs the registry's current model
under inference_scope and maps the output to a typed result. A missing
model or any failure during inference yields the unknown/none result with
the error attached; predictors never raise.
"""

import logging
import threading
from typing import Optional, Sequence, Union

import numpy as np

from ..config import MarketLensConfig
from ..data.preprocessor import FeatureNormalizer
from ..data.records import MacroPoint, MarketBar
from ..data.synthetic_history import SyntheticHistoryGenerator
from ..exceptions import ModelUnavailableError
from ..model.factory import ANOMALY_MODEL, REGIME_MODEL, TREND_MODEL
from ..model.regime_classifier import LiquidityRegimeClassifier
from ..model.registry import ModelRegistry
from ..model.trend_classifier import TrendClassifier
from ..utils.market_utils import trailing_change
from ..utils.torch_utils import inference_scope
from .results import (
    LiquidityRegime,
    RegimeResult,
    TrendDirection,
    TrendResult,
    TurningPointResult,
    TurningPointType,
    class_probabilities,
)

logger = logging.getLogger(__name__)


class _Predictor:
    """Shared plumbing: registry lookup and config"""

    model_name = ''

    def __init__(
        self,
        registry: ModelRegistry,
        normalizer: Optional[FeatureNormalizer] = None,
        config: Optional[MarketLensConfig] = None,
    ):
        self.registry = registry
        self.config = config or registry.config
        self.normalizer = normalizer or FeatureNormalizer(self.config)

    def _probabilities(self, window: np.ndarray):
        """Run the classifier in the registry on one window"""
        entry = self.registry.require(self.model_name)
        with inference_scope(entry.model) as model:
            x = self.normalizer.to_tensor(window, self.config.device)
            probs = model.predict_proba(x)[0].cpu().numpy().astype(np.float64)
        if probs.shape != (len(model.CLASSES),) or not np.isfinite(probs).all():
            raise ValueError(f"{self.model_name} model produced invalid probabilities: {probs}")
        return entry, probs


class TrendPredictor(_Predictor):
    """Next-period direction from the latest OHLCV bars"""

    model_name = TREND_MODEL

    def predict(self, bars: Sequence[MarketBar]) -> TrendResult:
        try:
            window = self.normalizer.market_window(bars)
            entry, probs = self._probabilities(window)
        except ModelUnavailableError as e:
            logger.warning("Trend prediction unavailable: %s", e)
            return TrendResult.unknown(str(e))
        except Exception as e:
            logger.error("Error predicting trend: %s", e, exc_info=True)
            return TrendResult.unknown(str(e))

        index = int(np.argmax(probs))
        return TrendResult(
            direction=TrendDirection(TrendClassifier.CLASSES[index]),
            confidence=float(probs[index]),
            probabilities=class_probabilities(TrendClassifier.CLASSES, probs),
            model_trained=entry.is_trained,
        )


class TurningPointDetector(_Predictor):
    """
    Flags potential tops and bottoms from autoencoder reconstruction error.

    A window is anomalous when its score exceeds anomaly_threshold. The
    direction comes from the trailing price change over
    turning_point_lookback bars: above +turning_point_change_threshold is a
    top, below its negative a bottom, otherwise none.
    """

    model_name = ANOMALY_MODEL

    def detect(self, prices: Sequence[Union[float, MarketBar]]) -> TurningPointResult:
        config = self.config
        try:
            entry = self.registry.require(ANOMALY_MODEL)
            window = self.normalizer.price_window(prices)
            with inference_scope(entry.model) as model:
                x = self.normalizer.to_tensor(window, config.device)
                score = float(model.reconstruction_error(x)[0])

            if not np.isfinite(score):
                logger.error("Autoencoder produced a non-finite anomaly score")
                return TurningPointResult.none("non-finite anomaly score")

            is_anomalous = score > config.anomaly_threshold
            point_type = TurningPointType.NONE
            if is_anomalous:
                point_type = self.classify_direction(prices)
        except ModelUnavailableError as e:
            logger.warning("Turning point detection unavailable: %s", e)
            return TurningPointResult.none(str(e))
        except Exception as e:
            logger.error("Error detecting turning points: %s", e, exc_info=True)
            return TurningPointResult.none(str(e))

        return TurningPointResult(
            is_anomalous=is_anomalous,
            type=point_type,
            anomaly_score=score,
            confidence=min(score * config.anomaly_confidence_scale, 1.0),
            model_trained=entry.is_trained,
        )

    def classify_direction(self, prices: Sequence[Union[float, MarketBar]]) -> TurningPointType:
        """Top/bottom from the trailing change; none when too short or flat"""
        lookback = self.config.turning_point_lookback
        if prices is None:
            return TurningPointType.NONE
        closes = [p.close if isinstance(p, MarketBar) else p for p in prices]
        change = trailing_change(closes, lookback)
        if np.isnan(change):
            return TurningPointType.NONE
        if change > self.config.turning_point_change_threshold:
            return TurningPointType.TOP
        if change < -self.config.turning_point_change_threshold:
            return TurningPointType.BOTTOM
        return TurningPointType.NONE


class RegimePredictor(_Predictor):
    """
    Tightening/easing classification of the latest macro window.

    Short macro series are backfilled with synthetic points first; the
    number of synthetic points in the window is reported on the result.
    """

    model_name = REGIME_MODEL

    def __init__(
        self,
        registry: ModelRegistry,
        normalizer: Optional[FeatureNormalizer] = None,
        backfill: Optional[SyntheticHistoryGenerator] = None,
        config: Optional[MarketLensConfig] = None,
    ):
        super().__init__(registry, normalizer, config)
        self.backfill = backfill or SyntheticHistoryGenerator(seed=self.config.seed)
        # numpy Generators are not thread-safe
        self._backfill_lock = threading.Lock()

    def predict(self, points: Optional[Sequence[MacroPoint]]) -> RegimeResult:
        seq_len = self.config.regime_sequence_length
        synthetic_points = 0
        try:
            with self._backfill_lock:
                combined, _ = self.backfill.backfill(points, minimum=seq_len)
            synthetic_points = sum(1 for p in combined[-seq_len:] if p.is_synthetic)
            window = self.normalizer.macro_window(combined)
            entry, probs = self._probabilities(window)
        except ModelUnavailableError as e:
            logger.warning("Liquidity regime prediction unavailable: %s", e)
            return RegimeResult.unknown(str(e), synthetic_points)
        except Exception as e:
            logger.error("Error predicting liquidity regime: %s", e, exc_info=True)
            return RegimeResult.unknown(str(e), synthetic_points)

        index = int(np.argmax(probs))
        return RegimeResult(
            regime=LiquidityRegime(LiquidityRegimeClassifier.CLASSES[index]),
            confidence=float(probs[index]),
            probabilities=class_probabilities(LiquidityRegimeClassifier.CLASSES, probs),
            synthetic_points=synthetic_points,
            model_trained=entry.is_trained,
        )
