"""
Prediction result types.

Every predictor returns one of the frozen result variants below. Failures are
represented by explicit sentinel variants (unknown trend/regime, no turning
point) with confidence 0 and the error message attached, so callers never
handle None or half-filled results.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Sequence


class TrendDirection(str, Enum):
    UP = 'up'
    DOWN = 'down'
    STABLE = 'stable'
    UNKNOWN = 'unknown'


class TurningPointType(str, Enum):
    TOP = 'top'
    BOTTOM = 'bottom'
    NONE = 'none'


class LiquidityRegime(str, Enum):
    TIGHTENING = 'tightening'
    EASING = 'easing'
    UNKNOWN = 'unknown'


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def finite_probability(value: Any) -> float:
    """Coerce to a finite float in [0, 1]; NaN, inf and junk become 0"""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 1.0)


def finite_score(value: Any) -> float:
    """Coerce to a finite float >= 0; NaN, inf and junk become 0"""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(value, 0.0)


def class_probabilities(classes: Sequence[str], values: Sequence[float]) -> Dict[str, float]:
    return {name: finite_probability(v) for name, v in zip(classes, values)}


@dataclass(frozen=True)
class TrendResult:
    """Trend classifier output"""
    direction: TrendDirection
    confidence: float = 0.0
    probabilities: Dict[str, float] = field(default_factory=dict)
    model_trained: bool = False
    error: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    def __post_init__(self):
        object.__setattr__(self, 'direction', TrendDirection(self.direction))
        object.__setattr__(self, 'confidence', finite_probability(self.confidence))
        object.__setattr__(
            self, 'probabilities',
            {k: finite_probability(v) for k, v in self.probabilities.items()},
        )

    @classmethod
    def unknown(cls, error: Optional[str] = None) -> 'TrendResult':
        return cls(TrendDirection.UNKNOWN, 0.0, {}, error=error)

    @property
    def is_unknown(self) -> bool:
        return self.direction is TrendDirection.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trendDirection': self.direction.value,
            'confidence': self.confidence,
            'probabilities': dict(self.probabilities),
            'modelTrained': self.model_trained,
            'error': self.error,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class TurningPointResult:
    """Autoencoder turning-point output"""
    is_anomalous: bool
    type: TurningPointType = TurningPointType.NONE
    anomaly_score: float = 0.0
    confidence: float = 0.0
    model_trained: bool = False
    error: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    def __post_init__(self):
        object.__setattr__(self, 'is_anomalous', bool(self.is_anomalous))
        object.__setattr__(self, 'type', TurningPointType(self.type))
        object.__setattr__(self, 'anomaly_score', finite_score(self.anomaly_score))
        object.__setattr__(self, 'confidence', finite_probability(self.confidence))

    @classmethod
    def none(cls, error: Optional[str] = None) -> 'TurningPointResult':
        return cls(False, TurningPointType.NONE, 0.0, 0.0, error=error)

    @property
    def detected(self) -> bool:
        """An anomalous window with a top or bottom direction"""
        return self.is_anomalous and self.type is not TurningPointType.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isAnomalous': self.is_anomalous,
            'turningPointType': self.type.value,
            'anomalyScore': self.anomaly_score,
            'confidence': self.confidence,
            'modelTrained': self.model_trained,
            'error': self.error,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class RegimeResult:
    """
    Liquidity regime classifier output.

    synthetic_points counts backfilled macro points in the input window;
    any value above 0 marks the result as approximate.
    """
    regime: LiquidityRegime
    confidence: float = 0.0
    probabilities: Dict[str, float] = field(default_factory=dict)
    synthetic_points: int = 0
    model_trained: bool = False
    error: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    def __post_init__(self):
        object.__setattr__(self, 'regime', LiquidityRegime(self.regime))
        object.__setattr__(self, 'confidence', finite_probability(self.confidence))
        object.__setattr__(
            self, 'probabilities',
            {k: finite_probability(v) for k, v in self.probabilities.items()},
        )
        object.__setattr__(self, 'synthetic_points', max(int(self.synthetic_points), 0))

    @classmethod
    def unknown(cls, error: Optional[str] = None, synthetic_points: int = 0) -> 'RegimeResult':
        return cls(LiquidityRegime.UNKNOWN, 0.0, {}, synthetic_points=synthetic_points, error=error)

    @property
    def is_unknown(self) -> bool:
        return self.regime is LiquidityRegime.UNKNOWN

    @property
    def is_approximate(self) -> bool:
        return self.synthetic_points > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'liquidityRegime': self.regime.value,
            'confidence': self.confidence,
            'probabilities': dict(self.probabilities),
            'syntheticPoints': self.synthetic_points,
            'modelTrained': self.model_trained,
            'error': self.error,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class AnalysisReport:
    """Combined output of the three predictors plus the rule-based summary"""
    trend: TrendResult
    turning_points: TurningPointResult
    regime: RegimeResult
    summary: str
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'trend': self.trend.to_dict(),
            'turningPoints': self.turning_points.to_dict(),
            'regime': self.regime.to_dict(),
            'summary': self.summary,
        }
