"""
Tests for predictors, the analysis engine and the summary rules.
"""

import dataclasses
import math
from datetime import date, timedelta

import numpy as np
import torch
import torch.nn as nn
import pytest

from marketlens.analysis import (
    AnalysisReport,
    LiquidityRegime,
    MarketAnalysisEngine,
    RegimeResult,
    TrendDirection,
    TrendResult,
    TurningPointResult,
    TurningPointType,
    build_summary,
)
from marketlens.config import MarketLensConfig
from marketlens.data import MacroPoint, SyntheticHistoryGenerator, TrainingData, bars_from_closes
from marketlens.data.preprocessor import FeatureNormalizer
from marketlens.model import ANOMALY_MODEL, REGIME_MODEL, TREND_MODEL, ModelRegistry
from marketlens.storage import InMemoryArtifactStore
from marketlens.training import TrainingOrchestrator


class FixedErrorAutoencoder(nn.Module):
    """Stand-in autoencoder with a fixed reconstruction error"""

    def __init__(self, error):
        super().__init__()
        self.error = error

    def reconstruction_error(self, x):
        return torch.full((x.shape[0],), self.error)


class BrokenModel(nn.Module):
    """Model whose inference always fails"""

    def forward(self, x):
        raise RuntimeError("weights corrupted")

    def predict_proba(self, x):
        return self(x)

    def reconstruction_error(self, x):
        return self(x)


def _engine(config=None, seed=0):
    config = config or MarketLensConfig(show_progress=False)
    registry = ModelRegistry(InMemoryArtifactStore(), config)
    registry.load_all()
    return MarketAnalysisEngine(registry, config, backfill=SyntheticHistoryGenerator(seed=seed))


def _uptrend(days=90, daily=0.005, volume=1.0):
    return bars_from_closes(100 * (1 + daily) ** np.arange(days), volume=volume)


def _rising_macro(n=10, start=date(2024, 1, 1)):
    return [
        MacroPoint(date=start + timedelta(days=i), fed_funds_rate=4.0 + 0.25 * i,
                   treasury_yield_10y=4.0, vix=18.0 + i)
        for i in range(n)
    ]


def _full_macro(n=60):
    return [
        MacroPoint(date=date(2024, 1, 1) + timedelta(days=i),
                   **{'fed_funds_rate': 1.0 + 0.01 * i, 'vix': 20.0 - 0.05 * i, 'repo_rate': 0.2})
        for i in range(n)
    ]


# ----- results -----

def test_results_coerce_non_finite_values():
    """Test NaN and inf never reach the downstream document"""
    trend = TrendResult('up', float('nan'), {'up': float('inf'), 'down': -1.0})
    turning = TurningPointResult(True, 'top', float('inf'), 2.0)
    regime = RegimeResult('easing', float('-inf'), {'easing': 0.4}, synthetic_points=-3)

    assert trend.confidence == 0.0
    assert trend.probabilities == {'up': 0.0, 'down': 0.0}
    assert turning.anomaly_score == 0.0
    assert turning.confidence == 1.0
    assert regime.confidence == 0.0
    assert regime.synthetic_points == 0


def test_result_documents():
    """Test camelCase downstream documents"""
    report = AnalysisReport(
        trend=TrendResult.unknown("no model"),
        turning_points=TurningPointResult.none(),
        regime=RegimeResult('tightening', 0.8, {'tightening': 0.8, 'easing': 0.2}, synthetic_points=5),
        summary='text',
    )
    document = report.to_dict()

    assert set(document) == {'timestamp', 'trend', 'turningPoints', 'regime', 'summary'}
    assert document['trend']['trendDirection'] == 'unknown'
    assert document['trend']['confidence'] == 0.0
    assert document['trend']['error'] == 'no model'
    assert document['turningPoints']['turningPointType'] == 'none'
    assert document['turningPoints']['isAnomalous'] is False
    assert document['regime']['liquidityRegime'] == 'tightening'
    assert document['regime']['syntheticPoints'] == 5


# ----- summary -----

@pytest.mark.parametrize('trend, regime, expected', [
    ('up', 'easing', 'Bullish - Uptrend with supportive liquidity conditions'),
    ('down', 'tightening', 'Bearish - Downtrend with tightening liquidity conditions'),
    ('up', 'tightening', 'Cautiously Bullish - Uptrend may face headwinds from tightening liquidity'),
    ('down', 'easing', 'Cautiously Bearish - Downtrend may find support from easing liquidity'),
    ('stable', 'easing', 'Neutral - Mixed signals suggest range-bound conditions'),
    ('up', 'unknown', 'Neutral - Mixed signals suggest range-bound conditions'),
    ('unknown', 'unknown', 'Neutral - Mixed signals suggest range-bound conditions'),
])
def test_summary_outlook_rules(trend, regime, expected):
    """Test the outlook rule table"""
    summary = build_summary(
        TrendResult(trend, 0.6),
        TurningPointResult.none(),
        RegimeResult(regime, 0.55),
    )

    assert summary.startswith('Market Analysis Summary:\n\n')
    assert f"Trend Direction: {trend} (60% confidence)" in summary
    assert f"Liquidity Regime: {regime} (55% confidence)" in summary
    assert 'No significant turning points detected' in summary
    assert summary.endswith('Overall Market Outlook: ' + expected)


def test_summary_turning_point_warning():
    """Test the warning line for confident turning points only"""
    trend = TrendResult('up', 0.9)
    regime = RegimeResult('easing', 0.9)

    confident = build_summary(trend, TurningPointResult(True, 'top', 0.2, 0.75), regime)
    assert 'Potential top detected (75% confidence)' in confident
    assert confident.endswith('\n\nWARNING: High probability of market top forming!')

    mild = build_summary(trend, TurningPointResult(True, 'bottom', 0.1, 0.7), regime)
    assert 'Potential bottom detected (70% confidence)' in mild
    assert 'WARNING' not in mild

    undirected = build_summary(trend, TurningPointResult(True, 'none', 0.5, 1.0), regime)
    assert 'WARNING' not in undirected


def test_summary_marks_approximate_regime():
    """Test backfilled regimes are flagged in the summary"""
    summary = build_summary(
        TrendResult('up', 0.5),
        TurningPointResult.none(),
        RegimeResult('easing', 0.5, synthetic_points=50),
    )

    assert '50 synthetic points' in summary


# ----- predictors -----

def test_trend_probabilities_sum_to_one():
    """Test trend confidence is the max class probability"""
    engine = _engine()
    result = engine.predict_trend(_uptrend())

    assert result.direction is not TrendDirection.UNKNOWN
    assert sum(result.probabilities.values()) == pytest.approx(1.0, abs=1e-6)
    assert result.confidence == pytest.approx(max(result.probabilities.values()))
    assert set(result.probabilities) == {'up', 'down', 'stable'}
    assert not result.model_trained


def test_short_input_uses_default_window():
    """Test fewer than 30 bars still yields a prediction"""
    result = _engine().predict_trend(_uptrend(days=5))

    assert result.direction is not TrendDirection.UNKNOWN
    assert result.error is None


def test_inference_is_idempotent():
    """Test repeated inference on the same input gives identical results"""
    engine = _engine()
    bars = _uptrend()
    macro = _full_macro()

    first = (engine.predict_trend(bars), engine.detect_turning_points(bars),
             engine.predict_liquidity_regime(macro))
    second = (engine.predict_trend(bars), engine.detect_turning_points(bars),
              engine.predict_liquidity_regime(macro))

    assert first[0].direction == second[0].direction
    assert first[0].probabilities == second[0].probabilities
    assert first[1].anomaly_score == second[1].anomaly_score
    assert first[2].regime == second[2].regime
    assert first[2].probabilities == second[2].probabilities
    assert first[2].synthetic_points == 0


def test_turning_point_top_and_bottom():
    """Test anomalies are labelled by the trailing 5-bar change"""
    engine = _engine()
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.3))

    rising = list(np.linspace(100, 100, 25)) + [100, 101, 102, 103, 104]
    falling = list(np.linspace(100, 100, 25)) + [100, 99, 98, 97, 96]
    drifting = list(np.linspace(100, 100, 25)) + [100, 100.5, 101, 100.5, 101]

    top = engine.detect_turning_points(rising)
    assert top.is_anomalous
    assert top.type is TurningPointType.TOP
    assert top.anomaly_score == pytest.approx(0.3)
    assert top.confidence == pytest.approx(1.0)
    assert top.model_trained

    assert engine.detect_turning_points(falling).type is TurningPointType.BOTTOM
    assert engine.detect_turning_points(drifting).type is TurningPointType.NONE


def test_turning_point_below_threshold():
    """Test low reconstruction error is not anomalous"""
    engine = _engine()
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.05))

    prices = [100, 101, 102, 103, 110] * 6
    result = engine.detect_turning_points(prices)

    assert not result.is_anomalous
    assert result.type is TurningPointType.NONE
    assert result.confidence == pytest.approx(0.25)


def test_turning_point_too_few_bars():
    """Test fewer than 5 bars skips top/bottom disambiguation"""
    engine = _engine()
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.5))

    result = engine.detect_turning_points([100.0, 120.0, 140.0])

    assert result.is_anomalous
    assert result.type is TurningPointType.NONE


def test_turning_point_missing_close_in_lookback():
    """Test a missing close near the end degrades to no direction"""
    engine = _engine()
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.3))

    result = engine.detect_turning_points([100.0] * 29 + [None])

    assert result.type is TurningPointType.NONE
    assert not result.detected


def test_analyze_survives_missing_close():
    """Test a bar with no close still produces a full report"""
    engine = _engine()
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.3))
    bars = _uptrend()
    bars[-1] = dataclasses.replace(bars[-1], close=None)

    report = engine.analyze(bars, _full_macro())

    assert report.turning_points.type is TurningPointType.NONE
    assert report.summary


def test_turning_point_confidence_monotonic():
    """Test confidence rises with the anomaly score and saturates at 1"""
    engine = _engine()
    prices = list(range(100, 130))
    confidences = []
    for score in [0.0, 0.02, 0.05, 0.1, 0.15, 0.2, 0.5, 3.0]:
        engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(score))
        result = engine.detect_turning_points(prices)
        assert result.anomaly_score >= 0
        confidences.append(result.confidence)

    assert confidences == sorted(confidences)
    assert confidences[-1] == 1.0


def test_turning_point_thresholds_are_configurable():
    """Test the anomaly threshold and change threshold come from config"""
    config = MarketLensConfig(anomaly_threshold=0.5, turning_point_change_threshold=0.001)
    engine = _engine(config)
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.3))

    assert not engine.detect_turning_points(list(range(100, 130))).is_anomalous

    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.6))
    drifting = [100.0] * 25 + [100, 100.05, 100.1, 100.15, 100.2]
    assert engine.detect_turning_points(drifting).type is TurningPointType.TOP


def test_predictors_degrade_on_failure():
    """Test broken models give unknown/none results instead of raising"""
    engine = _engine()
    for name in (TREND_MODEL, ANOMALY_MODEL, REGIME_MODEL):
        engine.registry.swap(name, BrokenModel())

    trend = engine.predict_trend(_uptrend())
    turning = engine.detect_turning_points(_uptrend())
    regime = engine.predict_liquidity_regime(_full_macro())

    assert trend.direction is TrendDirection.UNKNOWN
    assert trend.confidence == 0.0
    assert 'weights corrupted' in trend.error
    assert not turning.is_anomalous
    assert turning.confidence == 0.0
    assert 'weights corrupted' in turning.error
    assert regime.regime is LiquidityRegime.UNKNOWN
    assert regime.error is not None


def test_predictors_degrade_when_unavailable():
    """Test unavailable models give unknown/none results"""
    engine = _engine()
    engine.registry.mark_unavailable(TREND_MODEL, "load failed")
    engine.registry.mark_unavailable(ANOMALY_MODEL, "load failed")

    trend = engine.predict_trend(_uptrend())
    turning = engine.detect_turning_points(_uptrend())

    assert trend.is_unknown
    assert 'load failed' in trend.error
    assert turning.type is TurningPointType.NONE
    assert 'load failed' in turning.error


# ----- engine -----

def test_analyze_report_is_complete():
    """Test analyze returns all three results and a summary"""
    engine = _engine()
    report = engine.analyze(_uptrend(), _rising_macro())

    assert isinstance(report, AnalysisReport)
    assert report.trend.direction is not TrendDirection.UNKNOWN
    assert report.regime.regime is not LiquidityRegime.UNKNOWN
    assert report.regime.synthetic_points == 50
    assert report.summary.startswith('Market Analysis Summary:')

    document = report.to_dict()
    for section in ('trend', 'turningPoints', 'regime'):
        for value in document[section].values():
            if isinstance(value, float):
                assert math.isfinite(value)


def test_analyze_with_regime_model_unavailable():
    """Test a missing regime model still yields a complete report"""
    engine = _engine()
    engine.registry.mark_unavailable(REGIME_MODEL, "forced offline")

    report = engine.analyze(_uptrend(), _rising_macro())
    document = report.to_dict()

    assert document['regime']['liquidityRegime'] == 'unknown'
    assert document['regime']['confidence'] == 0.0
    assert 'forced offline' in document['regime']['error']
    assert document['trend']['trendDirection'] in ('up', 'down', 'stable')
    assert document['trend']['error'] is None
    assert document['turningPoints']['turningPointType'] in ('top', 'bottom', 'none')
    assert document['turningPoints']['error'] is None
    assert 'Liquidity Regime: unknown (0% confidence)' in report.summary


def test_analyze_separate_price_bars():
    """Test turning points can use their own price series"""
    engine = _engine()
    engine.registry.swap(ANOMALY_MODEL, FixedErrorAutoencoder(0.3))

    report = engine.analyze(_uptrend(), _full_macro(), price_bars=[100.0] * 26 + [100, 97, 95, 93])

    assert report.turning_points.type is TurningPointType.BOTTOM


def test_engine_from_store():
    """Test from_store loads every model"""
    engine = MarketAnalysisEngine.from_store(InMemoryArtifactStore(), MarketLensConfig())

    assert set(engine.registry.status()) == {TREND_MODEL, ANOMALY_MODEL, REGIME_MODEL}


# ----- end to end -----

def test_short_macro_series_is_backfilled():
    """Test 10 rising real points backfilled to 60 give a usable regime"""
    engine = _engine()
    result = engine.predict_liquidity_regime(_rising_macro(10))

    assert result.regime in (LiquidityRegime.TIGHTENING, LiquidityRegime.EASING)
    assert sum(result.probabilities.values()) == pytest.approx(1.0, abs=1e-6)
    assert result.synthetic_points == 50
    assert result.is_approximate


def test_trained_trend_model_predicts_uptrend():
    """Test a model trained on uptrend windows calls a 90-day uptrend up"""
    torch.manual_seed(0)
    config = MarketLensConfig(show_progress=False, num_epochs=50)
    engine = _engine(config)
    normalizer = FeatureNormalizer(config)

    up_window = normalizer.market_window(_uptrend(40))
    down_window = normalizer.market_window(_uptrend(40, daily=-0.005))
    up_label, down_label = np.eye(3, dtype=np.float32)[[0, 1]]

    # Three uptrend windows for every downtrend window
    features = np.stack([up_window, up_window, up_window, down_window] * 100)
    labels = np.stack([up_label, up_label, up_label, down_label] * 100)

    TrainingOrchestrator(engine.registry).train_model(TREND_MODEL, TrainingData(features, labels))
    result = engine.predict_trend(_uptrend(90))

    assert result.model_trained
    assert result.direction is TrendDirection.UP
    assert result.confidence > 0.5


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
