"""
Tests for market utility functions and logging helpers.
"""

import json
import logging
import math

import torch
import torch.nn as nn
import pytest

from marketlens.utils import (
    MetricsLogger,
    inference_scope,
    linear_regression_slope,
    price_changes,
    rolling_trendline_slopes,
    setup_logger,
    signal_strength,
    trailing_change,
)


def test_linear_regression_slope():
    """Test raw and mean-relative slopes"""
    assert linear_regression_slope([1, 2, 3, 4], normalize=False) == pytest.approx(1.0)
    assert linear_regression_slope([1, 2, 3, 4]) == pytest.approx(1.0 / 2.5)
    assert linear_regression_slope([5.0]) == 0.0
    # Tiny mean: relative slope is capped
    assert linear_regression_slope([-1, 0, 1.01]) == pytest.approx(5.0)


def test_rolling_trendline_slopes():
    """Test slopes over each trailing window"""
    slopes = rolling_trendline_slopes([1, 2, 3, 5, 7, 9, 11, 13], window=3)

    assert len(slopes) == 8
    assert slopes[:2] == [0.0, 0.0]
    assert slopes[2] == pytest.approx(1.0)
    assert slopes[-1] == pytest.approx(2.0)
    assert rolling_trendline_slopes([1, 2], window=7) == [0.0, 0.0]


def test_price_changes():
    """Test delta and percent change per value"""
    changes = price_changes([100, 110, 99, 0, 5])

    assert changes[0] == {'delta': 0.0, 'percent_change': 0.0}
    assert changes[1]['delta'] == pytest.approx(10.0)
    assert changes[1]['percent_change'] == pytest.approx(10.0)
    assert changes[2]['percent_change'] == pytest.approx(-10.0)
    assert changes[4]['percent_change'] == 0.0


def test_trailing_change():
    """Test fractional change over the trailing window"""
    assert trailing_change([50, 100, 101, 102, 103, 104], 5) == pytest.approx(0.04)
    assert math.isnan(trailing_change([100, 101], 5))
    assert math.isnan(trailing_change([0, 1, 2, 3, 4], 5))


def test_signal_strength():
    """Test probability buckets"""
    assert signal_strength(0.95) == 'very_strong'
    assert signal_strength(0.65) == 'strong'
    assert signal_strength(0.5) == 'moderate'
    assert signal_strength(0.25) == 'weak'
    assert signal_strength(0.05) == 'very_weak'


def test_inference_scope_restores_mode():
    """Test inference_scope disables grads and restores training mode"""
    model = nn.Linear(3, 1)
    model.train()

    with inference_scope(model) as m:
        assert not m.training
        out = m(torch.ones(1, 3))
        assert not out.requires_grad

    assert model.training


def test_inference_scope_restores_mode_on_error():
    """Test the training flag is restored when the block raises"""
    model = nn.Linear(3, 1)
    model.train()

    with pytest.raises(RuntimeError):
        with inference_scope(model):
            raise RuntimeError("boom")

    assert model.training


def test_setup_logger_no_duplicate_handlers():
    """Test repeated setup does not stack handlers"""
    logger = setup_logger('marketlens.test_setup', level=logging.DEBUG)
    count = len(logger.handlers)
    setup_logger('marketlens.test_setup', level=logging.DEBUG)

    assert len(logger.handlers) == count
    assert logger.level == logging.DEBUG


def test_metrics_logger_writes_jsonl(tmp_path):
    """Test metrics are appended as JSON lines"""
    path = tmp_path / 'metrics.jsonl'
    metrics_logger = MetricsLogger(str(path))

    metrics_logger.log({'loss': 0.5, 'accuracy': 0.75}, epoch=1, model_name='trend')
    metrics_logger.log({'loss': 0.25}, epoch=2, model_name='trend')

    lines = [json.loads(line) for line in path.read_text().splitlines()]
    assert [line['epoch'] for line in lines] == [1, 2]
    assert lines[0]['model'] == 'trend'
    assert lines[0]['accuracy'] == 0.75


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
