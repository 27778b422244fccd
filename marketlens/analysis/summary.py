"""
Rule-based market summary text.
"""

import math
from typing import Dict, Tuple

from .results import (
    LiquidityRegime,
    RegimeResult,
    TrendDirection,
    TrendResult,
    TurningPointResult,
)


NEUTRAL_OUTLOOK = 'Neutral - Mixed signals suggest range-bound conditions'

OUTLOOK_RULES: Dict[Tuple[TrendDirection, LiquidityRegime], str] = {
    (TrendDirection.UP, LiquidityRegime.EASING):
        'Bullish - Uptrend with supportive liquidity conditions',
    (TrendDirection.DOWN, LiquidityRegime.TIGHTENING):
        'Bearish - Downtrend with tightening liquidity conditions',
    (TrendDirection.UP, LiquidityRegime.TIGHTENING):
        'Cautiously Bullish - Uptrend may face headwinds from tightening liquidity',
    (TrendDirection.DOWN, LiquidityRegime.EASING):
        'Cautiously Bearish - Downtrend may find support from easing liquidity',
}


def percent(confidence: float) -> int:
    """Confidence as a whole percentage, halves rounded up"""
    return int(math.floor(confidence * 100 + 0.5))


def outlook(trend: TrendDirection, regime: LiquidityRegime) -> str:
    return OUTLOOK_RULES.get((trend, regime), NEUTRAL_OUTLOOK)


def build_summary(
    trend: TrendResult,
    turning_points: TurningPointResult,
    regime: RegimeResult,
    warning_confidence: float = 0.7,
) -> str:
    """
    Assemble the human-readable summary of one analysis.

    The outlook line is looked up from the (trend, regime) pair; unknown or
    stable inputs read as neutral. A warning line is appended when a top or
    bottom is detected with confidence above warning_confidence.
    """
    lines = [
        'Market Analysis Summary:',
        '',
        f"Trend Direction: {trend.direction.value} ({percent(trend.confidence)}% confidence)",
    ]

    if turning_points.detected:
        lines.append(
            f"Potential {turning_points.type.value} detected "
            f"({percent(turning_points.confidence)}% confidence)"
        )
    elif turning_points.is_anomalous:
        lines.append(
            f"Unusual price action without a clear turning point "
            f"({percent(turning_points.confidence)}% confidence)"
        )
    else:
        lines.append('No significant turning points detected')

    regime_line = f"Liquidity Regime: {regime.regime.value} ({percent(regime.confidence)}% confidence)"
    if regime.is_approximate:
        regime_line += f" [approximate: {regime.synthetic_points} synthetic points]"
    lines.append(regime_line)
    lines.append('')
    lines.append('Overall Market Outlook: ' + outlook(trend.direction, regime.regime))

    summary = '\n'.join(lines)
    if turning_points.detected and turning_points.confidence > warning_confidence:
        summary += f"\n\nWARNING: High probability of market {turning_points.type.value} forming!"
    return summary
