"""
Synthetic History Generator - backfills macro series that are too short.

The regime classifier needs a full 60-day macro window. When the upstream
collector returns less, plausible placeholder points are prepended:
- No real data: every indicator drawn independently from a fixed range
- Real data: the earliest real point is used as a template and each
  indicator is perturbed by a small field-specific delta, walking back one
  day at a time

This is a data-completion heuristic, not a statistical model. Generated
points carry is_synthetic=True.

Also generates synthetic OHLCV random walks for demos and tests.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .records import MACRO_FIELDS, MacroPoint, MarketBar

logger = logging.getLogger(__name__)


# Plausible (low, high) range per indicator
MACRO_RANGES: Dict[str, Tuple[float, float]] = {
    'fed_funds_rate': (0.25, 0.75),
    'treasury_yield_10y': (1.5, 2.5),
    'treasury_yield_2y': (0.5, 1.0),
    'vix': (15.0, 25.0),
    'dollar_index': (90.0, 100.0),
    'credit_spread': (1.0, 3.0),
    'excess_reserves': (1000.0, 1500.0),
    'm2_money': (20000.0, 21000.0),
    'fed_balance': (8000.0, 8500.0),
    'repo_rate': (0.1, 0.3),
}

# Total width of the perturbation around the template value (+/- half)
MACRO_PERTURBATION: Dict[str, float] = {
    'fed_funds_rate': 0.05,
    'treasury_yield_10y': 0.1,
    'treasury_yield_2y': 0.05,
    'vix': 2.0,
    'dollar_index': 0.5,
    'credit_spread': 0.1,
    'excess_reserves': 50.0,
    'm2_money': 100.0,
    'fed_balance': 50.0,
    'repo_rate': 0.02,
}


class SyntheticHistoryGenerator:
    """
    Generates synthetic macro points (and OHLCV bars) from a seedable source.

    Args:
        rng: numpy random Generator; takes precedence over seed
        seed: Seed for a fresh Generator when rng is not given
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def generate(
        self,
        count: int,
        existing: Optional[Sequence[MacroPoint]] = None,
        end_date: Optional[date] = None,
    ) -> List[MacroPoint]:
        """
        Generate count synthetic points, ascending by date.

        With existing data the points end the day before the first real
        date, so prepending them leaves no gap and no duplicate date.
        Without existing data they end the day before end_date (default
        today).

        Args:
            count: Number of points to generate
            existing: Real macro series, oldest first (may be empty)
            end_date: Anchor date used only when existing is empty

        Returns:
            points: count synthetic MacroPoints
        """
        if count <= 0:
            return []

        if not existing:
            anchor = end_date or date.today()
            dates = [anchor - timedelta(days=count - i) for i in range(count)]
            return [
                MacroPoint(date=d, is_synthetic=True, **self._sample_ranges())
                for d in dates
            ]

        template = existing[0]
        dates = [template.date - timedelta(days=count - i) for i in range(count)]
        return [
            MacroPoint(date=d, is_synthetic=True, **self._perturb(template))
            for d in dates
        ]

    def backfill(
        self,
        existing: Optional[Sequence[MacroPoint]],
        minimum: int = 60,
    ) -> Tuple[List[MacroPoint], int]:
        """
        Prepend synthetic points until the series holds at least minimum points.

        Returns:
            combined: Synthetic points followed by the unmodified real points
            synthetic_count: Number of synthetic points prepended
        """
        existing = list(existing or [])
        missing = minimum - len(existing)
        if missing <= 0:
            return existing, 0

        logger.warning(
            "Insufficient macro data: only %d points available, generating %d synthetic points to reach %d",
            len(existing), missing, minimum,
        )
        synthetic = self.generate(missing, existing)
        return synthetic + existing, missing

    def _sample_ranges(self) -> Dict[str, float]:
        values = {}
        for name in MACRO_FIELDS:
            low, high = MACRO_RANGES[name]
            values[name] = float(low + self.rng.random() * (high - low))
        return values

    def _perturb(self, template: MacroPoint) -> Dict[str, float]:
        values = self._sample_ranges()
        for name in MACRO_FIELDS:
            base = getattr(template, name)
            if base is not None:
                values[name] = float(base + (self.rng.random() - 0.5) * MACRO_PERTURBATION[name])
        return values

    def generate_bars(
        self,
        count: int,
        start_price: float = 100.0,
        daily_drift: float = 0.0,
        volatility: float = 0.01,
        start: Optional[date] = None,
        volume_range: Tuple[int, int] = (100_000, 1_000_000),
    ) -> List[MarketBar]:
        """
        Generate a gap-free daily OHLCV random walk.

        Args:
            count: Number of bars
            start_price: First open
            daily_drift: Mean close-to-close return per bar
            volatility: Standard deviation of the per-bar return
            start: Date of the first bar
            volume_range: Uniform integer volume range

        Returns:
            bars: count MarketBars whose prev_close chains to the prior close
        """
        start = start or date(2024, 1, 1)
        returns = daily_drift + self.rng.standard_normal(count) * volatility
        wicks = np.abs(self.rng.standard_normal((count, 2))) * max(volatility, 1e-4) * 0.5
        volumes = self.rng.integers(volume_range[0], volume_range[1], count)

        bars = []
        prev_close = None
        price = start_price
        for i in range(count):
            open_price = prev_close if prev_close is not None else price
            close = open_price * (1 + returns[i])
            bars.append(MarketBar(
                date=start + timedelta(days=i),
                open=float(open_price),
                high=float(max(open_price, close) * (1 + wicks[i, 0])),
                low=float(min(open_price, close) * (1 - wicks[i, 1])),
                close=float(close),
                volume=float(volumes[i]),
                prev_close=prev_close,
            ))
            prev_close = float(close)
        return bars
