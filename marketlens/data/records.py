"""
Input records supplied by the upstream market and macro data collectors.

Rows arrive either as dicts (upstream camelCase or snake_case keys) or as
pandas DataFrames read from CSV; both are converted to the dataclasses
below, ordered oldest to newest.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd


MACRO_FIELDS = (
    'fed_funds_rate',
    'treasury_yield_10y',
    'treasury_yield_2y',
    'vix',
    'dollar_index',
    'credit_spread',
    'excess_reserves',
    'm2_money',
    'fed_balance',
    'repo_rate',
)

# Upstream (camelCase) names -> record attribute names
_BAR_ALIASES = {
    'prevClose': 'prev_close',
}

_MACRO_ALIASES = {
    'fedFundsRate': 'fed_funds_rate',
    'treasuryYield10Y': 'treasury_yield_10y',
    'treasuryYield2Y': 'treasury_yield_2y',
    'dollarIndex': 'dollar_index',
    'creditSpread': 'credit_spread',
    'excessReserves': 'excess_reserves',
    'm2Money': 'm2_money',
    'fedBalance': 'fed_balance',
    'repoRate': 'repo_rate',
    'isSynthetic': 'is_synthetic',
}


def parse_date(value: Any) -> date:
    """Coerce str/datetime/Timestamp/date to a date"""
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


@dataclass(frozen=True)
class MarketBar:
    """
    One trading bar.

    prev_close is the prior bar's close; None for the first bar of a series,
    in which case consumers fall back to the bar's own open.
    """
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    prev_close: Optional[float] = None

    @property
    def reference_price(self) -> float:
        """Price the bar's OHLC values are measured against"""
        return self.prev_close if self.prev_close else self.open

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "MarketBar":
        values = {_BAR_ALIASES.get(k, k): v for k, v in row.items()}
        return cls(
            date=parse_date(values['date']),
            open=float(values['open']),
            high=float(values['high']),
            low=float(values['low']),
            close=float(values['close']),
            volume=_optional_float(values.get('volume')) or 0.0,
            prev_close=_optional_float(values.get('prev_close')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'open': self.open,
            'high': self.high,
            'low': self.low,
            'close': self.close,
            'volume': self.volume,
            'prevClose': self.prev_close,
        }


@dataclass(frozen=True)
class MacroPoint:
    """
    One day of macro indicators. Any indicator may be absent (None).

    is_synthetic marks points produced by the synthetic backfill so that
    they are never mistaken for real observations.
    """
    date: date
    fed_funds_rate: Optional[float] = None
    treasury_yield_10y: Optional[float] = None
    treasury_yield_2y: Optional[float] = None
    vix: Optional[float] = None
    dollar_index: Optional[float] = None
    credit_spread: Optional[float] = None
    excess_reserves: Optional[float] = None
    m2_money: Optional[float] = None
    fed_balance: Optional[float] = None
    repo_rate: Optional[float] = None
    is_synthetic: bool = field(default=False, compare=False)

    def as_vector(self) -> List[float]:
        """Indicator values in MACRO_FIELDS order, absent values as 0"""
        return [getattr(self, name) or 0.0 for name in MACRO_FIELDS]

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "MacroPoint":
        values = {_MACRO_ALIASES.get(k, k): v for k, v in row.items()}
        indicators = {name: _optional_float(values.get(name)) for name in MACRO_FIELDS}
        return cls(
            date=parse_date(values['date']),
            is_synthetic=bool(values.get('is_synthetic', False)),
            **indicators,
        )

    def to_dict(self) -> Dict[str, Any]:
        camel = {v: k for k, v in _MACRO_ALIASES.items()}
        row = {'date': self.date.isoformat()}
        for name in MACRO_FIELDS:
            row[camel.get(name, name)] = getattr(self, name)
        row['isSynthetic'] = self.is_synthetic
        return row


def bars_from_records(rows: Iterable[Dict[str, Any]]) -> List[MarketBar]:
    return [MarketBar.from_dict(row) for row in rows]


def macro_from_records(rows: Iterable[Dict[str, Any]]) -> List[MacroPoint]:
    return [MacroPoint.from_dict(row) for row in rows]


def bars_from_frame(df: pd.DataFrame) -> List[MarketBar]:
    """
    Convert an OHLCV DataFrame to bars, sorted by date.

    Accepts a 'date' column or a DatetimeIndex. When no prev_close column is
    present it is derived from the previous row's close.
    """
    df = df.rename(columns=_BAR_ALIASES).rename(columns=lambda c: str(c).lower())
    if 'date' not in df.columns:
        df = df.reset_index().rename(columns={df.index.name or 'index': 'date'})
    df['date'] = pd.to_datetime(df['date'])
    df = df.sort_values('date').reset_index(drop=True)
    if 'prev_close' not in df.columns:
        df['prev_close'] = df['close'].shift(1)

    return bars_from_records(df.to_dict('records'))


def macro_from_frame(df: pd.DataFrame) -> List[MacroPoint]:
    """Convert a macro DataFrame (one row per date) to points, sorted by date"""
    df = df.copy()
    if 'date' not in df.columns:
        df = df.reset_index().rename(columns={df.index.name or 'index': 'date'})
    df['date'] = pd.to_datetime(df['date'])
    df = df.sort_values('date').reset_index(drop=True)
    # NaN -> None so absent indicators stay absent
    df = df.astype(object).where(pd.notna(df), None)

    return macro_from_records(df.to_dict('records'))


def bars_to_frame(bars: Sequence[MarketBar]) -> pd.DataFrame:
    df = pd.DataFrame([bar.to_dict() for bar in bars])
    if not df.empty:
        df['date'] = pd.to_datetime(df['date'])
        df = df.set_index('date')
    return df


def bars_from_closes(
    closes: Sequence[float],
    start: Optional[date] = None,
    volume: float = 1_000_000.0,
) -> List[MarketBar]:
    """
    Build a gap-free daily bar series from closing prices.

    Each bar opens at the previous close; high/low bracket open and close.
    prev_close chains to the prior bar (first bar: its own open).
    """
    start = start or date(2024, 1, 1)
    closes = np.asarray(closes, dtype=float)
    bars = []
    prev_close = None
    for i, close in enumerate(closes):
        open_price = prev_close if prev_close is not None else close
        bars.append(MarketBar(
            date=start + timedelta(days=i),
            open=float(open_price),
            high=float(max(open_price, close)),
            low=float(min(open_price, close)),
            close=float(close),
            volume=volume,
            prev_close=prev_close,
        ))
        prev_close = float(close)
    return bars
