"""
Market data access for the level engine.

Defines the provider interface the engine fetches bars through, the bar
preparation step that turns provider payloads into a BarSeries, and an
in-memory provider backed by pandas DataFrames.
"""

from typing import Dict, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..support_resistance.models import BarSeries, PriceBar, Tier
from ..utils.exceptions import DataUnavailableException, InvalidDataException
from ..utils.helpers import ensure_datetime

BarPayload = Union[pd.DataFrame, Sequence[PriceBar], None]

_PRICE_COLUMNS = ['high', 'low', 'close']
_TIME_COLUMNS = ['timestamp', 'time', 'datetime', 'date']


class MarketDataProvider(Protocol):
    """
    Synchronous bar source.

    fetch_bars returns a DataFrame (high/low/close plus a timestamp column or
    DatetimeIndex) or a sequence of PriceBar, ordered most-recent-first. It
    may raise DataUnavailableException or return an empty payload when the
    history is insufficient.
    """

    def fetch_bars(self, symbol: str, tier: Tier, count: int) -> BarPayload:
        ...


def prepare_bars(
    payload: BarPayload,
    count: int,
    min_bars: int = 10,
    symbol: Optional[str] = None,
    tier: Optional[Tier] = None
) -> BarSeries:
    """
    Normalize a provider payload into a most-recent-first BarSeries.

    Args:
        payload: DataFrame or PriceBar sequence
        count: Maximum number of bars kept (newest first)
        min_bars: Minimum number of usable bars
        symbol: Symbol, for error details
        tier: Tier, for error details

    Returns:
        BarSeries with at most `count` bars

    Raises:
        DataUnavailableException: Payload empty or shorter than min_bars
        InvalidDataException: Payload malformed
    """
    tier_value = tier.value if tier is not None else None

    if payload is None or len(payload) == 0:
        raise DataUnavailableException(
            "Provider returned no data",
            symbol=symbol, tier=tier_value, required_bars=min_bars, provided_bars=0
        )

    if isinstance(payload, pd.DataFrame):
        frame = _prepare_frame(payload)
    elif isinstance(payload, (list, tuple)):
        frame = _bars_to_frame(payload)
    else:
        raise InvalidDataException(f"Unsupported bar payload type: {type(payload)}")

    frame = frame.sort_values('timestamp', ascending=False, kind='mergesort').head(count)

    if len(frame) < min_bars:
        raise DataUnavailableException(
            f"Insufficient bars: {len(frame)} available, {min_bars} required",
            symbol=symbol, tier=tier_value, required_bars=min_bars, provided_bars=len(frame)
        )

    return BarSeries(
        high=frame['high'].to_numpy(dtype=float),
        low=frame['low'].to_numpy(dtype=float),
        close=frame['close'].to_numpy(dtype=float),
        timestamps=tuple(ensure_datetime(ts) for ts in frame['timestamp']),
    )


def _prepare_frame(data: pd.DataFrame) -> pd.DataFrame:
    """Lower-case columns, locate timestamps, check dtypes and drop NaN rows"""
    data = data.rename(columns={c: c.lower() for c in data.columns if isinstance(c, str)})

    missing = [col for col in _PRICE_COLUMNS if col not in data.columns]
    if missing:
        raise InvalidDataException(
            f"Missing required columns: {missing}",
            data_info={'columns': [str(c) for c in data.columns]}
        )

    time_col = next((col for col in _TIME_COLUMNS if col in data.columns), None)
    if time_col is not None:
        timestamps = _to_utc_timestamps(data[time_col])
    elif isinstance(data.index, pd.DatetimeIndex):
        timestamps = _to_utc_timestamps(pd.Series(data.index, index=data.index))
    else:
        raise InvalidDataException(
            "No timestamp column found. Expected one of: " + ", ".join(_TIME_COLUMNS)
        )

    for col in _PRICE_COLUMNS:
        if not pd.api.types.is_numeric_dtype(data[col]):
            raise InvalidDataException(f"Column {col} must be numeric")

    frame = pd.DataFrame({
        'high': data['high'].to_numpy(),
        'low': data['low'].to_numpy(),
        'close': data['close'].to_numpy(),
        'timestamp': timestamps.to_numpy(),
    })

    return frame.dropna().reset_index(drop=True)


def _to_utc_timestamps(values: pd.Series) -> pd.Series:
    """Parse a timestamp column into naive UTC; numbers are unix seconds"""
    try:
        if pd.api.types.is_numeric_dtype(values):
            timestamps = pd.to_datetime(values, unit='s')
        else:
            timestamps = pd.to_datetime(values)
    except (ValueError, TypeError, OverflowError) as e:
        raise InvalidDataException(f"Cannot parse timestamps: {e}")

    if timestamps.dt.tz is not None:
        timestamps = timestamps.dt.tz_convert('UTC').dt.tz_localize(None)
    return timestamps


def _bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    if bars and not all(isinstance(b, PriceBar) for b in bars):
        raise InvalidDataException("Bar sequences must contain PriceBar items")

    frame = pd.DataFrame({
        'high': np.array([b.high for b in bars], dtype=float),
        'low': np.array([b.low for b in bars], dtype=float),
        'close': np.array([b.close for b in bars], dtype=float),
        'timestamp': pd.to_datetime([ensure_datetime(b.timestamp) for b in bars]),
    })

    return frame.dropna().reset_index(drop=True)


class DataFrameProvider:
    """
    In-memory provider keyed by (symbol, tier).

    Frames are returned newest-first and truncated to the requested count.
    """

    def __init__(self, frames: Optional[Dict[Tuple[str, Tier], pd.DataFrame]] = None):
        self._frames: Dict[Tuple[str, Tier], pd.DataFrame] = {}
        for (symbol, tier), frame in (frames or {}).items():
            self.set_bars(symbol, tier, frame)

    def set_bars(self, symbol: str, tier: Tier, frame: pd.DataFrame):
        frame = _prepare_frame(frame).sort_values('timestamp', ascending=False, kind='mergesort')
        self._frames[(symbol.upper(), Tier(tier))] = frame.reset_index(drop=True)

    def fetch_bars(self, symbol: str, tier: Tier, count: int) -> pd.DataFrame:
        key = (symbol.upper(), Tier(tier))
        if key not in self._frames:
            raise DataUnavailableException(
                f"No bars for {symbol} {Tier(tier).value}",
                symbol=symbol, tier=Tier(tier).value, required_bars=count, provided_bars=0
            )
        return self._frames[key].head(count)
