"""
Helper utilities for the level engine.

Symbol and timeframe normalization plus timestamp conversion shared by the
configuration, the bar preparation and the HTTP layer.
"""

import re
from typing import Union
from datetime import datetime, timedelta, timezone
import pandas as pd
import numpy as np

from .exceptions import InvalidDataException

SUPPORTED_TIMEFRAMES = {
    "1m": 1, "5m": 5, "15m": 15, "30m": 30,
    "1h": 60, "2h": 120, "4h": 240, "6h": 360, "8h": 480, "12h": 720,
    "1d": 1440, "1w": 10080
}

# Forex pairs, indices and crypto tickers: EURUSD, US30, BTC/USDT, XAU_USD
_SYMBOL_PATTERN = re.compile(r'^[A-Z0-9][A-Z0-9./_\-]{1,19}$')


def validate_symbol(symbol: str, raise_error: bool = True) -> bool:
    """
    Validate an instrument symbol format

    Args:
        symbol: Symbol to check (e.g. "EURUSD")
        raise_error: Raise instead of returning False

    Returns:
        True if the symbol is well-formed

    Raises:
        InvalidDataException: If the symbol is malformed (with raise_error=True)
    """
    if not isinstance(symbol, str):
        if raise_error:
            raise InvalidDataException(f"Symbol must be string, got {type(symbol)}")
        return False

    if not _SYMBOL_PATTERN.match(symbol.upper().strip()):
        if raise_error:
            raise InvalidDataException(f"Invalid symbol format: {symbol}")
        return False

    return True


def normalize_symbol(symbol: str) -> str:
    """Upper-case and strip a symbol after validating it"""
    validate_symbol(symbol)
    return symbol.upper().strip()


def validate_timeframe(timeframe: str, raise_error: bool = True) -> bool:
    """
    Validate a timeframe code

    Args:
        timeframe: Timeframe to check (e.g. "4h")
        raise_error: Raise instead of returning False

    Returns:
        True if the timeframe is supported

    Raises:
        InvalidDataException: If the timeframe is not supported
    """
    if not isinstance(timeframe, str):
        if raise_error:
            raise InvalidDataException(f"Timeframe must be string, got {type(timeframe)}")
        return False

    if timeframe.lower().strip() not in SUPPORTED_TIMEFRAMES:
        if raise_error:
            raise InvalidDataException(
                f"Unsupported timeframe: {timeframe}. "
                f"Supported: {', '.join(sorted(SUPPORTED_TIMEFRAMES.keys()))}"
            )
        return False

    return True


def parse_timeframe_to_minutes(timeframe: str) -> int:
    validate_timeframe(timeframe)
    return SUPPORTED_TIMEFRAMES[timeframe.lower().strip()]


def parse_timeframe_to_timedelta(timeframe: str) -> timedelta:
    """
    Convert a timeframe code to the duration of one bar

    Args:
        timeframe: Timeframe code

    Returns:
        timedelta of one bar
    """
    return timedelta(minutes=parse_timeframe_to_minutes(timeframe))


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the engine's time convention"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def ensure_datetime(value: Union[datetime, pd.Timestamp, np.datetime64, str, int, float]) -> datetime:
    """
    Convert supported timestamp representations to a naive UTC datetime

    Args:
        value: datetime, pandas/numpy timestamp, ISO string or unix seconds

    Returns:
        datetime object without tzinfo, in UTC

    Raises:
        InvalidDataException: If the value cannot be converted
    """
    try:
        if isinstance(value, pd.Timestamp):
            result = value.to_pydatetime()
        elif isinstance(value, datetime):
            result = value
        elif isinstance(value, np.datetime64):
            result = pd.Timestamp(value).to_pydatetime()
        elif isinstance(value, str):
            result = pd.to_datetime(value).to_pydatetime()
        elif isinstance(value, (int, float, np.integer, np.floating)):
            result = datetime.fromtimestamp(float(value), tz=timezone.utc)
        else:
            raise ValueError(f"Unsupported type: {type(value)}")
        return to_naive_utc(result)
    except (ValueError, TypeError, OverflowError, OSError) as e:
        raise InvalidDataException(f"Cannot convert {value!r} to datetime: {e}")
