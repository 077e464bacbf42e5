"""
Shared fixtures for the level engine test suite.

Bar data is built most-recent-first: index 0 is the newest bar, matching
what providers hand to the engine.
"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from sr_levels.config.engine_config import build_config
from sr_levels.data.provider import DataFrameProvider
from sr_levels.support_resistance.models import BarSeries, Level, Tier

NEWEST_BAR = datetime(2024, 6, 3)


def make_series(highs, lows, closes=None, newest=NEWEST_BAR, step=timedelta(days=1)) -> BarSeries:
    """BarSeries from newest-first price lists"""
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    closes = (highs + lows) / 2 if closes is None else np.asarray(closes, dtype=float)
    return BarSeries(
        high=highs,
        low=lows,
        close=closes,
        timestamps=tuple(newest - i * step for i in range(len(highs)))
    )


def make_frame(highs, lows, newest=NEWEST_BAR, step=timedelta(days=1)) -> pd.DataFrame:
    """Provider-style DataFrame from newest-first price lists"""
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    return pd.DataFrame({
        'timestamp': [newest - i * step for i in range(len(highs))],
        'high': highs,
        'low': lows,
        'close': (highs + lows) / 2,
    })


def double_bottom_prices(n_bars=250, offset=0.0):
    """
    Flat range with a double bottom at bars 10 and 200.

    Highs sit at 1.1100 with one spike to 1.1200 at bar 120, lows sit at
    1.1050 except for the two 1.1000 touches.
    """
    highs = np.full(n_bars, 1.1100)
    lows = np.full(n_bars, 1.1050)
    highs[120] = 1.1200
    lows[10] = 1.1000
    lows[200] = 1.1000
    return highs + offset, lows + offset


def make_level(
    price,
    strength=10,
    tier=Tier.DAILY,
    last_touch=NEWEST_BAR,
    is_support=True,
    is_resistance=False,
    touches=2,
    is_active=True,
    symbol="EURUSD"
) -> Level:
    return Level(
        price=price,
        touches=touches,
        strength=strength,
        first_touch_time=last_touch - timedelta(days=30),
        last_touch_time=last_touch,
        tier=tier,
        is_support=is_support,
        is_resistance=is_resistance,
        is_active=is_active,
        symbol=symbol
    )


@pytest.fixture
def series_factory():
    return make_series


@pytest.fixture
def frame_factory():
    return make_frame


@pytest.fixture
def level_factory():
    return make_level


@pytest.fixture
def double_bottom():
    return double_bottom_prices


@pytest.fixture
def newest_bar():
    return NEWEST_BAR


@pytest.fixture
def engine_config():
    """Daily lookback covering the whole 250-bar fixture, 30-day retention"""
    return build_config(
        daily={
            "timeframe": "1d",
            "lookback_bars": 250,
            "strength_weight": 5,
            "consolidation_multiplier": 2.0
        },
        retention_seconds=30 * 86400
    )


@pytest.fixture
def daily_provider():
    """Provider holding the Daily double-bottom fixture for EURUSD only"""
    highs, lows = double_bottom_prices()
    return DataFrameProvider({("EURUSD", Tier.DAILY): make_frame(highs, lows)})
