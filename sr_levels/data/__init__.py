"""
Market data interfaces and bar preparation
"""

from .provider import MarketDataProvider, DataFrameProvider, prepare_bars

__all__ = [
    "MarketDataProvider",
    "DataFrameProvider",
    "prepare_bars"
]
