"""
Multi-timeframe Support/Resistance Level Engine

Detects, scores, deduplicates and maintains a ranked catalog of
support/resistance levels from OHLC history on the Daily, H4 and H1
timeframes, and answers proximity/strength queries against it.

Key Features:
- Strict-window pivot detection
- Touch counting across the full lookback window
- Tier-weighted integer strength with a recency bonus
- Bounded per-tier stores with merge, consolidation and expiry
- Per-symbol store sets (shared legacy mode available)
- Strongest-level and nearest-pair queries returning immutable snapshots
"""

import logging
from typing import Dict

__version__ = "1.0.0"
__author__ = "ML-Framework Team"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .config.engine_config import EngineConfig, TierSettings, build_config, get_config
from .data.provider import MarketDataProvider, DataFrameProvider, prepare_bars
from .engine import SupportResistanceEngine, ScanReport
from .support_resistance import (
    Tier,
    TIER_ORDER,
    PriceBar,
    BarSeries,
    PivotPoint,
    Level,
    LevelPair,
    PivotDetector,
    TouchAnalyzer,
    StrengthScorer,
    LevelStore,
    LevelQueryEngine
)
from .utils.logger import get_logger, configure_logging
from .utils.exceptions import (
    SRLevelsException,
    DataUnavailableException,
    InvalidDataException,
    ConfigurationException
)

__all__ = [
    # Engine
    "SupportResistanceEngine",
    "ScanReport",

    # Components
    "PivotDetector",
    "TouchAnalyzer",
    "StrengthScorer",
    "LevelStore",
    "LevelQueryEngine",

    # Data model
    "Tier",
    "TIER_ORDER",
    "PriceBar",
    "BarSeries",
    "PivotPoint",
    "Level",
    "LevelPair",

    # Market data
    "MarketDataProvider",
    "DataFrameProvider",
    "prepare_bars",

    # Configuration
    "EngineConfig",
    "TierSettings",
    "build_config",
    "get_config",

    # Utilities
    "get_logger",
    "configure_logging",

    # Exceptions
    "SRLevelsException",
    "DataUnavailableException",
    "InvalidDataException",
    "ConfigurationException",

    "__version__",
    "__author__",
    "__license__"
]


def get_package_info() -> Dict[str, str]:
    """
    Package metadata

    Returns:
        Dict with version, author and license
    """
    return {
        "name": "sr-levels",
        "version": __version__,
        "author": __author__,
        "license": __license__,
        "description": "Multi-timeframe support/resistance level engine",
        "tiers": ", ".join(tier.value for tier in TIER_ORDER)
    }
