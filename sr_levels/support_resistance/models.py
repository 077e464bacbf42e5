"""
Data model for the support/resistance level engine

Bars, pivots, touch statistics and levels. Levels are frozen dataclasses so
every query hands out an immutable snapshot.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np


class Tier(str, Enum):
    """Timeframe tier of a level store"""
    DAILY = "D1"
    H4 = "H4"
    H1 = "H1"


# Deterministic scan and query order, highest timeframe first
TIER_ORDER: Tuple[Tier, ...] = (Tier.DAILY, Tier.H4, Tier.H1)


class PivotKind(Enum):
    """Kind of local extremum"""
    HIGH = "high"
    LOW = "low"


class InsertOutcome(Enum):
    """Result of LevelStore.insert_or_merge"""
    INSERTED = "inserted"
    MERGED_KEPT_EXISTING = "merged_kept_existing"
    REPLACED = "replaced"
    DROPPED = "dropped"


@dataclass(frozen=True)
class PriceBar:
    """Single OHLC bar"""
    high: float
    low: float
    close: float
    timestamp: datetime


@dataclass(frozen=True, eq=False)
class BarSeries:
    """
    Immutable bar snapshot for one (symbol, tier), most-recent-first.

    Index 0 is the newest bar.
    """
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    timestamps: Tuple[datetime, ...]

    @classmethod
    def from_bars(cls, bars: Sequence[PriceBar]) -> "BarSeries":
        return cls(
            high=np.array([b.high for b in bars], dtype=float),
            low=np.array([b.low for b in bars], dtype=float),
            close=np.array([b.close for b in bars], dtype=float),
            timestamps=tuple(b.timestamp for b in bars),
        )

    def __len__(self) -> int:
        return len(self.timestamps)

    @property
    def latest_time(self) -> Optional[datetime]:
        return self.timestamps[0] if self.timestamps else None


@dataclass(frozen=True)
class PivotPoint:
    """Local extremum found in one scan; never stored"""
    price: float
    timestamp: datetime
    kind: PivotKind
    index: int


@dataclass(frozen=True)
class TouchStats:
    """Touch counts of a candidate price over a lookback window"""
    support_touches: int
    resistance_touches: int
    first_touch_time: Optional[datetime]
    last_touch_time: Optional[datetime]
    consecutive_touches: int = 0

    @property
    def touches(self) -> int:
        return max(self.support_touches, self.resistance_touches)

    def is_valid(self, min_touches: int) -> bool:
        return self.touches >= min_touches

    def is_support(self, min_touches: int) -> bool:
        return self.support_touches >= min_touches

    def is_resistance(self, min_touches: int) -> bool:
        return self.resistance_touches >= min_touches


@dataclass(frozen=True)
class Level:
    """Support/resistance level held by a tier store"""
    price: float
    touches: int
    strength: int  # unbounded ranking key, not a percentage
    first_touch_time: datetime
    last_touch_time: datetime
    tier: Tier
    is_support: bool
    is_resistance: bool
    is_active: bool = True
    consecutive_touches: int = 0
    symbol: Optional[str] = None

    def distance_to(self, price: float) -> float:
        return abs(self.price - price)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'price': self.price,
            'touches': self.touches,
            'strength': self.strength,
            'first_touch_time': self.first_touch_time.isoformat(),
            'last_touch_time': self.last_touch_time.isoformat(),
            'tier': self.tier.value,
            'is_support': self.is_support,
            'is_resistance': self.is_resistance,
            'is_active': self.is_active,
            'consecutive_touches': self.consecutive_touches,
            'symbol': self.symbol
        }


@dataclass(frozen=True)
class LevelPair:
    """Nearest support below and resistance above a price"""
    support: Optional[Level] = None
    resistance: Optional[Level] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'support': self.support.to_dict() if self.support else None,
            'resistance': self.resistance.to_dict() if self.resistance else None
        }
