"""
Touch Analyzer
Counts how often a candidate price was approached across a lookback window
"""

import logging
from typing import Optional

import numpy as np

from .models import BarSeries, Level, Tier, TouchStats


class TouchAnalyzer:
    """
    Count support and resistance touches of a candidate price.

    Every bar of the window is tested, not only bars near the pivot that
    produced the candidate. A bar whose low lies within the tolerance is a
    support touch, a bar whose high lies within it is a resistance touch,
    and one bar may count as both.
    """

    def __init__(self, tolerance: float, min_touches: int = 2):
        self.tolerance = tolerance
        self.min_touches = min_touches
        self.logger = logging.getLogger("TouchAnalyzer")

    def analyze(self, price: float, series: BarSeries) -> TouchStats:
        """Touch statistics of `price` over the whole series"""
        support_mask = np.abs(series.low - price) <= self.tolerance
        resistance_mask = np.abs(series.high - price) <= self.tolerance
        touch_mask = support_mask | resistance_mask

        touch_indices = np.flatnonzero(touch_mask)
        if touch_indices.size == 0:
            return TouchStats(0, 0, None, None, 0)

        touch_times = [series.timestamps[i] for i in touch_indices]

        return TouchStats(
            support_touches=int(support_mask.sum()),
            resistance_touches=int(resistance_mask.sum()),
            first_touch_time=min(touch_times),
            last_touch_time=max(touch_times),
            consecutive_touches=self._longest_run(touch_mask)
        )

    def to_level(
        self,
        price: float,
        stats: TouchStats,
        tier: Tier,
        strength: int,
        symbol: Optional[str] = None
    ) -> Optional[Level]:
        """Build a level from touch statistics, or None if below min_touches"""
        if not stats.is_valid(self.min_touches):
            return None

        return Level(
            price=price,
            touches=stats.touches,
            strength=strength,
            first_touch_time=stats.first_touch_time,
            last_touch_time=stats.last_touch_time,
            tier=tier,
            is_support=stats.is_support(self.min_touches),
            is_resistance=stats.is_resistance(self.min_touches),
            is_active=True,
            consecutive_touches=stats.consecutive_touches,
            symbol=symbol
        )

    @staticmethod
    def _longest_run(mask: np.ndarray) -> int:
        """Length of the longest run of adjacent touching bars"""
        # run boundaries of True segments in a zero-padded int array
        padded = np.concatenate(([0], mask.astype(np.int8), [0]))
        edges = np.flatnonzero(np.diff(padded))
        if edges.size == 0:
            return 0
        starts, ends = edges[0::2], edges[1::2]
        return int((ends - starts).max())
