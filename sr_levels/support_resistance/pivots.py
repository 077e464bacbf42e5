"""
Pivot Detector
Local price extrema over a symmetric bar neighbourhood

A bar is a pivot high when its high is strictly greater than every other
high within `window` bars on each side; pivot lows use the same rule on
lows with strict less-than. Equal highs or lows (flat tops and bottoms)
never register.
"""

import logging
from typing import List

import numpy as np
from scipy.signal import argrelextrema

from .models import BarSeries, PivotKind, PivotPoint


class PivotDetector:
    """
    Detect pivot highs and lows in a most-recent-first bar series.
    """

    def __init__(self, window: int = 5, max_pivots: int = 100, min_bars: int = 10):
        self.window = window
        self.max_pivots = max_pivots
        self.min_bars = min_bars
        self.logger = logging.getLogger("PivotDetector")

    def detect(self, series: BarSeries) -> List[PivotPoint]:
        """
        Find pivots in index order, highs before lows at the same index.

        Only indices with a full neighbourhood (window <= i < N - window)
        are tested. Detection stops once max_pivots pivots are found, so
        the earliest pivots are kept. Returns an empty list when the series
        is too short.
        """
        n = len(series)
        if n < self.min_bars or n < 2 * self.window + 1:
            return []

        highs = self._interior_extrema(series.high, np.greater)
        lows = self._interior_extrema(series.low, np.less)

        candidates = [(i, PivotKind.HIGH) for i in highs] + [(i, PivotKind.LOW) for i in lows]
        # an outside bar can be both a high and a low; the high comes first
        candidates.sort(key=lambda c: (c[0], c[1] is PivotKind.LOW))

        pivots = []
        for idx, kind in candidates[:self.max_pivots]:
            price = series.high[idx] if kind is PivotKind.HIGH else series.low[idx]
            pivots.append(PivotPoint(
                price=float(price),
                timestamp=series.timestamps[idx],
                kind=kind,
                index=int(idx)
            ))

        if len(candidates) > self.max_pivots:
            self.logger.debug(
                f"Pivot cap reached: kept {self.max_pivots} of {len(candidates)} pivots"
            )

        return pivots

    def _interior_extrema(self, values: np.ndarray, comparator) -> np.ndarray:
        """Strict extrema restricted to indices with a full window on both sides"""
        (indices,) = argrelextrema(values, comparator, order=self.window)
        n = len(values)
        mask = (indices >= self.window) & (indices < n - self.window)
        return indices[mask]
