"""
Level Query Engine
Read-only proximity and strength queries across tier stores

Stores are scanned Daily, then H4, then H1, each in store order. That scan
order is the tie-break: the first level found with the best score wins.
Distance and strength are independent filters; a nearest level is not
implied to be strong.
"""

from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import numpy as np

from .level_store import LevelStore
from .models import TIER_ORDER, Level, LevelPair, Tier


class LevelQueryEngine:
    """
    Queries over an ordered set of tier stores.

    Every result is a frozen Level, so callers cannot change store state
    through it.
    """

    def __init__(
        self,
        stores: Mapping[Tier, LevelStore],
        tolerance: float,
        max_distance_multiplier: float = 50.0
    ):
        self.stores = stores
        self.tolerance = tolerance
        self.max_distance_multiplier = max_distance_multiplier

    @property
    def default_max_distance(self) -> float:
        return self.tolerance * self.max_distance_multiplier

    def _ordered_stores(self, tier: Optional[Tier] = None) -> Iterator[LevelStore]:
        for t in TIER_ORDER:
            if tier is not None and t != tier:
                continue
            store = self.stores.get(t)
            if store is not None:
                yield store

    def _active_levels(self, tier: Optional[Tier] = None) -> Iterator[Level]:
        for store in self._ordered_stores(tier):
            for level in store.levels():
                if level.is_active:
                    yield level

    def strongest_level(
        self,
        current_price: float,
        want_support: bool,
        max_distance: Optional[float] = None
    ) -> Optional[Level]:
        """
        Strongest active level of one polarity on the correct side of price.

        Supports must lie strictly below current_price, resistances strictly
        above, both within max_distance (default: 50 x tolerance). Equal
        strengths keep the first level in scan order.
        """
        if max_distance is None:
            max_distance = self.default_max_distance

        best: Optional[Level] = None
        for level in self._active_levels():
            if not self._on_side(level, current_price, want_support):
                continue
            if level.distance_to(current_price) > max_distance:
                continue
            if best is None or level.strength > best.strength:
                best = level

        return best

    def nearest_pair(
        self,
        current_price: float,
        max_distance: Optional[float] = None
    ) -> LevelPair:
        """
        Closest support below and closest resistance above current_price.

        No distance limit applies unless max_distance is given. Either side
        may be missing.
        """
        support: Optional[Level] = None
        resistance: Optional[Level] = None

        for level in self._active_levels():
            distance = level.distance_to(current_price)
            if max_distance is not None and distance > max_distance:
                continue

            if self._on_side(level, current_price, want_support=True):
                if support is None or distance < support.distance_to(current_price):
                    support = level
            if self._on_side(level, current_price, want_support=False):
                if resistance is None or distance < resistance.distance_to(current_price):
                    resistance = level

        return LevelPair(support=support, resistance=resistance)

    def active_level_count(self, tier: Optional[Tier] = None) -> int:
        return sum(1 for _ in self._active_levels(tier))

    def average_strength(self, tier: Optional[Tier] = None) -> float:
        """Mean strength of active levels, 0.0 when there are none"""
        strengths = [level.strength for level in self._active_levels(tier)]
        return float(np.mean(strengths)) if strengths else 0.0

    def is_near_level(
        self,
        price: float,
        tolerance: Optional[float] = None,
        want_support: Optional[bool] = None
    ) -> Tuple[bool, Optional[Level]]:
        """Check whether price sits within tolerance of an active level"""
        tolerance = self.tolerance if tolerance is None else tolerance

        for level in self._active_levels():
            if want_support is True and not level.is_support:
                continue
            if want_support is False and not level.is_resistance:
                continue
            if level.distance_to(price) <= tolerance:
                return True, level

        return False, None

    def get_statistics(self) -> Dict[str, Any]:
        """Per-tier and overall level statistics"""
        per_tier = {}
        for tier in TIER_ORDER:
            store = self.stores.get(tier)
            per_tier[tier.value] = {
                'active_levels': self.active_level_count(tier),
                'average_strength': self.average_strength(tier),
                'capacity': store.capacity if store is not None else 0
            }

        levels = list(self._active_levels())
        strongest = max(levels, key=lambda l: l.strength) if levels else None

        return {
            'total_levels': len(levels),
            'support_levels': sum(1 for l in levels if l.is_support),
            'resistance_levels': sum(1 for l in levels if l.is_resistance),
            'average_strength': self.average_strength(),
            'strongest_level': strongest.price if strongest else None,
            'tiers': per_tier
        }

    @staticmethod
    def _on_side(level: Level, current_price: float, want_support: bool) -> bool:
        if want_support:
            return level.is_support and level.price < current_price
        return level.is_resistance and level.price > current_price
