"""
Level Store for Support/Resistance System
Bounded per-tier collection of levels with merge, consolidation and expiry

Levels are kept in insertion order. That order is the tie-break for
consolidation and for strongest-level queries, so every mutation rebuilds
the list in place of shifting entries around.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Tuple

from ..utils.exceptions import ConfigurationException
from .models import InsertOutcome, Level, Tier


class LevelStore:
    """
    Fixed-capacity store of levels for one timeframe tier.

    Handles insert-or-merge of freshly scored candidates, pairwise
    consolidation of near-duplicates and time-based expiry. A candidate that
    arrives while the store is full and matches no existing level is
    dropped without raising.
    """

    def __init__(self, tier: Tier, tolerance: float, capacity: int = 500):
        if tolerance <= 0:
            raise ConfigurationException(
                f"Store tolerance must be positive, got {tolerance}",
                config_section="store",
                invalid_params={'tolerance': tolerance}
            )
        if capacity <= 0:
            raise ConfigurationException(
                f"Store capacity must be positive, got {capacity}",
                config_section="store",
                invalid_params={'capacity': capacity}
            )

        self.tier = tier
        self.tolerance = tolerance
        self.capacity = capacity
        self._levels: List[Level] = []

        self.logger = logging.getLogger(f"LevelStore.{tier.value}")

    @property
    def count(self) -> int:
        return len(self._levels)

    def __len__(self) -> int:
        return len(self._levels)

    def __iter__(self) -> Iterator[Level]:
        return iter(tuple(self._levels))

    def levels(self) -> Tuple[Level, ...]:
        """Snapshot of all stored levels in store order"""
        return tuple(self._levels)

    def active_levels(self) -> Tuple[Level, ...]:
        return tuple(level for level in self._levels if level.is_active)

    def insert_or_merge(self, candidate: Level) -> InsertOutcome:
        """
        Merge a candidate into a nearby active level or append it.

        The first active level within tolerance of the candidate decides the
        merge: the candidate takes its slot when its strength is greater or
        equal (it carries the recomputed touch data), otherwise the existing
        level stays. With no match the candidate is appended, or dropped when
        the store is at capacity.
        """
        match = self._find_nearby(candidate.price, self.tolerance)

        if match is not None:
            existing = self._levels[match]
            if candidate.strength >= existing.strength:
                self._levels[match] = candidate
                return InsertOutcome.REPLACED
            return InsertOutcome.MERGED_KEPT_EXISTING

        if len(self._levels) >= self.capacity:
            self.logger.debug(
                f"Store full ({self.capacity}), dropped level at {candidate.price}"
            )
            return InsertOutcome.DROPPED

        self._levels.append(candidate)
        return InsertOutcome.INSERTED

    def consolidate(self, multiplier: float = 1.0) -> int:
        """
        Merge active levels closer than tolerance * multiplier.

        Pairs are compared exhaustively; the stronger level survives in the
        earlier position, and on equal strength the earlier level wins.
        Passes repeat until no pair is left within range.

        Returns:
            Number of levels absorbed
        """
        limit = self.tolerance * multiplier
        absorbed = 0

        merged = True
        while merged:
            merged = False
            survivors: List[Optional[Level]] = list(self._levels)

            for i in range(len(survivors)):
                if survivors[i] is None or not survivors[i].is_active:
                    continue
                for j in range(i + 1, len(survivors)):
                    other = survivors[j]
                    if other is None or not other.is_active:
                        continue
                    if abs(survivors[i].price - other.price) <= limit:
                        if other.strength > survivors[i].strength:
                            survivors[i] = other
                        survivors[j] = None
                        absorbed += 1
                        merged = True

            self._levels = [level for level in survivors if level is not None]

        if absorbed:
            self.logger.debug(f"Consolidated {absorbed} levels (limit {limit})")

        return absorbed

    def expire(self, now: datetime, retention_seconds: int = 604800) -> int:
        """
        Remove levels whose last touch is older than the retention window.

        Survivors keep their relative order.

        Returns:
            Number of levels removed
        """
        cutoff = now - timedelta(seconds=retention_seconds)
        kept = [level for level in self._levels if level.last_touch_time >= cutoff]
        removed = len(self._levels) - len(kept)
        self._levels = kept

        if removed:
            self.logger.debug(f"Expired {removed} levels older than {cutoff.isoformat()}")

        return removed

    def clear(self):
        self._levels.clear()

    def _find_nearby(self, price: float, tolerance: float) -> Optional[int]:
        for idx, level in enumerate(self._levels):
            if level.is_active and abs(level.price - price) <= tolerance:
                return idx
        return None
