"""
Strength Scorer
Ranking key for levels: touch count weighted by tier plus a recency bonus
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from .models import Tier, TouchStats


def calculate_strength(touches: int, tier_weight: int, has_recent_touch: bool) -> int:
    """
    Integer ranking key of a level.

    touches * tier_weight, plus tier_weight // 2 when the level was touched
    recently. The value is a comparison key and is never normalized.
    """
    return touches * tier_weight + (tier_weight // 2 if has_recent_touch else 0)


class StrengthScorer:
    """
    Score touch statistics per tier.

    A touch is recent when it falls within `recency_bars` bars of the tier's
    timeframe before the newest bar of the scanned series.
    """

    def __init__(
        self,
        weights: Dict[str, int],
        bar_seconds: Dict[str, int],
        recency_bars: int = 20
    ):
        self.weights = {Tier(k): int(v) for k, v in weights.items()}
        self.bar_seconds = {Tier(k): int(v) for k, v in bar_seconds.items()}
        self.recency_bars = recency_bars

    def weight(self, tier: Tier) -> int:
        return self.weights[tier]

    def recency_window(self, tier: Tier) -> timedelta:
        return timedelta(seconds=self.recency_bars * self.bar_seconds[tier])

    def has_recent_touch(
        self,
        last_touch_time: Optional[datetime],
        reference_time: Optional[datetime],
        tier: Tier
    ) -> bool:
        if last_touch_time is None or reference_time is None:
            return False
        return last_touch_time >= reference_time - self.recency_window(tier)

    def score(self, stats: TouchStats, tier: Tier, reference_time: Optional[datetime]) -> int:
        return calculate_strength(
            stats.touches,
            self.weight(tier),
            self.has_recent_touch(stats.last_touch_time, reference_time, tier)
        )
