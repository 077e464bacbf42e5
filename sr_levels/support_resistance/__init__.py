"""
Support and Resistance Detection System
Pivot-based level detection, scoring and storage per timeframe tier

## Components

### 🎯 Detection
- Pivot highs/lows over a symmetric bar window (strict extrema)
- Touch counting of each pivot price across the whole lookback window

### 📊 Ranking
- Integer strength: touches x tier weight, plus a recency bonus
- Daily, H4 and H1 tiers weighted 5 / 3 / 1 by default

### 🗄️ Storage
- Bounded per-tier stores with insert-or-merge
- Consolidation of near-duplicate levels
- Expiry of levels not touched within the retention window

### 🔎 Queries
- Strongest support/resistance on the correct side of price
- Nearest support/resistance pair

## Usage Example

```python
from sr_levels.support_resistance import PivotDetector, TouchAnalyzer, LevelStore, Tier

pivots = PivotDetector(window=5).detect(series)
analyzer = TouchAnalyzer(tolerance=0.0010, min_touches=2)
store = LevelStore(Tier.DAILY, tolerance=0.0010)

for pivot in pivots:
    stats = analyzer.analyze(pivot.price, series)
    level = analyzer.to_level(pivot.price, stats, Tier.DAILY, strength=stats.touches * 5)
    if level is not None:
        store.insert_or_merge(level)
```
"""

from .models import (
    Tier,
    TIER_ORDER,
    PriceBar,
    BarSeries,
    PivotKind,
    PivotPoint,
    TouchStats,
    Level,
    LevelPair,
    InsertOutcome
)
from .pivots import PivotDetector
from .touches import TouchAnalyzer
from .scoring import StrengthScorer, calculate_strength
from .level_store import LevelStore
from .query import LevelQueryEngine

__all__ = [
    # Data model
    "Tier",
    "TIER_ORDER",
    "PriceBar",
    "BarSeries",
    "PivotKind",
    "PivotPoint",
    "TouchStats",
    "Level",
    "LevelPair",
    "InsertOutcome",

    # Detection and scoring
    "PivotDetector",
    "TouchAnalyzer",
    "StrengthScorer",
    "calculate_strength",

    # Storage and queries
    "LevelStore",
    "LevelQueryEngine"
]
