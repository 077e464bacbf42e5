"""
Support/Resistance Engine
Per-symbol scan cycle over the Daily, H4 and H1 tiers and the query API

Each scan fetches bars per tier, detects pivots, counts touches, scores
valid candidates and merges them into the tier stores. Once every tier has
been scanned the stores are expired and consolidated. Everything runs
synchronously on the caller's thread; scheduling belongs to the caller.
Bar times and the clock are compared as naive UTC.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .config.engine_config import EngineConfig, get_config
from .data.provider import MarketDataProvider, prepare_bars
from .support_resistance.level_store import LevelStore
from .support_resistance.models import (
    TIER_ORDER,
    BarSeries,
    InsertOutcome,
    Level,
    LevelPair,
    Tier
)
from .support_resistance.pivots import PivotDetector
from .support_resistance.query import LevelQueryEngine
from .support_resistance.scoring import StrengthScorer
from .support_resistance.touches import TouchAnalyzer
from .utils.exceptions import ConfigurationException, SRLevelsException, log_exception
from .utils.helpers import normalize_symbol, to_naive_utc, utc_now
from .utils.logger import LoggerMixin, get_engine_logger, log_performance_metrics

# Store-set key used when every symbol shares one set of tier stores
SHARED_STORE_KEY = "*"


@dataclass
class ScanReport:
    """Summary of one scan_symbol cycle"""
    symbol: str
    tiers_scanned: List[str] = field(default_factory=list)
    tiers_skipped: List[str] = field(default_factory=list)
    pivots: int = 0
    valid_candidates: int = 0
    inserted: int = 0
    merged: int = 0
    dropped: int = 0
    expired: int = 0
    consolidated: int = 0
    duration_ms: float = 0.0
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'tiers_scanned': list(self.tiers_scanned),
            'tiers_skipped': list(self.tiers_skipped),
            'pivots': self.pivots,
            'valid_candidates': self.valid_candidates,
            'inserted': self.inserted,
            'merged': self.merged,
            'dropped': self.dropped,
            'expired': self.expired,
            'consolidated': self.consolidated,
            'duration_ms': self.duration_ms,
            'timestamp': self.timestamp.isoformat()
        }


class SupportResistanceEngine(LoggerMixin):
    """
    Facade owning the tier stores and exposing the level query API.

    By default every symbol gets its own Daily/H4/H1 store set. With
    `shared_stores` enabled all symbols write into one set, which lets levels
    of different instruments merge with each other.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        super().__init__()

        config = config if config is not None else get_config()
        if not isinstance(config, EngineConfig):
            raise ConfigurationException(
                f"Expected EngineConfig, got {type(config).__name__}",
                config_section="engine"
            )
        if provider is None or not callable(getattr(provider, "fetch_bars", None)):
            raise ConfigurationException(
                "Provider must implement fetch_bars(symbol, tier, count)",
                config_section="provider"
            )

        self.config = config
        self.provider = provider
        self.clock = clock or utc_now

        self.pivot_detector = PivotDetector(
            window=config.pivot_window,
            max_pivots=config.max_pivots,
            min_bars=config.min_bars
        )
        self.scorer = StrengthScorer(
            weights=config.strength_weights(),
            bar_seconds={tier: settings.bar_seconds for tier, settings in config.tier_items()},
            recency_bars=config.recency_bars
        )

        self._stores: Dict[str, Dict[Tier, LevelStore]] = {}
        self._scanned_symbols: List[str] = []

        self.set_log_context(shared_stores=config.shared_stores)
        self.logger.info(
            "Support/resistance engine initialized",
            tiers=[tier.value for tier in TIER_ORDER],
            min_touches=config.min_touches,
            store_capacity=config.store_capacity
        )

    # === Scan cycle ===

    def scan_symbol(self, symbol: str) -> ScanReport:
        """
        Run one full scan cycle for a symbol.

        A tier whose bars cannot be fetched is logged and skipped; the other
        tiers and the expire/consolidate step still run.
        """
        symbol = normalize_symbol(symbol)
        start_time = time.time()
        report = ScanReport(symbol=symbol, timestamp=self._now())

        stores = self._store_set(symbol, create=True)
        analyzer = TouchAnalyzer(self.config.tolerance_for(symbol), self.config.min_touches)

        for tier in TIER_ORDER:
            settings = self.config.tier_settings(tier)
            series = self._fetch_series(symbol, tier, settings.lookback_bars)
            if series is None:
                report.tiers_skipped.append(tier.value)
                continue

            report.tiers_scanned.append(tier.value)
            self._scan_tier(symbol, tier, series, analyzer, stores[tier], report)

        now = self._now()
        for tier in TIER_ORDER:
            settings = self.config.tier_settings(tier)
            report.expired += stores[tier].expire(now, self.config.retention_seconds)
            report.consolidated += stores[tier].consolidate(settings.consolidation_multiplier)

        if symbol not in self._scanned_symbols:
            self._scanned_symbols.append(symbol)

        report.duration_ms = (time.time() - start_time) * 1000
        log_performance_metrics(
            get_engine_logger(symbol, operation="scan"),
            operation="scan_symbol",
            duration_seconds=report.duration_ms / 1000,
            additional_metrics={
                'tiers_scanned': report.tiers_scanned,
                'tiers_skipped': report.tiers_skipped,
                'inserted': report.inserted,
                'merged': report.merged,
                'dropped': report.dropped,
                'expired': report.expired,
                'consolidated': report.consolidated,
                'active_levels': self.active_level_count(symbol)
            }
        )

        return report

    def scan_all(self, symbols: Optional[Iterable[str]] = None) -> List[ScanReport]:
        """Scan every symbol sequentially; defaults to the configured symbols"""
        symbols = list(symbols) if symbols is not None else list(self.config.symbols)

        self.log_operation_start("scan_all", symbols=symbols)
        reports = [self.scan_symbol(symbol) for symbol in symbols]
        self.log_operation_end(
            "scan_all",
            symbols=len(reports),
            skipped_tiers=sum(len(r.tiers_skipped) for r in reports)
        )

        return reports

    def _fetch_series(self, symbol: str, tier: Tier, count: int) -> Optional[BarSeries]:
        """Fetch and prepare a tier's bars, or None when they are unavailable"""
        logger = get_engine_logger(symbol, tier=tier.value, operation="fetch")
        try:
            payload = self.provider.fetch_bars(symbol, tier, count)
            return prepare_bars(
                payload,
                count=count,
                min_bars=self.config.min_bars,
                symbol=symbol,
                tier=tier
            )
        except (SRLevelsException, OSError) as e:
            log_exception(logger, e, {'requested_bars': count})
            return None

    def _now(self) -> datetime:
        """Clock reading as naive UTC, matching prepared bar timestamps"""
        return to_naive_utc(self.clock())

    def _scan_tier(
        self,
        symbol: str,
        tier: Tier,
        series: BarSeries,
        analyzer: TouchAnalyzer,
        store: LevelStore,
        report: ScanReport
    ):
        pivots = self.pivot_detector.detect(series)
        report.pivots += len(pivots)
        reference_time = series.latest_time

        for pivot in pivots:
            stats = analyzer.analyze(pivot.price, series)
            if not stats.is_valid(self.config.min_touches):
                continue

            strength = self.scorer.score(stats, tier, reference_time)
            level = analyzer.to_level(pivot.price, stats, tier, strength, symbol)
            report.valid_candidates += 1

            outcome = store.insert_or_merge(level)
            if outcome is InsertOutcome.INSERTED:
                report.inserted += 1
            elif outcome is InsertOutcome.DROPPED:
                report.dropped += 1
            else:
                report.merged += 1

        get_engine_logger(symbol, tier=tier.value, operation="scan").debug(
            "Tier scanned",
            bars=len(series),
            pivots=len(pivots),
            store_count=store.count
        )

    # === Stores ===

    def _store_key(self, symbol: str) -> str:
        return SHARED_STORE_KEY if self.config.shared_stores else symbol

    def _store_set(self, symbol: str, create: bool = False) -> Dict[Tier, LevelStore]:
        key = self._store_key(symbol)
        if key not in self._stores:
            if not create:
                return {}
            tolerance = self.config.tolerance_for(None if key == SHARED_STORE_KEY else symbol)
            self._stores[key] = {
                tier: LevelStore(tier, tolerance, self.config.store_capacity)
                for tier in TIER_ORDER
            }
        return self._stores[key]

    @property
    def symbols(self) -> List[str]:
        """Symbols scanned at least once"""
        return list(self._scanned_symbols)

    def reset(self, symbol: Optional[str] = None):
        """Drop stored levels for one symbol, or for all symbols"""
        if symbol is None:
            self._stores.clear()
            self._scanned_symbols.clear()
        else:
            symbol = normalize_symbol(symbol)
            self._stores.pop(self._store_key(symbol), None)
            if symbol in self._scanned_symbols:
                self._scanned_symbols.remove(symbol)

        self.logger.info("Level stores reset", symbol=symbol)

    # === Query API ===

    def query(self, symbol: str) -> LevelQueryEngine:
        symbol = normalize_symbol(symbol)
        return LevelQueryEngine(
            self._store_set(symbol),
            tolerance=self.config.tolerance_for(symbol),
            max_distance_multiplier=self.config.max_distance_multiplier
        )

    def strongest_level(
        self,
        symbol: str,
        current_price: float,
        want_support: bool,
        max_distance: Optional[float] = None
    ) -> Optional[Level]:
        return self.query(symbol).strongest_level(current_price, want_support, max_distance)

    def nearest_pair(
        self,
        symbol: str,
        current_price: float,
        max_distance: Optional[float] = None
    ) -> LevelPair:
        return self.query(symbol).nearest_pair(current_price, max_distance)

    def active_level_count(self, symbol: str, tier: Optional[Tier] = None) -> int:
        return self.query(symbol).active_level_count(tier)

    def average_strength(self, symbol: str, tier: Optional[Tier] = None) -> float:
        return self.query(symbol).average_strength(tier)

    def levels(self, symbol: str, tier: Optional[Tier] = None) -> Tuple[Level, ...]:
        """Snapshot of stored levels, Daily then H4 then H1"""
        stores = self._store_set(normalize_symbol(symbol))
        result: List[Level] = []
        for t in TIER_ORDER:
            if tier is not None and t != tier:
                continue
            if t in stores:
                result.extend(stores[t].levels())
        return tuple(result)
