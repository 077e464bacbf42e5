"""
Tests for the bounded per-tier level store.
"""

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from sr_levels.support_resistance.level_store import LevelStore
from sr_levels.support_resistance.models import InsertOutcome, Tier
from sr_levels.utils.exceptions import ConfigurationException


@pytest.fixture
def store():
    return LevelStore(Tier.DAILY, tolerance=0.0005, capacity=500)


def _pairwise_gaps(levels):
    return [
        abs(a.price - b.price)
        for i, a in enumerate(levels)
        for b in levels[i + 1:]
    ]


class TestInsertOrMerge:
    """Tests for LevelStore.insert_or_merge"""

    def test_insert_new_level(self, store, level_factory):
        outcome = store.insert_or_merge(level_factory(1.2000))

        assert outcome is InsertOutcome.INSERTED
        assert store.count == 1

    def test_stronger_candidate_replaces(self, store, level_factory):
        store.insert_or_merge(level_factory(1.2000, strength=6))

        outcome = store.insert_or_merge(level_factory(1.2003, strength=9))

        assert outcome is InsertOutcome.REPLACED
        assert store.count == 1
        assert store.levels()[0].price == 1.2003
        assert store.levels()[0].strength == 9

    def test_weaker_candidate_keeps_existing(self, store, level_factory):
        store.insert_or_merge(level_factory(1.2000, strength=9))

        outcome = store.insert_or_merge(level_factory(1.2003, strength=6))

        assert outcome is InsertOutcome.MERGED_KEPT_EXISTING
        assert store.levels()[0].price == 1.2000

    def test_equal_strength_candidate_replaces(self, store, level_factory, newest_bar):
        """A rescan with identical strength refreshes the touch data"""
        store.insert_or_merge(level_factory(1.2000, strength=9, last_touch=newest_bar - timedelta(days=3)))

        outcome = store.insert_or_merge(level_factory(1.2000, strength=9, last_touch=newest_bar))

        assert outcome is InsertOutcome.REPLACED
        assert store.levels()[0].last_touch_time == newest_bar

    def test_first_match_in_store_order(self, store, level_factory):
        """Only the first level within tolerance takes part in the merge"""
        store.insert_or_merge(level_factory(1.2000, strength=3))
        store.insert_or_merge(level_factory(1.2008, strength=3))

        store.insert_or_merge(level_factory(1.2004, strength=5))

        assert [l.price for l in store.levels()] == [1.2004, 1.2008]

    def test_inactive_levels_do_not_match(self, store, level_factory):
        store.insert_or_merge(level_factory(1.2000, is_active=False))

        outcome = store.insert_or_merge(level_factory(1.2001))

        assert outcome is InsertOutcome.INSERTED
        assert store.count == 2
        assert len(store.active_levels()) == 1

    def test_capacity_drops_without_raising(self, level_factory):
        store = LevelStore(Tier.H1, tolerance=0.0005, capacity=3)

        outcomes = [store.insert_or_merge(level_factory(1.0 + i * 0.01)) for i in range(5)]

        assert outcomes[:3] == [InsertOutcome.INSERTED] * 3
        assert outcomes[3:] == [InsertOutcome.DROPPED] * 2
        assert store.count == 3

    def test_full_store_still_merges(self, level_factory):
        """A candidate matching an existing level is merged even at capacity"""
        store = LevelStore(Tier.H1, tolerance=0.0005, capacity=2)
        store.insert_or_merge(level_factory(1.10, strength=2))
        store.insert_or_merge(level_factory(1.20, strength=2))

        outcome = store.insert_or_merge(level_factory(1.2002, strength=4))

        assert outcome is InsertOutcome.REPLACED
        assert store.count == 2

    def test_count_never_exceeds_capacity(self, level_factory):
        store = LevelStore(Tier.H4, tolerance=0.0001, capacity=10)

        for i in range(50):
            store.insert_or_merge(level_factory(1.0 + i * 0.001, strength=i))
            assert store.count <= store.capacity


class TestConsolidate:
    """Tests for LevelStore.consolidate"""

    def test_near_duplicates_collapse_to_strongest(self, level_factory):
        store = LevelStore(Tier.DAILY, tolerance=0.0005)
        store._levels = [level_factory(1.2001, strength=6), level_factory(1.2003, strength=9)]

        absorbed = store.consolidate()

        assert absorbed == 1
        assert [(l.price, l.strength) for l in store.levels()] == [(1.2003, 9)]

    def test_equal_strength_keeps_earlier(self, level_factory):
        store = LevelStore(Tier.DAILY, tolerance=0.0005)
        store._levels = [level_factory(1.2001, strength=7), level_factory(1.2003, strength=7)]

        store.consolidate()

        assert [l.price for l in store.levels()] == [1.2001]

    def test_chain_keeps_strongest_and_spacing(self, level_factory):
        """The survivor of a chain is compared again against later levels"""
        store = LevelStore(Tier.DAILY, tolerance=0.0005)
        store._levels = [
            level_factory(1.0000, strength=3),
            level_factory(1.0004, strength=9),
            level_factory(1.0008, strength=5),
        ]

        absorbed = store.consolidate()

        assert absorbed == 2
        assert [(l.price, l.strength) for l in store.levels()] == [(1.0004, 9)]

    def test_no_pair_left_within_limit(self, level_factory):
        store = LevelStore(Tier.DAILY, tolerance=0.0005)
        store._levels = [
            level_factory(1.0000, strength=5),
            level_factory(1.0004, strength=3),
            level_factory(1.0008, strength=8),
            level_factory(1.0020, strength=1),
        ]

        absorbed = store.consolidate()

        assert absorbed == 1
        assert [l.price for l in store.levels()] == [1.0000, 1.0008, 1.0020]
        assert all(gap > 0.0005 for gap in _pairwise_gaps(store.levels()))

    def test_multiplier_widens_limit(self, level_factory):
        store = LevelStore(Tier.DAILY, tolerance=0.0005)
        store._levels = [level_factory(1.2000, strength=4), level_factory(1.2008, strength=6)]

        assert store.consolidate(multiplier=1.0) == 0
        assert store.consolidate(multiplier=2.0) == 1
        assert [l.price for l in store.levels()] == [1.2008]

    def test_max_strength_preserved(self, level_factory):
        store = LevelStore(Tier.H4, tolerance=0.0010)
        store._levels = [level_factory(1.1 + i * 0.0003, strength=s) for i, s in enumerate([4, 7, 2, 11, 5, 3])]

        store.consolidate(multiplier=1.5)

        assert max(l.strength for l in store.levels()) == 11
        assert all(gap > 0.0015 for gap in _pairwise_gaps(store.levels()))

    def test_count_non_increasing(self, level_factory):
        store = LevelStore(Tier.H1, tolerance=0.0005)
        store._levels = [level_factory(1.0 + i * 0.0002) for i in range(20)]
        before = store.count

        store.consolidate()

        assert store.count <= before


class TestExpire:
    """Tests for LevelStore.expire"""

    def test_removes_exactly_stale_levels(self, store, level_factory, newest_bar):
        week = 604800
        fresh = level_factory(1.10, last_touch=newest_bar - timedelta(days=1))
        boundary = level_factory(1.20, last_touch=newest_bar - timedelta(seconds=week))
        stale = level_factory(1.30, last_touch=newest_bar - timedelta(seconds=week + 1))
        for level in (fresh, stale, boundary):
            store.insert_or_merge(level)

        removed = store.expire(newest_bar, retention_seconds=week)

        assert removed == 1
        assert [l.price for l in store.levels()] == [1.10, 1.20]

    def test_survivors_keep_order(self, store, level_factory, newest_bar):
        prices = [1.15, 1.05, 1.25, 1.10, 1.20]
        for i, price in enumerate(prices):
            age = timedelta(days=30) if i % 2 else timedelta(hours=1)
            store.insert_or_merge(level_factory(price, last_touch=newest_bar - age))

        store.expire(newest_bar)

        assert [l.price for l in store.levels()] == [1.15, 1.25, 1.20]


class TestLevelStoreConstruction:
    """Tests for store validation and snapshots"""

    @pytest.mark.parametrize("tolerance,capacity", [(0.0, 10), (-0.1, 10), (0.001, 0)])
    def test_invalid_parameters(self, tolerance, capacity):
        with pytest.raises(ConfigurationException):
            LevelStore(Tier.DAILY, tolerance=tolerance, capacity=capacity)

    def test_levels_are_snapshots(self, store, level_factory):
        store.insert_or_merge(level_factory(1.2000))
        snapshot = store.levels()

        with pytest.raises(FrozenInstanceError):
            snapshot[0].strength = 99

        store.clear()

        assert len(snapshot) == 1
        assert store.count == 0
