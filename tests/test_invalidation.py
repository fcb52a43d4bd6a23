"""
Tests for the staleness rules.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FixedClock
from wardrobe_cache.entities import CacheEntryEntity, UserContext
from wardrobe_cache.services import InvalidationPolicy, InvalidationReason

DAY_MS = 24 * 60 * 60 * 1000


def make_entry(created_at: datetime, season: str | None = "spring") -> CacheEntryEntity:
    request_data = {"seasonal_context": {"season": season}} if season else {}
    return CacheEntryEntity(
        user_id="u1",
        request_hash="k" * 32,
        request_data=request_data,
        response={"name": "Look A"},
        created_at=created_at,
        last_accessed_at=created_at,
    )


def evolution(additions: list, analysed_at: datetime) -> UserContext:
    return UserContext.from_dict(
        {
            "wardrobe_evolution": {
                "recent_additions": additions,
                "last_analysis_date": analysed_at.isoformat(),
            }
        }
    )


@pytest.fixture
def policy(clock) -> InvalidationPolicy:
    return InvalidationPolicy(max_age_ms=DAY_MS, clock=clock)


class TestAgeRule:
    def test_fresh_entry_is_valid(self, policy, clock):
        assert policy.check(make_entry(clock.now)) is None

    def test_exactly_max_age_is_still_valid(self, policy, clock):
        assert policy.is_valid(make_entry(clock.now - timedelta(days=1)))

    def test_one_ms_past_max_age(self, policy, clock):
        entry = make_entry(clock.now - timedelta(days=1, milliseconds=1))
        assert policy.check(entry) is InvalidationReason.AGE

    def test_age_is_checked_first(self, policy, clock):
        created = clock.now - timedelta(days=2)
        entry = make_entry(created, season="winter")
        context = evolution(["x"], clock.now)
        assert policy.check(entry, context) is InvalidationReason.AGE


class TestWardrobeEvolutionRule:
    def test_new_items_after_entry(self, policy, clock):
        entry = make_entry(clock.now - timedelta(hours=2))
        context = evolution(["new-jacket"], clock.now - timedelta(hours=1))
        assert policy.check(entry, context) is InvalidationReason.WARDROBE_EVOLVED

    def test_no_new_items(self, policy, clock):
        entry = make_entry(clock.now - timedelta(hours=2))
        context = evolution([], clock.now - timedelta(hours=1))
        assert policy.check(entry, context) is None

    def test_analysis_before_entry(self, policy, clock):
        entry = make_entry(clock.now - timedelta(hours=1))
        context = evolution(["new-jacket"], clock.now - timedelta(hours=2))
        assert policy.check(entry, context) is None

    def test_analysis_at_entry_time_is_not_after(self, policy, clock):
        created = clock.now - timedelta(hours=1)
        assert policy.check(make_entry(created), evolution(["x"], created)) is None

    def test_missing_analysis_date(self, policy, clock):
        context = UserContext.from_dict({"wardrobe_evolution": {"recent_additions": ["x"]}})
        assert policy.check(make_entry(clock.now), context) is None


class TestSeasonRule:
    def test_summer_entry_in_winter(self):
        clock = FixedClock(datetime(2024, 1, 20, tzinfo=timezone.utc))
        policy = InvalidationPolicy(max_age_ms=DAY_MS, clock=clock)
        entry = make_entry(clock.now - timedelta(hours=1), season="summer")
        assert policy.check(entry) is InvalidationReason.SEASON_CHANGED

    def test_same_season(self, policy, clock):
        assert policy.check(make_entry(clock.now, season="spring")) is None

    def test_no_stored_season(self, policy, clock):
        assert policy.check(make_entry(clock.now, season=None)) is None

    def test_season_boundary(self):
        clock = FixedClock(datetime(2024, 4, 1, 0, 30, tzinfo=timezone.utc))
        policy = InvalidationPolicy(max_age_ms=DAY_MS, clock=clock)
        # written at the end of March (winter), read an hour later in April
        entry = make_entry(clock.now - timedelta(hours=1), season="winter")
        assert policy.check(entry) is InvalidationReason.SEASON_CHANGED


def test_default_max_age_comes_from_settings():
    from wardrobe_cache.config import settings

    assert InvalidationPolicy().max_age == timedelta(milliseconds=settings.cache_max_age_ms)
