"""
Tests for proactive cache warming.
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import StubGenerator
from wardrobe_cache.entities import CacheEntryEntity, UserContext
from wardrobe_cache.exceptions import GenerationError
from wardrobe_cache.services import CacheWarmer, WarmingPattern, WarmingPriority
from wardrobe_cache.services.warming import pattern_priority


def add_served_entry(store, clock, request_hash, access_count, accessed_ago, occasion="work", created_ago=None):
    accessed_at = clock.now - accessed_ago
    store.insert(
        CacheEntryEntity(
            user_id="u1",
            request_hash=request_hash,
            request_data={
                "prompt_type": "outfit-generation",
                "context": {"occasion": occasion},
                "user_context": {"preferences": {"style": "minimalist"}},
            },
            response={"name": "Look"},
            created_at=clock.now - (created_ago or accessed_ago),
            last_accessed_at=accessed_at,
            access_count=access_count,
        )
    )


@pytest.fixture
def warmer(service, generator, clock) -> CacheWarmer:
    return CacheWarmer(service, generator, interval_minutes=60, retry_delay=0, clock=clock)


class TestPatternPriority:
    def test_priorities(self, clock):
        assert pattern_priority(10, clock.now - timedelta(hours=12), clock.now) is WarmingPriority.HIGH
        assert pattern_priority(10, clock.now - timedelta(days=2), clock.now) is WarmingPriority.MEDIUM
        assert pattern_priority(5, clock.now - timedelta(days=3), clock.now) is WarmingPriority.MEDIUM
        assert pattern_priority(4, clock.now - timedelta(hours=1), clock.now) is WarmingPriority.LOW
        assert pattern_priority(50, clock.now - timedelta(days=4), clock.now) is WarmingPriority.LOW


class TestAnalyzeAndPlan:
    @pytest.mark.asyncio
    async def test_analyze_patterns(self, warmer, store, clock):
        add_served_entry(store, clock, "popular", 15, timedelta(hours=12), occasion="work")
        add_served_entry(store, clock, "steady", 6, timedelta(days=3), occasion="date")
        add_served_entry(store, clock, "once", 1, timedelta(hours=5))
        add_served_entry(store, clock, "stale", 30, timedelta(days=10))

        patterns = await warmer.analyze_patterns()

        assert [p.context["occasion"] for p in patterns] == ["work", "date"]
        assert [p.priority for p in patterns] == [WarmingPriority.HIGH, WarmingPriority.MEDIUM]
        assert patterns[0].frequency == 15
        assert patterns[0].items == []
        assert patterns[0].user_context.preferences.style == "minimalist"

    @pytest.mark.asyncio
    async def test_store_down_yields_no_patterns(self, warmer, store):
        store.available = False
        assert await warmer.analyze_patterns() == []

    def test_plan_skips_recent_and_orders_by_priority(self, warmer, clock):
        patterns = [
            WarmingPattern("u1", "outfit-generation", {"occasion": "gym"}, last_requested=clock.now - timedelta(hours=5)),
            WarmingPattern(
                "u1", "outfit-generation", {"occasion": "work"},
                last_requested=clock.now - timedelta(hours=3), priority=WarmingPriority.HIGH,
            ),
            WarmingPattern(
                "u1", "outfit-generation", {"occasion": "date"},
                last_requested=clock.now - timedelta(minutes=30), priority=WarmingPriority.HIGH,
            ),
        ]

        jobs = warmer.plan_jobs(patterns)

        assert [job.pattern.context["occasion"] for job in jobs] == ["work", "gym"]
        assert len({job.id for job in jobs}) == 2


class TestWarmingCycle:
    @pytest.mark.asyncio
    async def test_cycle_generates_and_cleans_up(self, warmer, service, store, generator, clock):
        add_served_entry(store, clock, "popular", 15, timedelta(hours=12))
        add_served_entry(store, clock, "unused-old", 0, timedelta(days=8))

        await warmer.run_cycle()

        assert len(generator.calls) == 1
        warmed = service.compose_key(
            "u1",
            [],
            {"occasion": "work"},
            "outfit-generation",
            UserContext.from_dict({"preferences": {"style": "minimalist"}}),
            strategy="performance",
        )
        keys = {request_hash for _, request_hash in store.rows}
        assert keys == {"popular", warmed.key}

        stats = warmer.get_stats()
        assert stats["completed_jobs"] == 1
        assert stats["total_patterns"] == 1
        assert stats["last_run"] is not None

    @pytest.mark.asyncio
    async def test_second_cycle_skips_cached_pattern(self, warmer, store, generator, clock):
        add_served_entry(store, clock, "popular", 15, timedelta(hours=12))

        await warmer.run_cycle()
        await warmer.run_cycle()

        assert len(generator.calls) == 1
        assert warmer.get_stats()["skipped_jobs"] == 1

    @pytest.mark.asyncio
    async def test_job_table_does_not_grow_across_cycles(self, warmer, store, clock):
        add_served_entry(store, clock, "popular", 15, timedelta(hours=12))

        for _ in range(3):
            await warmer.run_cycle()
            clock.advance(minutes=30)

        stats = warmer.get_stats()
        job_count = sum(
            stats[name] for name in ("active_jobs", "completed_jobs", "skipped_jobs", "failed_jobs")
        )
        assert job_count == 1
        assert stats["skipped_jobs"] == 1

    @pytest.mark.asyncio
    async def test_failed_job_is_retried_then_marked_failed(self, service, store, clock):
        failing = StubGenerator(error=GenerationError("quota exceeded"))
        warmer = CacheWarmer(service, failing, retry_delay=0, clock=clock)
        add_served_entry(store, clock, "popular", 15, timedelta(hours=12))

        await warmer.run_cycle()

        assert len(failing.calls) == 3
        assert warmer.get_stats()["failed_jobs"] == 1
        assert store.count_all() == 1


class TestExplicitWarming:
    @pytest.mark.asyncio
    async def test_warm_patterns(self, warmer, service, store, generator):
        requests = [
            {"prompt_type": "outfit-generation", "context": {"occasion": "work"}},
            {"prompt_type": "wardrobe-analysis"},
        ]

        assert await warmer.warm_patterns("u1", requests) == 2
        assert store.count_all() == 2

        key = service.compose_key("u1", [], {"occasion": "work"}, "outfit-generation", strategy="performance")
        assert ("u1", key.key) in store.rows

        assert await warmer.warm_patterns("u1", requests) == 0
        assert len(generator.calls) == 2


class TestBackgroundService:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, warmer):
        warmer.start()
        assert warmer.is_running
        await asyncio.sleep(0.01)

        await warmer.stop()
        assert not warmer.is_running
        assert warmer.get_stats()["last_run"] is not None
