"""
Pytest configuration and shared fixtures for the wardrobe cache tests.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from wardrobe_cache.entities import CacheEntryEntity
from wardrobe_cache.exceptions import DuplicateEntryError, StoreUnavailableError
from wardrobe_cache.services import CacheService, InvalidationPolicy, KeyComposer


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryCacheStore:
    """Dict-backed CacheStore with a switch to simulate an outage."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], CacheEntryEntity] = {}
        self.available = True

    def _check(self) -> None:
        if not self.available:
            raise StoreUnavailableError("store is down")

    def select(self, user_id, request_hash):
        self._check()
        return self.rows.get((user_id, request_hash))

    def insert(self, entry):
        self._check()
        key = (entry.user_id, entry.request_hash)
        if key in self.rows:
            raise DuplicateEntryError(entry.user_id, entry.request_hash)
        self.rows[key] = entry

    def touch(self, user_id, request_hash, accessed_at):
        self._check()
        entry = self.rows.get((user_id, request_hash))
        if entry is None:
            return False
        self.rows[(user_id, request_hash)] = replace(
            entry, access_count=entry.access_count + 1, last_accessed_at=accessed_at
        )
        return True

    def delete(self, user_id, request_hash):
        self._check()
        return self.rows.pop((user_id, request_hash), None) is not None

    def delete_older_than(self, cutoff, only_unused=False):
        self._check()
        doomed = [
            key
            for key, entry in self.rows.items()
            if entry.created_at < cutoff and (not only_unused or entry.access_count == 0)
        ]
        for key in doomed:
            del self.rows[key]
        return len(doomed)

    def list_entries(self, user_id=None):
        self._check()
        return [e for e in self.rows.values() if user_id is None or e.user_id == user_id]

    def count_all(self):
        self._check()
        return len(self.rows)

    def health_check(self):
        return self.available

    def get_stats(self):
        return {"backend": "memory", "total_entries": self.count_all()}


class StubGenerator:
    """ResponseGenerator returning canned text."""

    model_name = "stub"

    def __init__(self, text: str = '{"name": "Look A"}', error: Exception | None = None, delay: float = 0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, dict | None]] = []

    async def generate(self, prompt, options=None):
        self.calls.append((prompt, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text

    async def is_available(self):
        return True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FixedClock:
    """Mid-April, so the computed season is spring."""
    return FixedClock(datetime(2024, 4, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def composer(clock) -> KeyComposer:
    return KeyComposer(clock=clock)


@pytest.fixture
def service(store, clock) -> CacheService:
    return CacheService(
        repository=store,
        policy=InvalidationPolicy(max_age_ms=24 * 60 * 60 * 1000, clock=clock),
        clock=clock,
        default_strategy="balanced",
    )


@pytest.fixture
def generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def sample_items() -> list[dict]:
    return [
        {"id": "a", "category": "Tops", "color": "Black"},
        {"id": "b", "category": "Bottoms", "color": "Blue"},
    ]


@pytest.fixture
def tagged_items() -> list[dict]:
    """Items in the joined row shape, with brands and style tags."""
    return [
        {
            "id": "b",
            "category": {"name": "Bottoms"},
            "color": "Blue",
            "brand": "Levi's",
            "clothing_item_style_tags": [
                {"style_tag": {"name": "denim"}},
                {"style_tag": {"name": "casual"}},
            ],
        },
        {
            "id": "a",
            "category": {"name": "Tops"},
            "color": "Black",
            "brand": "Uniqlo",
            "clothing_item_style_tags": [
                {"style_tag": {"name": "minimal"}},
                {"style_tag": {"name": "basic"}},
                {"style_tag": {"name": "layering"}},
                {"style_tag": {"name": "cotton"}},
            ],
        },
    ]
