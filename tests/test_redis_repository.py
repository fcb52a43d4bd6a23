"""
Tests for the Redis repository, backed by fakeredis.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import fakeredis
import pytest
import redis

from wardrobe_cache.entities import CacheEntryEntity
from wardrobe_cache.exceptions import DuplicateEntryError, StoreUnavailableError
from wardrobe_cache.repositories import RedisCacheRepository

NOW = datetime(2024, 4, 15, 12, 0, tzinfo=timezone.utc)


def make_entry(user_id="u1", request_hash="a" * 32, created_at=NOW, access_count=0):
    return CacheEntryEntity(
        user_id=user_id,
        request_hash=request_hash,
        request_data={"prompt_type": "outfit-generation", "seasonal_context": {"season": "spring"}},
        response={"name": "Look A", "items": ["a", "b"]},
        created_at=created_at,
        last_accessed_at=created_at,
        access_count=access_count,
    )


@pytest.fixture
def client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def repository(client) -> RedisCacheRepository:
    return RedisCacheRepository(redis_client=client, key_prefix="test_cache", ttl=3600)


class TestRedisCacheRepository:
    def test_insert_and_select(self, repository):
        entry = make_entry()
        repository.insert(entry)

        assert repository.select("u1", entry.request_hash) == entry

    def test_select_missing(self, repository):
        assert repository.select("u1", "missing") is None

    def test_rows_are_scoped_by_user(self, repository):
        repository.insert(make_entry(user_id="u1"))

        assert repository.select("u2", "a" * 32) is None
        repository.insert(make_entry(user_id="u2"))
        assert repository.count_all() == 2

    def test_duplicate_insert(self, repository):
        repository.insert(make_entry())

        with pytest.raises(DuplicateEntryError) as exc_info:
            repository.insert(make_entry())
        assert exc_info.value.user_id == "u1"

    def test_ttl_is_set(self, repository, client):
        repository.insert(make_entry())
        assert 0 < client.ttl(f"test_cache:u1:{'a' * 32}") <= 3600

    def test_touch(self, repository):
        repository.insert(make_entry())
        later = NOW + timedelta(minutes=5)

        assert repository.touch("u1", "a" * 32, NOW + timedelta(minutes=1))
        assert repository.touch("u1", "a" * 32, later)

        entry = repository.select("u1", "a" * 32)
        assert entry.access_count == 2
        assert entry.last_accessed_at == later
        assert entry.created_at == NOW

    def test_touch_missing(self, repository):
        assert repository.touch("u1", "missing", NOW) is False

    def test_delete(self, repository):
        repository.insert(make_entry())

        assert repository.delete("u1", "a" * 32) is True
        assert repository.delete("u1", "a" * 32) is False

    def test_delete_older_than(self, repository):
        repository.insert(make_entry(request_hash="old", created_at=NOW - timedelta(days=10)))
        repository.insert(
            make_entry(request_hash="old-used", created_at=NOW - timedelta(days=10), access_count=2)
        )
        repository.insert(make_entry(request_hash="new"))
        cutoff = NOW - timedelta(days=7)

        assert repository.delete_older_than(cutoff, only_unused=True) == 1
        assert repository.delete_older_than(cutoff) == 1
        assert [e.request_hash for e in repository.list_entries()] == ["new"]

    def test_list_entries_by_user(self, repository):
        repository.insert(make_entry(user_id="u1", request_hash="x"))
        repository.insert(make_entry(user_id="u2", request_hash="y"))

        assert [e.request_hash for e in repository.list_entries("u2")] == ["y"]
        assert len(repository.list_entries()) == 2

    def test_list_entries_treats_user_id_literally(self, repository):
        repository.insert(make_entry(user_id="u1", request_hash="x"))
        repository.insert(make_entry(user_id="u1:extra", request_hash="y"))
        repository.insert(make_entry(user_id="u[12]", request_hash="z"))

        assert repository.list_entries("*") == []
        assert repository.list_entries("u?") == []
        assert [e.request_hash for e in repository.list_entries("u1")] == ["x"]
        assert [e.request_hash for e in repository.list_entries("u[12]")] == ["z"]

    def test_other_prefixes_are_ignored(self, repository, client):
        client.set("other:key", "value")
        repository.insert(make_entry())
        assert repository.count_all() == 1

    def test_health_and_stats(self, repository):
        repository.insert(make_entry())

        assert repository.health_check() is True
        assert repository.get_stats() == {
            "backend": "redis",
            "key_prefix": "test_cache",
            "total_entries": 1,
            "ttl": 3600,
        }


class TestRedisFailures:
    @pytest.fixture
    def broken(self) -> RedisCacheRepository:
        client = MagicMock()
        client.hgetall.side_effect = redis.ConnectionError("connection refused")
        client.delete.side_effect = redis.ConnectionError("connection refused")
        client.ping.side_effect = redis.ConnectionError("connection refused")
        client.scan_iter.side_effect = redis.ConnectionError("connection refused")
        return RedisCacheRepository(redis_client=client, key_prefix="test_cache", ttl=60)

    def test_select_raises_store_unavailable(self, broken):
        with pytest.raises(StoreUnavailableError):
            broken.select("u1", "k")

    def test_delete_raises_store_unavailable(self, broken):
        with pytest.raises(StoreUnavailableError):
            broken.delete("u1", "k")

    def test_scan_raises_store_unavailable(self, broken):
        with pytest.raises(StoreUnavailableError):
            broken.delete_older_than(NOW)
        with pytest.raises(StoreUnavailableError):
            broken.list_entries()

    def test_health_check_reports_false(self, broken):
        assert broken.health_check() is False
