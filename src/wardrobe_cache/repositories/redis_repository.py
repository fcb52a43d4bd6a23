"""Redis implementation of CacheStore.

Each cache entry is one Redis hash at ``{prefix}:{user_id}:{request_hash}``,
so the (user_id, request_hash) uniqueness constraint is the key itself.
It's the default implementation and satisfies the CacheStore protocol.
"""

import json
import logging
import re
from datetime import datetime

import redis

from wardrobe_cache.config import get_redis_client, settings
from wardrobe_cache.entities import CacheEntryEntity
from wardrobe_cache.exceptions import DuplicateEntryError, StoreUnavailableError
from wardrobe_cache.utils.clock import parse_timestamp, to_iso

logger = logging.getLogger(__name__)

GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def glob_escape(value: str) -> str:
    """Escape Redis MATCH glob metacharacters."""
    return GLOB_SPECIAL.sub(r"\\\1", value)


class RedisCacheRepository:
    """Redis implementation using one hash per entry.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    - Inserts run in a WATCH/MULTI transaction and never overwrite a row
    - Hits are recorded with HINCRBY inside a transaction
    - Every row carries a storage-level TTL as a backstop to maintenance
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
        ttl: int | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Redis client instance. If None, creates default.
                Must be created with ``decode_responses=True``.
            key_prefix: Prefix for all entry keys.
            ttl: Storage-level time-to-live for entries in seconds.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = key_prefix or settings.cache_key_prefix
        self._ttl = ttl or settings.cache_ttl

    @classmethod
    def create(
        cls,
        key_prefix: str | None = None,
        ttl: int | None = None,
    ) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            key_prefix: Key prefix. If None, uses settings.
            ttl: Entry TTL in seconds. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(key_prefix=key_prefix, ttl=ttl)

    def _key(self, user_id: str, request_hash: str) -> str:
        return f"{self._prefix}:{user_id}:{request_hash}"

    def select(self, user_id: str, request_hash: str) -> CacheEntryEntity | None:
        """Fetch a single entry scoped to the user.

        Args:
            user_id: Owner of the entry
            request_hash: The composed cache key

        Returns:
            The entry, or None if not found
        """
        try:
            row = self._client.hgetall(self._key(user_id, request_hash))
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis select failed: {e}") from e

        return self._to_entity(row)

    def insert(self, entry: CacheEntryEntity) -> None:
        """Insert a new entry, refusing to overwrite an existing one.

        Args:
            entry: The entry to persist

        Raises:
            DuplicateEntryError: If the key already exists
            StoreUnavailableError: If Redis fails
        """
        key = self._key(entry.user_id, entry.request_hash)

        try:
            with self._client.pipeline() as pipe:
                pipe.watch(key)
                if pipe.exists(key):
                    raise DuplicateEntryError(entry.user_id, entry.request_hash)

                pipe.multi()
                pipe.hset(key, mapping=self._to_mapping(entry))
                pipe.expire(key, self._ttl)
                pipe.execute()
        except redis.WatchError as e:
            # Another writer created the key between WATCH and EXEC
            raise DuplicateEntryError(entry.user_id, entry.request_hash) from e
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis insert failed: {e}") from e

    def touch(self, user_id: str, request_hash: str, accessed_at: datetime) -> bool:
        """Atomically bump access_count and set last_accessed_at.

        Args:
            user_id: Owner of the entry
            request_hash: The composed cache key
            accessed_at: Timestamp of the hit

        Returns:
            True if the row existed and was updated, False otherwise
        """
        key = self._key(user_id, request_hash)

        def _record_hit(pipe: redis.client.Pipeline) -> bool:
            if not pipe.exists(key):
                return False
            pipe.multi()
            pipe.hincrby(key, "access_count", 1)
            pipe.hset(key, "last_accessed_at", to_iso(accessed_at))
            return True

        try:
            return bool(self._client.transaction(_record_hit, key, value_from_callable=True))
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis touch failed: {e}") from e

    def delete(self, user_id: str, request_hash: str) -> bool:
        """Delete a single entry.

        Returns:
            True if deleted, False otherwise
        """
        try:
            result: int = self._client.delete(self._key(user_id, request_hash))  # type: ignore[assignment]
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis delete failed: {e}") from e
        return result > 0

    def delete_older_than(self, cutoff: datetime, only_unused: bool = False) -> int:
        """Delete entries created before ``cutoff``.

        Args:
            cutoff: Entries with created_at before this are removed
            only_unused: Only remove entries that were never served

        Returns:
            Number of entries deleted
        """
        count = 0
        try:
            for key in self._client.scan_iter(match=f"{glob_escape(self._prefix)}:*"):
                created_raw, access_raw = self._client.hmget(key, ["created_at", "access_count"])
                created_at = parse_timestamp(created_raw)
                if created_at is None or created_at >= cutoff:
                    continue
                if only_unused and int(access_raw or 0) != 0:
                    continue
                if self._client.delete(key):
                    count += 1
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis eviction failed: {e}") from e
        return count

    def list_entries(self, user_id: str | None = None) -> list[CacheEntryEntity]:
        """List entries, optionally restricted to one user.

        Returns:
            Entries in scan order
        """
        if user_id:
            pattern = f"{glob_escape(self._prefix)}:{glob_escape(user_id)}:*"
        else:
            pattern = f"{glob_escape(self._prefix)}:*"
        entries = []
        try:
            for key in self._client.scan_iter(match=pattern):
                entry = self._to_entity(self._client.hgetall(key))
                # ids containing ":" can still match a longer id's keys
                if entry is not None and (user_id is None or entry.user_id == user_id):
                    entries.append(entry)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis scan failed: {e}") from e
        return entries

    def count_all(self) -> int:
        """Count total entries in the cache.

        Returns:
            Total number of cached entries
        """
        try:
            return sum(1 for _ in self._client.scan_iter(match=f"{glob_escape(self._prefix)}:*"))
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis count failed: {e}") from e

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    def get_stats(self) -> dict:
        """Get repository statistics.

        Returns:
            Dictionary with stats
        """
        return {
            "backend": "redis",
            "key_prefix": self._prefix,
            "total_entries": self.count_all(),
            "ttl": self._ttl,
        }

    @staticmethod
    def _to_mapping(entry: CacheEntryEntity) -> dict[str, str | int]:
        return {
            "user_id": entry.user_id,
            "request_hash": entry.request_hash,
            "request_data": json.dumps(entry.request_data),
            "response": json.dumps(entry.response),
            "created_at": to_iso(entry.created_at),
            "last_accessed_at": to_iso(entry.last_accessed_at),
            "access_count": entry.access_count,
        }

    @staticmethod
    def _to_entity(row: dict[str, str]) -> CacheEntryEntity | None:
        # A row without a response is either missing or mid-write
        if not row or "response" not in row:
            return None

        created_at = parse_timestamp(row.get("created_at"))
        if created_at is None:
            return None

        return CacheEntryEntity(
            user_id=row["user_id"],
            request_hash=row["request_hash"],
            request_data=json.loads(row.get("request_data") or "{}"),
            response=json.loads(row["response"]),
            created_at=created_at,
            last_accessed_at=parse_timestamp(row.get("last_accessed_at")) or created_at,
            access_count=int(row.get("access_count") or 0),
        )

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
