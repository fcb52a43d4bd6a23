"""Cache service for core business logic.

This service orchestrates cache operations by coordinating the key
composer, the invalidation policy and the repository (data access). Storage
failures never escape it: they are logged and become misses or ``False``.
"""

import json
import logging
import re
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from wardrobe_cache.config import settings
from wardrobe_cache.entities import CacheEntryEntity, CacheKey, CacheLookupEntity, UserContext
from wardrobe_cache.exceptions import DuplicateEntryError, StoreUnavailableError
from wardrobe_cache.models import PerformanceMetrics
from wardrobe_cache.protocols import CacheStore, ResponseGenerator
from wardrobe_cache.services.batching import RequestBatcher
from wardrobe_cache.services.invalidation import InvalidationPolicy
from wardrobe_cache.services.key_composer import KeyComposer
from wardrobe_cache.utils.clock import current_season, utc_now

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
MS_PER_DAY = SECONDS_PER_DAY * 1000
BYTES_PER_MB = 1024 * 1024
LOW_ACCESS_SCORE = 5
DEFAULT_CLEANUP_BATCH = 100

DEFAULT_GENERATION_OPTIONS: dict[str, Any] = {"temperature": 0.7, "max_output_tokens": 1500}
PROMPT_TYPE_OPTIONS: dict[str, dict[str, Any]] = {
    "wardrobe-analysis": {"max_output_tokens": 2000},
}

JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def generation_options(prompt_type: str, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Default generator options for a prompt type, with caller overrides applied."""
    return {
        **DEFAULT_GENERATION_OPTIONS,
        **PROMPT_TYPE_OPTIONS.get(prompt_type, {}),
        **(overrides or {}),
    }


def parse_generated_response(prompt_type: str, text: str) -> Any:
    """Turn raw generator text into the value that gets cached.

    Outfit generation answers are expected to contain a JSON object; the
    first ``{...}`` span is parsed. Everything else, including unparsable
    JSON, is wrapped as ``{"raw_response": text}``.
    """
    if prompt_type == "outfit-generation":
        match = JSON_OBJECT.search(text)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                logger.warning("Outfit response contained invalid JSON, caching raw text")
    return {"raw_response": text}


class CacheService:
    """Core cache orchestration service.

    This service depends on PROTOCOLS, not concrete implementations:
    - CacheStore: can be Redis, Postgres, an in-memory dict, etc.
    - ResponseGenerator: passed per call to ``get_or_generate``

    Example:
        ```python
        from wardrobe_cache.repositories import RedisCacheRepository
        from wardrobe_cache.services import CacheService

        cache = CacheService.create(repository=RedisCacheRepository.create())

        key = cache.compose_key("u1", items, {"occasion": "work"}, "outfit-generation")
        result = await cache.lookup(key, "u1")
        if not result.cached:
            await cache.store(key, "u1", "outfit-generation", items, context, response)
        ```
    """

    def __init__(
        self,
        repository: CacheStore,
        key_composer: KeyComposer | None = None,
        policy: InvalidationPolicy | None = None,
        batcher: RequestBatcher | None = None,
        clock: Callable[[], datetime] = utc_now,
        default_strategy: str | None = None,
    ) -> None:
        """Initialize the cache service.

        Args:
            repository: Cache storage backend (required).
            key_composer: Key composer. Defaults to one sharing ``clock``.
            policy: Invalidation policy. Defaults to settings' max age and ``clock``.
            batcher: In-flight request de-duplication for ``get_or_generate``.
            clock: Returns the current time.
            default_strategy: Strategy preset used when none is given. Defaults to settings.
        """
        self._repository = repository
        self._clock = clock
        self._composer = key_composer or KeyComposer(clock=clock)
        self._policy = policy or InvalidationPolicy(clock=clock)
        self._batcher = batcher or RequestBatcher()
        self._default_strategy = default_strategy or settings.cache_default_strategy
        self._metrics = PerformanceMetrics()

    @classmethod
    def create(
        cls,
        repository: CacheStore,
        max_age_ms: float | None = None,
        default_strategy: str | None = None,
    ) -> "CacheService":
        """Factory method to create CacheService with sensible defaults.

        Args:
            repository: Cache storage backend (required).
            max_age_ms: Hard age limit. If None, uses settings.
            default_strategy: Strategy preset. If None, uses settings.

        Returns:
            Configured CacheService instance
        """
        return cls(
            repository=repository,
            policy=InvalidationPolicy(max_age_ms=max_age_ms),
            default_strategy=default_strategy,
        )

    def compose_key(
        self,
        user_id: str,
        items: list[dict[str, Any]] | None,
        context: dict[str, Any] | None,
        prompt_type: str,
        user_context: UserContext | None = None,
        strategy: str | None = None,
    ) -> CacheKey:
        """Compose a context-aware cache key.

        Raises:
            ValueError: If the strategy name is unknown
            MalformedFingerprintError: If a context value cannot be normalised
        """
        return self._composer.compose(
            user_id,
            items,
            context,
            prompt_type,
            user_context=user_context,
            strategy=strategy or self._default_strategy,
        )

    async def lookup(
        self,
        key: str | CacheKey,
        user_id: str,
        user_context: UserContext | None = None,
    ) -> CacheLookupEntity:
        """Serve a stored response if it exists and is still valid.

        Business logic:
        1. Fetch the row for (user_id, key)
        2. Run the invalidation rules; a stale row is deleted and reported as a miss
        3. Record the hit (access_count + 1, last_accessed_at = now)

        Args:
            key: Composed key string or CacheKey
            user_id: Owner of the entry
            user_context: Current personalisation signals, used for invalidation

        Returns:
            CacheLookupEntity; ``cached`` is False on miss, stale entry or store failure
        """
        request_hash, metrics = _unpack_key(key)
        start = time.perf_counter()

        try:
            entry = self._repository.select(user_id, request_hash)
        except StoreUnavailableError as e:
            logger.error(f"Cache lookup failed for {request_hash[:8]}...: {e}")
            self._metrics.record_miss(_elapsed_ms(start))
            return CacheLookupEntity.miss(metrics, request_hash)

        if entry is None:
            logger.debug(f"Cache miss for {request_hash[:8]}...")
            self._metrics.record_miss(_elapsed_ms(start))
            return CacheLookupEntity.miss(metrics, request_hash)

        reason = self._policy.check(entry, user_context)
        if reason is not None:
            logger.info(f"Cache entry {request_hash[:8]}... invalidated: {reason.value}")
            try:
                self._repository.delete(user_id, request_hash)
            except StoreUnavailableError as e:
                logger.warning(f"Failed to delete stale entry {request_hash[:8]}...: {e}")
            self._metrics.record_miss(_elapsed_ms(start), invalidated=True)
            return CacheLookupEntity.miss(metrics, request_hash)

        try:
            touched = self._repository.touch(user_id, request_hash, self._clock())
        except StoreUnavailableError as e:
            logger.error(f"Failed to record hit for {request_hash[:8]}...: {e}")
            touched = False

        if not touched:
            self._metrics.record_miss(_elapsed_ms(start))
            return CacheLookupEntity.miss(metrics, request_hash)

        logger.info(f"Cache hit for {request_hash[:8]}... (access #{entry.access_count + 1})")
        self._metrics.record_hit(_elapsed_ms(start))
        return CacheLookupEntity(data=entry.response, cached=True, metrics=metrics, key=request_hash)

    async def store(
        self,
        key: str | CacheKey,
        user_id: str,
        prompt_type: str,
        items: list[dict[str, Any]] | None,
        context: dict[str, Any] | None,
        response: Any,
        user_context: UserContext | None = None,
    ) -> bool:
        """Persist a freshly generated response.

        Never overwrites an existing entry for the same user and key.

        Args:
            key: Composed key string or CacheKey
            user_id: Owner of the entry
            prompt_type: Kind of AI request
            items: Wardrobe items the request was about
            context: Request context
            response: Generator output to cache
            user_context: Personalisation signals at write time

        Returns:
            True if stored, False on duplicate key or store failure
        """
        request_hash, _ = _unpack_key(key)
        now = self._clock()

        entry = CacheEntryEntity(
            user_id=user_id,
            request_hash=request_hash,
            request_data=self._request_snapshot(key, prompt_type, items, context, user_context, now),
            response=response,
            created_at=now,
            last_accessed_at=now,
            access_count=0,
        )

        try:
            self._repository.insert(entry)
        except DuplicateEntryError:
            logger.warning(f"Cache entry {request_hash[:8]}... already exists, not overwriting")
            self._metrics.record_store(False, duplicate=True)
            return False
        except StoreUnavailableError as e:
            logger.error(f"Failed to store cache entry {request_hash[:8]}...: {e}")
            self._metrics.record_store(False)
            return False

        logger.info(f"Stored cache entry {request_hash[:8]}... for {prompt_type}")
        self._metrics.record_store(True)
        return True

    async def get_or_generate(
        self,
        user_id: str,
        items: list[dict[str, Any]] | None,
        context: dict[str, Any] | None,
        prompt_type: str,
        prompt: str,
        generator: ResponseGenerator,
        user_context: UserContext | None = None,
        strategy: str | None = None,
        options: dict[str, Any] | None = None,
        force_refresh: bool = False,
    ) -> CacheLookupEntity:
        """Serve from cache, or generate, store and return a fresh response.

        Concurrent misses on the same key share one generation.

        Args:
            user_id: Owner of the request
            items: Wardrobe items the request is about
            context: Request context
            prompt_type: Kind of AI request
            prompt: Prompt text sent to the generator on a miss
            generator: Response generator
            user_context: Personalisation signals
            strategy: Strategy preset. Defaults to the service default.
            options: Generator option overrides
            force_refresh: Skip the lookup and replace any stored entry

        Returns:
            CacheLookupEntity with ``cached`` telling whether it was served from cache

        Raises:
            GenerationError: If the generator fails; nothing is stored
        """
        cache_key = self.compose_key(user_id, items, context, prompt_type, user_context, strategy)

        if not force_refresh:
            result = await self.lookup(cache_key, user_id, user_context)
            if result.cached:
                return result
        else:
            logger.info(f"Bypassing cache for {cache_key.key[:8]}... (forced refresh)")

        async def _generate() -> Any:
            start = time.perf_counter()
            try:
                text = await generator.generate(prompt, generation_options(prompt_type, options))
            except Exception:
                self._metrics.record_generation(_elapsed_ms(start), success=False)
                raise
            self._metrics.record_generation(_elapsed_ms(start))

            data = parse_generated_response(prompt_type, text)

            if force_refresh:
                try:
                    self._repository.delete(user_id, cache_key.key)
                except StoreUnavailableError as e:
                    logger.warning(f"Failed to clear {cache_key.key[:8]}... before refresh: {e}")

            await self.store(cache_key, user_id, prompt_type, items, context, data, user_context)
            return data

        data = await self._batcher.run(f"{user_id}:{cache_key.key}", _generate)
        return CacheLookupEntity(data=data, cached=False, metrics=cache_key.metrics, key=cache_key.key)

    async def evict_expired(self, max_age_ms: float, only_unused: bool = False) -> int:
        """Bulk-delete entries older than ``max_age_ms``.

        Args:
            max_age_ms: Age limit measured from created_at
            only_unused: Only delete entries that were never served

        Returns:
            Number of entries deleted (0 if the store is unavailable)
        """
        cutoff = self._clock() - timedelta(milliseconds=max_age_ms)
        try:
            deleted = self._repository.delete_older_than(cutoff, only_unused=only_unused)
        except StoreUnavailableError as e:
            logger.error(f"Cache eviction failed: {e}")
            return 0

        if deleted:
            scope = "unused " if only_unused else ""
            logger.info(f"Evicted {deleted} {scope}cache entries created before {cutoff.isoformat()}")
        return deleted

    async def smart_cleanup(
        self,
        max_size_mb: float | None = None,
        min_age_days: float | None = None,
        max_age_days: float | None = None,
        batch_limit: int = DEFAULT_CLEANUP_BATCH,
    ) -> int:
        """Size-driven cleanup of rarely used entries.

        Deletes everything older than ``max_age_days`` first. If the
        estimated payload size still exceeds ``max_size_mb``, deletes up to
        ``batch_limit`` entries older than ``min_age_days`` whose
        ``access_count / age_in_days`` is below 5, lowest score first.

        Returns:
            Number of entries deleted
        """
        max_size_mb = max_size_mb or settings.max_cache_size_mb
        min_age_days = settings.smart_min_age_days if min_age_days is None else min_age_days
        max_age_days = max_age_days or settings.cleanup_max_age_days

        deleted = await self.evict_expired(max_age_days * MS_PER_DAY)

        try:
            entries = self._repository.list_entries()
        except StoreUnavailableError as e:
            logger.error(f"Smart cleanup could not list entries: {e}")
            return deleted

        size_mb = sum(entry.payload_size for entry in entries) / BYTES_PER_MB
        if size_mb <= max_size_mb:
            return deleted

        now = self._clock()
        min_age_seconds = min_age_days * SECONDS_PER_DAY
        candidates: list[tuple[float, CacheEntryEntity]] = []
        for entry in entries:
            age_seconds = entry.age_seconds(now)
            if age_seconds <= min_age_seconds:
                continue
            score = entry.access_count / (age_seconds / SECONDS_PER_DAY)
            if score < LOW_ACCESS_SCORE:
                candidates.append((score, entry))

        candidates.sort(key=lambda candidate: candidate[0])

        removed = 0
        for _, entry in candidates[:batch_limit]:
            try:
                if self._repository.delete(entry.user_id, entry.request_hash):
                    removed += 1
            except StoreUnavailableError as e:
                logger.error(f"Smart cleanup stopped early: {e}")
                break

        logger.info(
            f"Smart cleanup removed {removed} low-usage entries "
            f"(cache was {size_mb:.2f}MB, limit {max_size_mb}MB)"
        )
        return deleted + removed

    async def run_maintenance(self) -> dict[str, Any]:
        """Scheduled maintenance: age-based eviction followed by smart cleanup.

        Returns:
            Counts of deleted entries plus the remaining entry count and size
        """
        expired = await self.evict_expired(settings.cleanup_max_age_days * MS_PER_DAY)
        cleaned = await self.smart_cleanup()

        try:
            entries = self._repository.list_entries()
        except StoreUnavailableError as e:
            logger.error(f"Maintenance could not read cache size: {e}")
            entries = []

        report = {
            "expired_deleted": expired,
            "smart_deleted": cleaned,
            "total_entries": len(entries),
            "estimated_size_mb": round(
                sum(entry.payload_size for entry in entries) / BYTES_PER_MB, 2
            ),
        }
        logger.info(f"Cache maintenance finished: {report}")
        return report

    async def is_healthy(self) -> bool:
        """Check if the storage backend is reachable."""
        return self._repository.health_check()

    def get_stats(self) -> dict[str, Any]:
        """Get service, batching and storage statistics."""
        try:
            repository_stats = self._repository.get_stats()
        except StoreUnavailableError as e:
            logger.warning(f"Could not read repository stats: {e}")
            repository_stats = {"error": str(e)}

        return {
            "default_strategy": self._default_strategy,
            "max_age_hours": round(self._policy.max_age.total_seconds() / 3600, 2),
            "metrics": self._metrics.to_dict(),
            "batching": self._batcher.get_stats(),
            "repository": repository_stats,
        }

    def _request_snapshot(
        self,
        key: str | CacheKey,
        prompt_type: str,
        items: list[dict[str, Any]] | None,
        context: dict[str, Any] | None,
        user_context: UserContext | None,
        now: datetime,
    ) -> dict[str, Any]:
        user_data = user_context.to_dict() if user_context else {}
        declared = dict(user_data.get("seasonal_context") or {})
        # the computed write-time season drives invalidation; the declared one is kept alongside
        seasonal = {k: v for k, v in declared.items() if k != "season"}
        seasonal["season"] = current_season(now)
        if declared.get("season"):
            seasonal["user_season"] = declared["season"]

        return {
            "prompt_type": prompt_type,
            "item_count": len(items or []),
            "context": context or {},
            "user_context": user_data or None,
            "seasonal_context": seasonal,
            "wardrobe_evolution": user_data.get("wardrobe_evolution"),
            "cache_metrics": key.metrics.to_dict() if isinstance(key, CacheKey) else None,
            "context_fingerprint": key.fingerprint.to_dict() if isinstance(key, CacheKey) else None,
            "optimization_strategy": key.strategy if isinstance(key, CacheKey) else "legacy",
        }

    @property
    def repository(self) -> CacheStore:
        """Get the underlying repository."""
        return self._repository

    @property
    def metrics(self) -> PerformanceMetrics:
        return self._metrics

    @property
    def default_strategy(self) -> str:
        return self._default_strategy


def _unpack_key(key: str | CacheKey) -> tuple[str, Any]:
    if isinstance(key, CacheKey):
        return key.key, key.metrics
    return key, None


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def generate_context_aware_cache_key(
    user_id: str,
    items: list[dict[str, Any]] | None,
    context: dict[str, Any] | None,
    prompt_type: str,
    user_context: UserContext | None = None,
    strategy: str = "balanced",
) -> CacheKey:
    """Compose a cache key with a default KeyComposer."""
    return KeyComposer().compose(user_id, items, context, prompt_type, user_context, strategy)


async def get_context_aware_cache(
    store: CacheStore,
    key: str | CacheKey,
    user_id: str,
    user_context: UserContext | None = None,
) -> CacheLookupEntity:
    """One-shot lookup against ``store`` without a long-lived service."""
    return await CacheService(store).lookup(key, user_id, user_context)


async def store_context_aware_cache(
    store: CacheStore,
    key: str | CacheKey,
    user_id: str,
    prompt_type: str,
    items: list[dict[str, Any]] | None,
    context: dict[str, Any] | None,
    response: Any,
    user_context: UserContext | None = None,
) -> bool:
    """One-shot store into ``store`` without a long-lived service."""
    return await CacheService(store).store(
        key, user_id, prompt_type, items, context, response, user_context
    )
