"""Proactive cache warming.

Frequently served entries are turned into warming patterns and regenerated
ahead of time with the ``performance`` strategy, so the next request for
them is a hit. Warming is best-effort: nothing here is on the request path
and a failed cycle is only logged.
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from wardrobe_cache.config import settings
from wardrobe_cache.entities import CacheEntryEntity, UserContext
from wardrobe_cache.exceptions import StoreUnavailableError
from wardrobe_cache.protocols import ResponseGenerator
from wardrobe_cache.services.cache_service import MS_PER_DAY, CacheService
from wardrobe_cache.utils.clock import utc_now

logger = logging.getLogger(__name__)

WARMING_STRATEGY = "performance"
PATTERN_THRESHOLD = 2
PATTERN_LOOKBACK = timedelta(days=7)
PATTERN_LIMIT = 50
RECENTLY_REQUESTED = timedelta(hours=2)
MAX_CONCURRENT_JOBS = 3
MAX_ATTEMPTS = 3


class WarmingPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


@dataclass
class WarmingPattern:
    """A request shape worth pre-generating."""

    user_id: str
    prompt_type: str
    context: dict[str, Any]
    items: list[dict[str, Any]] = field(default_factory=list)
    user_context: UserContext | None = None
    frequency: int = 0
    last_requested: datetime | None = None
    priority: WarmingPriority = WarmingPriority.LOW


@dataclass
class WarmingJob:
    id: str
    pattern: WarmingPattern
    status: str = "pending"
    attempts: int = 0


PromptBuilder = Callable[[WarmingPattern], str]


def default_prompt_builder(pattern: WarmingPattern) -> str:
    """Minimal prompt for a pattern; real deployments pass their own builder."""
    context = json.dumps(pattern.context, sort_keys=True, default=str)
    return (
        f"Task: {pattern.prompt_type}\n"
        f"Wardrobe items: {len(pattern.items)}\n"
        f"Context: {context}\n"
        "Respond with a JSON object."
    )


def pattern_priority(access_count: int, last_accessed: datetime, now: datetime) -> WarmingPriority:
    """Rank a pattern by how often and how recently it was served."""
    days_since_access = (now - last_accessed).total_seconds() / 86400

    if access_count >= 10 and days_since_access <= 1:
        return WarmingPriority.HIGH
    if access_count >= 5 and days_since_access <= 3:
        return WarmingPriority.MEDIUM
    return WarmingPriority.LOW


class CacheWarmer:
    """Periodically pre-generates popular cache entries.

    Example:
        ```python
        warmer = CacheWarmer(service, GeminiResponseGenerator.create())
        warmer.start()
        ...
        await warmer.stop()
        ```
    """

    def __init__(
        self,
        service: CacheService,
        generator: ResponseGenerator,
        prompt_builder: PromptBuilder = default_prompt_builder,
        interval_minutes: float | None = None,
        max_concurrent: int = MAX_CONCURRENT_JOBS,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the warmer.

        Args:
            service: Cache service used to check, generate and store entries.
            generator: Response generator for warmed entries.
            prompt_builder: Builds the generator prompt for a pattern.
            interval_minutes: Time between cycles. Defaults to settings.
            max_concurrent: Maximum concurrent generations per cycle.
            max_attempts: Attempts per job before it is marked failed.
            retry_delay: Seconds to wait between attempts.
            clock: Returns the current time.
        """
        self._service = service
        self._generator = generator
        self._prompt_builder = prompt_builder
        self._interval = (interval_minutes or settings.warming_interval_minutes) * 60
        self._max_concurrent = max_concurrent
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._clock = clock

        self._jobs: dict[str, WarmingJob] = {}
        self._task: asyncio.Task | None = None
        self._cycle_running = False
        self._total_patterns = 0
        self._last_run: datetime | None = None

    async def analyze_patterns(self) -> list[WarmingPattern]:
        """Build warming patterns from recently and repeatedly served entries."""
        now = self._clock()
        try:
            entries = self._service.repository.list_entries()
        except StoreUnavailableError as e:
            logger.error(f"Failed to analyze cache patterns: {e}")
            return []

        popular = sorted(
            (
                entry
                for entry in entries
                if entry.access_count >= PATTERN_THRESHOLD
                and entry.last_accessed_at >= now - PATTERN_LOOKBACK
            ),
            key=lambda entry: entry.access_count,
            reverse=True,
        )[:PATTERN_LIMIT]

        patterns = [self._pattern_from_entry(entry, now) for entry in popular]
        return [pattern for pattern in patterns if pattern is not None]

    def plan_jobs(self, patterns: list[WarmingPattern]) -> list[WarmingJob]:
        """Turn patterns into jobs, highest priority first.

        Patterns requested within the last two hours are most likely still
        cached and are skipped.
        """
        now = self._clock()
        jobs = []
        for pattern in patterns:
            if pattern.last_requested is not None and now - pattern.last_requested < RECENTLY_REQUESTED:
                continue
            jobs.append(WarmingJob(id=self._job_id(pattern, len(jobs)), pattern=pattern))

        jobs.sort(key=lambda job: job.pattern.priority.rank, reverse=True)
        return jobs

    async def execute_jobs(self, jobs: list[WarmingJob]) -> None:
        """Run jobs with bounded concurrency.

        Finished jobs from earlier batches are dropped, so the job table only
        holds the current batch and whatever is still in flight.
        """
        semaphore = asyncio.Semaphore(self._max_concurrent)
        self._jobs = {
            job_id: job
            for job_id, job in self._jobs.items()
            if job.status in ("pending", "processing")
        }

        async def _bounded(job: WarmingJob) -> None:
            async with semaphore:
                await self._execute_job(job)

        for job in jobs:
            self._jobs[job.id] = job
        await asyncio.gather(*(_bounded(job) for job in jobs))

    async def run_cycle(self) -> None:
        """One warming cycle followed by cleanup of never-used entries."""
        if self._cycle_running:
            logger.info("Cache warming already in progress, skipping cycle")
            return

        self._cycle_running = True
        logger.info("Starting cache warming cycle")
        try:
            patterns = await self.analyze_patterns()
            self._total_patterns = len(patterns)
            jobs = self.plan_jobs(patterns)
            logger.info(f"Found {len(patterns)} warming patterns, {len(jobs)} jobs planned")

            await self.execute_jobs(jobs)
            await self._service.evict_expired(
                settings.unused_max_age_days * MS_PER_DAY, only_unused=True
            )
            logger.info("Cache warming cycle completed")
        except Exception:
            logger.exception("Cache warming cycle failed")
        finally:
            self._last_run = self._clock()
            self._cycle_running = False

    async def warm_patterns(self, user_id: str, requests: list[dict[str, Any]]) -> int:
        """Warm explicit request patterns for a user at high priority.

        Args:
            user_id: Owner of the patterns
            requests: Dicts with ``prompt_type`` and optional ``items``,
                ``context`` and ``user_context``

        Returns:
            Number of jobs that completed
        """
        now = self._clock()
        jobs = []
        for request in requests:
            pattern = WarmingPattern(
                user_id=user_id,
                prompt_type=request["prompt_type"],
                items=request.get("items") or [],
                context=request.get("context") or {},
                user_context=UserContext.from_dict(request.get("user_context")),
                priority=WarmingPriority.HIGH,
            )
            jobs.append(WarmingJob(id=self._job_id(pattern, len(jobs), now), pattern=pattern))

        await self.execute_jobs(jobs)
        return sum(1 for job in jobs if job.status == "completed")

    def start(self) -> None:
        """Start periodic warming in a background task."""
        if self.is_running:
            logger.info("Cache warming service already running")
            return

        logger.info(f"Starting cache warming service (every {self._interval / 60:g} minutes)")
        self._task = asyncio.create_task(self._run_forever())

    async def stop(self) -> None:
        """Stop periodic warming and wait for the background task to exit."""
        if self._task is None:
            return

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Cache warming service stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_stats(self) -> dict[str, Any]:
        """Get warming job statistics."""
        statuses = [job.status for job in self._jobs.values()]
        return {
            "running": self.is_running,
            "total_patterns": self._total_patterns,
            "active_jobs": statuses.count("processing") + statuses.count("pending"),
            "completed_jobs": statuses.count("completed"),
            "skipped_jobs": statuses.count("skipped"),
            "failed_jobs": statuses.count("failed"),
            "last_run": self._last_run.isoformat() if self._last_run else None,
        }

    async def _run_forever(self) -> None:
        while True:
            await self.run_cycle()
            await asyncio.sleep(self._interval)

    async def _execute_job(self, job: WarmingJob) -> None:
        pattern = job.pattern
        cache_key = self._service.compose_key(
            pattern.user_id,
            pattern.items,
            pattern.context,
            pattern.prompt_type,
            pattern.user_context,
            WARMING_STRATEGY,
        )

        # Existence check without recording a hit
        try:
            existing = self._service.repository.select(pattern.user_id, cache_key.key)
        except StoreUnavailableError as e:
            logger.warning(f"Warming job {job.id} could not check cache: {e}")
            job.status = "failed"
            return

        if existing is not None:
            logger.debug(f"Pattern already cached, skipping {job.id}")
            job.status = "skipped"
            return

        prompt = self._prompt_builder(pattern)
        while job.attempts < self._max_attempts:
            job.status = "processing"
            job.attempts += 1
            try:
                await self._service.get_or_generate(
                    pattern.user_id,
                    pattern.items,
                    pattern.context,
                    pattern.prompt_type,
                    prompt,
                    self._generator,
                    user_context=pattern.user_context,
                    strategy=WARMING_STRATEGY,
                )
            except Exception as e:
                logger.warning(f"Warming job {job.id} attempt {job.attempts} failed: {e}")
                if job.attempts < self._max_attempts:
                    await asyncio.sleep(self._retry_delay)
                continue

            job.status = "completed"
            logger.info(f"Warmed {pattern.prompt_type} ({pattern.priority.value} priority) {job.id}")
            return

        job.status = "failed"
        logger.error(f"Warming job {job.id} failed after {job.attempts} attempts")

    def _pattern_from_entry(self, entry: CacheEntryEntity, now: datetime) -> WarmingPattern | None:
        request_data = entry.request_data
        prompt_type = request_data.get("prompt_type")
        if not prompt_type:
            return None

        return WarmingPattern(
            user_id=entry.user_id,
            prompt_type=prompt_type,
            context=request_data.get("context") or {},
            # Item rows are not stored with the entry
            items=[],
            user_context=UserContext.from_dict(request_data.get("user_context")),
            frequency=entry.access_count,
            last_requested=entry.last_accessed_at,
            priority=pattern_priority(entry.access_count, entry.last_accessed_at, now),
        )

    def _job_id(self, pattern: WarmingPattern, index: int, now: datetime | None = None) -> str:
        stamp = int((now or self._clock()).timestamp())
        occasion = pattern.context.get("occasion") or "general"
        return f"{pattern.user_id[:8]}-{pattern.prompt_type}-{occasion}-{stamp}-{index}"
