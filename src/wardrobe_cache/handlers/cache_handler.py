"""HTTP handlers for cache operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging
import secrets
import time

from fastapi import HTTPException, status

from wardrobe_cache.dto import (
    CacheKeyMetricsItem,
    CacheKeyRequest,
    CacheKeyResponse,
    CacheLookupRequest,
    CacheLookupResponse,
    CacheStatsResponse,
    CacheStoreRequest,
    CacheStoreResponse,
    HealthCheckResponse,
    MaintenanceResponse,
    SuggestionRequest,
    SuggestionResponse,
    UserContextModel,
    WarmCacheRequest,
    WarmCacheResponse,
)
from wardrobe_cache.entities import CacheKeyMetrics, UserContext
from wardrobe_cache.exceptions import GenerationError, MalformedFingerprintError
from wardrobe_cache.protocols import ResponseGenerator
from wardrobe_cache.services import CacheService, CacheWarmer

logger = logging.getLogger(__name__)


def to_user_context(model: UserContextModel | None) -> UserContext | None:
    """Convert the API user context into the domain entity."""
    if model is None:
        return None
    return UserContext.from_dict(model.model_dump(exclude_none=True))


def to_metrics_item(metrics: CacheKeyMetrics | None) -> CacheKeyMetricsItem | None:
    if metrics is None:
        return None
    return CacheKeyMetricsItem(**metrics.to_dict())


class CacheHandler:
    """HTTP handlers for cache operations.

    This handler delegates business logic to CacheService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        handler = CacheHandler(cache_service=CacheService.create(repository))

        @app.post("/cache/lookup", response_model=CacheLookupResponse)
        async def lookup(request: CacheLookupRequest):
            return await handler.lookup(request)
        ```
    """

    def __init__(
        self,
        cache_service: CacheService,
        generator: ResponseGenerator | None = None,
        warmer: CacheWarmer | None = None,
        maintenance_secret: str | None = None,
    ) -> None:
        """Initialize the cache handler.

        Args:
            cache_service: The cache service for business logic (required).
            generator: Response generator used by get-or-generate and warming.
            warmer: Cache warmer for explicit warming requests.
            maintenance_secret: Bearer token required by the maintenance endpoint.
        """
        self._cache = cache_service
        self._generator = generator
        self._warmer = warmer
        self._maintenance_secret = maintenance_secret

    async def compose_key(self, request: CacheKeyRequest) -> CacheKeyResponse:
        """Handle POST /cache/key requests.

        Raises:
            HTTPException: 400 if the context cannot be fingerprinted, 500 otherwise
        """
        try:
            cache_key = self._cache.compose_key(
                request.user_id,
                request.items,
                request.context,
                request.prompt_type,
                user_context=to_user_context(request.user_context),
                strategy=request.strategy,
            )
        except MalformedFingerprintError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot fingerprint request context: {e}",
            ) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to compose key: {e}",
            ) from e

        return CacheKeyResponse(
            key=cache_key.key,
            strategy=cache_key.strategy,
            metrics=CacheKeyMetricsItem(**cache_key.metrics.to_dict()),
            fingerprint=cache_key.fingerprint.to_dict(),
        )

    async def lookup(self, request: CacheLookupRequest) -> CacheLookupResponse:
        """Handle POST /cache/lookup requests."""
        try:
            start_time = time.time()
            result = await self._cache.lookup(
                request.key,
                request.user_id,
                to_user_context(request.user_context),
            )
            lookup_time_ms = (time.time() - start_time) * 1000
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to look up cache: {e}",
            ) from e

        return CacheLookupResponse(
            key=request.key,
            cached=result.cached,
            data=result.data,
            metrics=to_metrics_item(result.metrics),
            lookup_time_ms=lookup_time_ms,
        )

    async def store(self, request: CacheStoreRequest) -> CacheStoreResponse:
        """Handle POST /cache/store requests.

        A duplicate key or an unreachable store is reported as
        ``success: false``, not as an HTTP error.
        """
        try:
            stored = await self._cache.store(
                request.key,
                request.user_id,
                request.prompt_type,
                request.items,
                request.context,
                request.response,
                to_user_context(request.user_context),
            )
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to store entry: {e}",
            ) from e

        return CacheStoreResponse(
            success=stored,
            key=request.key,
            message="Entry stored successfully" if stored else "Entry was not stored",
        )

    async def suggestions(self, request: SuggestionRequest) -> SuggestionResponse:
        """Handle POST /cache/suggestions requests (get-or-generate).

        Raises:
            HTTPException: 503 without a generator, 502 if generation fails
        """
        if self._generator is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="No response generator configured",
            )

        try:
            result = await self._cache.get_or_generate(
                request.user_id,
                request.items,
                request.context,
                request.prompt_type,
                request.prompt,
                self._generator,
                user_context=to_user_context(request.user_context),
                strategy=request.strategy,
                options=request.options,
                force_refresh=request.force_refresh,
            )
        except GenerationError as e:
            logger.error(f"Generation failed for {request.prompt_type}: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to generate response",
            ) from e
        except MalformedFingerprintError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot fingerprint request context: {e}",
            ) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get suggestions: {e}",
            ) from e

        return SuggestionResponse(
            key=result.key or "",
            cached=result.cached,
            data=result.data,
            metrics=to_metrics_item(result.metrics),
        )

    async def warm(self, request: WarmCacheRequest) -> WarmCacheResponse:
        """Handle POST /cache/warm requests."""
        if self._warmer is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Cache warming is not configured",
            )

        patterns = [
            {
                "prompt_type": pattern.prompt_type,
                "items": pattern.items,
                "context": pattern.context,
                "user_context": pattern.user_context.model_dump(exclude_none=True)
                if pattern.user_context
                else None,
            }
            for pattern in request.patterns
        ]

        try:
            completed = await self._warmer.warm_patterns(request.user_id, patterns)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to warm cache: {e}",
            ) from e

        return WarmCacheResponse(requested=len(patterns), completed=completed)

    async def maintenance(self, authorization: str | None) -> MaintenanceResponse:
        """Handle POST /cache/maintenance requests.

        Args:
            authorization: Raw Authorization header, must be ``Bearer <secret>``

        Raises:
            HTTPException: 401 if the secret is missing or wrong
        """
        expected = f"Bearer {self._maintenance_secret}" if self._maintenance_secret else None
        if expected is None or not secrets.compare_digest(authorization or "", expected):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
            )

        try:
            report = await self._cache.run_maintenance()
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Cache maintenance failed: {e}",
            ) from e

        return MaintenanceResponse(success=True, **report)

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        try:
            stats = self._cache.get_stats()
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

        return CacheStatsResponse(
            **stats,
            warming=self._warmer.get_stats() if self._warmer else None,
        )

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        cache_healthy = await self._cache.is_healthy()
        generator_available = (
            await self._generator.is_available() if self._generator is not None else False
        )

        return HealthCheckResponse(
            status="healthy" if cache_healthy else "unhealthy",
            cache_healthy=cache_healthy,
            generator_available=generator_available,
        )
