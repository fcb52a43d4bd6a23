"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class CacheKeyMetricsItem(BaseModel):
    """Diagnostic metrics of a composed key."""

    complexity: float = Field(..., ge=0.0, le=1.0)
    specificity: float = Field(..., ge=0.0, le=1.0)
    stability: float = Field(..., ge=0.0, le=1.0)
    hit_probability: float = Field(..., ge=0.0, le=1.0)


class CacheKeyResponse(BaseModel):
    """Response DTO for key composition."""

    key: str = Field(..., description="32-character hex cache key")
    strategy: str = Field(..., description="Strategy preset used")
    metrics: CacheKeyMetricsItem
    fingerprint: dict[str, str] = Field(
        ..., description="Hashed signal groups (empty string when absent)"
    )


class CacheLookupResponse(BaseModel):
    """Response DTO for cache lookup."""

    key: str = Field(..., description="The key that was looked up")
    cached: bool = Field(..., description="Whether a valid entry was served")
    data: Any = Field(None, description="The cached response on a hit")
    metrics: CacheKeyMetricsItem | None = None
    lookup_time_ms: float = Field(..., description="Time taken for the lookup in milliseconds")


class CacheStoreResponse(BaseModel):
    """Response DTO for cache store operation."""

    success: bool = Field(..., description="Whether the entry was written")
    key: str = Field(..., description="The key the entry was stored under")
    message: str = Field(..., description="Human-readable status message")


class SuggestionResponse(BaseModel):
    """Response DTO for get-or-generate."""

    key: str
    cached: bool = Field(..., description="True if served from cache, False if generated")
    data: Any
    metrics: CacheKeyMetricsItem | None = None


class WarmCacheResponse(BaseModel):
    """Response DTO for explicit warming."""

    requested: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)


class MaintenanceResponse(BaseModel):
    """Response DTO for a maintenance run."""

    success: bool
    expired_deleted: int = Field(..., ge=0)
    smart_deleted: int = Field(..., ge=0)
    total_entries: int = Field(..., ge=0)
    estimated_size_mb: float = Field(..., ge=0.0)


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    default_strategy: str
    max_age_hours: float
    metrics: dict[str, float | int]
    batching: dict[str, int]
    repository: dict[str, Any]
    warming: dict[str, Any] | None = None


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the cache backend is reachable")
    generator_available: bool = Field(..., description="Whether the generator is configured")
