"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    CacheKeyRequest,
    CacheLookupRequest,
    CacheStoreRequest,
    SuggestionRequest,
    UserContextModel,
    WarmCacheRequest,
    WarmPatternRequest,
)
from .responses import (
    CacheKeyMetricsItem,
    CacheKeyResponse,
    CacheLookupResponse,
    CacheStatsResponse,
    CacheStoreResponse,
    HealthCheckResponse,
    MaintenanceResponse,
    SuggestionResponse,
    WarmCacheResponse,
)

__all__ = [
    "CacheKeyRequest",
    "CacheLookupRequest",
    "CacheStoreRequest",
    "SuggestionRequest",
    "UserContextModel",
    "WarmCacheRequest",
    "WarmPatternRequest",
    "CacheKeyMetricsItem",
    "CacheKeyResponse",
    "CacheLookupResponse",
    "CacheStoreResponse",
    "SuggestionResponse",
    "WarmCacheResponse",
    "MaintenanceResponse",
    "CacheStatsResponse",
    "HealthCheckResponse",
]
