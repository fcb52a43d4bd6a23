"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from wardrobe_cache.services import CacheService

    cache = CacheService.create(repository=RedisCacheRepository.create())
    key = cache.compose_key(user_id, items, context, "outfit-generation")
    ```
"""

from .batching import RequestBatcher
from .cache_service import (
    CacheService,
    generate_context_aware_cache_key,
    get_context_aware_cache,
    store_context_aware_cache,
)
from .fingerprint import FingerprintExtractor
from .invalidation import InvalidationPolicy, InvalidationReason
from .key_composer import STRATEGIES, KeyComposer, KeyStrategy, get_strategy
from .warming import CacheWarmer, WarmingPattern, WarmingPriority

__all__ = [
    "CacheService",
    "CacheWarmer",
    "FingerprintExtractor",
    "InvalidationPolicy",
    "InvalidationReason",
    "KeyComposer",
    "KeyStrategy",
    "RequestBatcher",
    "STRATEGIES",
    "WarmingPattern",
    "WarmingPriority",
    "generate_context_aware_cache_key",
    "get_context_aware_cache",
    "get_strategy",
    "store_context_aware_cache",
]
