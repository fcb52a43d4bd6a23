"""Wardrobe Cache - Context-aware caching of AI wardrobe responses.

This package provides a layered architecture for caching generated outfit
suggestions and wardrobe analyses per user:

Layers:
    - protocols: Interface contracts (CacheStore, ResponseGenerator)
    - repositories: Data access implementations (Redis, Gemini)
    - services: Business logic (key composition, invalidation, warming)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from wardrobe_cache import CacheService, RedisCacheRepository

    cache = CacheService.create(repository=RedisCacheRepository.create())
    key = cache.compose_key("u1", items, {"occasion": "work"}, "outfit-generation")
    result = await cache.lookup(key, "u1")
    ```

For HTTP API:
    ```python
    from wardrobe_cache.api.app import app
    ```
"""

from wardrobe_cache.config import get_redis_client, settings
from wardrobe_cache.entities import CacheEntryEntity, CacheKey, CacheLookupEntity, UserContext
from wardrobe_cache.exceptions import (
    CacheError,
    DuplicateEntryError,
    GenerationError,
    MalformedFingerprintError,
    StoreUnavailableError,
)
from wardrobe_cache.protocols import CacheStore, ResponseGenerator
from wardrobe_cache.repositories import GeminiResponseGenerator, RedisCacheRepository
from wardrobe_cache.services import (
    CacheService,
    CacheWarmer,
    KeyComposer,
    generate_context_aware_cache_key,
    get_context_aware_cache,
    store_context_aware_cache,
)

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheStore",
    "ResponseGenerator",
    # Services (business logic)
    "CacheService",
    "CacheWarmer",
    "KeyComposer",
    "generate_context_aware_cache_key",
    "get_context_aware_cache",
    "store_context_aware_cache",
    # Repositories (data access)
    "RedisCacheRepository",
    "GeminiResponseGenerator",
    # Entities (domain models)
    "CacheEntryEntity",
    "CacheKey",
    "CacheLookupEntity",
    "UserContext",
    # Errors
    "CacheError",
    "DuplicateEntryError",
    "GenerationError",
    "MalformedFingerprintError",
    "StoreUnavailableError",
]
