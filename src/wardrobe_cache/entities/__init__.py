"""Domain entities for internal representation.

These are plain dataclasses used internally by services and repositories.
They are NOT used for API contracts - use DTOs from the dto package for that.
"""

from .cache_entry import CacheEntryEntity
from .cache_key import CacheKey, CacheKeyMetrics, ContextFingerprint
from .cache_lookup import CacheLookupEntity
from .user_context import Preferences, SeasonalContext, UserContext, WardrobeEvolution

__all__ = [
    "CacheEntryEntity",
    "CacheKey",
    "CacheKeyMetrics",
    "CacheLookupEntity",
    "ContextFingerprint",
    "Preferences",
    "SeasonalContext",
    "UserContext",
    "WardrobeEvolution",
]
