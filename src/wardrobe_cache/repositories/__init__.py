"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the Gemini API) behind
protocol-based interfaces. This enables:
- Easy swapping of implementations (Redis -> Postgres, Gemini -> another LLM)
- Unit testing with in-memory implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from wardrobe_cache.protocols import CacheStore, ResponseGenerator

from .gemini_generator import GeminiResponseGenerator
from .redis_repository import RedisCacheRepository

__all__ = [
    "CacheStore",
    "ResponseGenerator",
    "GeminiResponseGenerator",
    "RedisCacheRepository",
]
