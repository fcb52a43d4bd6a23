"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis -> Postgres, Gemini -> another LLM)
- Unit testing with in-memory implementations
- Clear separation of concerns

Usage:
    ```python
    from wardrobe_cache.protocols import CacheStore, ResponseGenerator

    # Type hints work with any implementation
    store: CacheStore = RedisCacheRepository()
    generator: ResponseGenerator = GeminiResponseGenerator()
    ```
"""

from .cache_store import CacheStore
from .response_generator import ResponseGenerator

__all__ = [
    "CacheStore",
    "ResponseGenerator",
]
