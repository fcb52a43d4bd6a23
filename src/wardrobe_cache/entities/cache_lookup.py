"""Cache lookup domain entity."""

from dataclasses import dataclass
from typing import Any

from .cache_key import CacheKeyMetrics


@dataclass(frozen=True)
class CacheLookupEntity:
    """Outcome of a cache lookup.

    Attributes:
        data: The stored response on a hit, None otherwise
        cached: Whether a valid entry was served
        metrics: Diagnostic metrics of the key that was looked up, if known
        key: The key that was looked up
    """

    data: Any
    cached: bool
    metrics: CacheKeyMetrics | None = None
    key: str | None = None

    @classmethod
    def miss(
        cls, metrics: CacheKeyMetrics | None = None, key: str | None = None
    ) -> "CacheLookupEntity":
        return cls(data=None, cached=False, metrics=metrics, key=key)
