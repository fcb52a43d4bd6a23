from dataclasses import dataclass


@dataclass
class PerformanceMetrics:
    """Track counters for cache operations."""

    lookups: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    invalidations: int = 0
    stores: int = 0
    store_failures: int = 0
    duplicate_stores: int = 0
    generations: int = 0
    generation_failures: int = 0
    total_lookup_time_ms: float = 0.0
    total_generation_time_ms: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.lookups == 0:
            return 0.0
        return self.cache_hits / self.lookups

    @property
    def avg_lookup_time_ms(self) -> float:
        """Calculate average lookup time."""
        if self.lookups == 0:
            return 0.0
        return self.total_lookup_time_ms / self.lookups

    def record_hit(self, lookup_time_ms: float) -> None:
        """Record a cache hit."""
        self.lookups += 1
        self.cache_hits += 1
        self.total_lookup_time_ms += lookup_time_ms

    def record_miss(self, lookup_time_ms: float, invalidated: bool = False) -> None:
        """Record a cache miss, optionally caused by invalidation."""
        self.lookups += 1
        self.cache_misses += 1
        self.total_lookup_time_ms += lookup_time_ms
        if invalidated:
            self.invalidations += 1

    def record_store(self, success: bool, duplicate: bool = False) -> None:
        """Record a store attempt."""
        if success:
            self.stores += 1
        elif duplicate:
            self.duplicate_stores += 1
        else:
            self.store_failures += 1

    def record_generation(self, duration_ms: float, success: bool = True) -> None:
        """Record a generator call."""
        if success:
            self.generations += 1
        else:
            self.generation_failures += 1
        self.total_generation_time_ms += duration_ms

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "lookups": self.lookups,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": round(self.hit_rate, 4),
            "invalidations": self.invalidations,
            "avg_lookup_time_ms": round(self.avg_lookup_time_ms, 3),
            "stores": self.stores,
            "store_failures": self.store_failures,
            "duplicate_stores": self.duplicate_stores,
            "generations": self.generations,
            "generation_failures": self.generation_failures,
            "total_generation_time_ms": round(self.total_generation_time_ms, 3),
        }
