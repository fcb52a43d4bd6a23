"""Cache key domain entities."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class ContextFingerprint:
    """Hashed signal groups derived from a request.

    An empty string means the group had no signals.
    """

    core: str
    style: str
    temporal: str
    behavioral: str
    environmental: str

    def groups(self) -> tuple[str, str, str, str, str]:
        return (self.core, self.style, self.temporal, self.behavioral, self.environmental)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class CacheKeyMetrics:
    """Diagnostic scores for a cache key, each in [0, 1].

    Used for tuning and observability only; never consulted when deciding
    whether an entry may be served.
    """

    complexity: float
    specificity: float
    stability: float
    hit_probability: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class CacheKey:
    """A composed cache key with its diagnostics.

    Attributes:
        key: 32-character hex key
        metrics: Diagnostic metrics
        fingerprint: Signal group hashes the key was built from
        strategy: Name of the strategy preset used
    """

    key: str
    metrics: CacheKeyMetrics
    fingerprint: ContextFingerprint
    strategy: str = "balanced"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "metrics": self.metrics.to_dict(),
            "fingerprint": self.fingerprint.to_dict(),
            "strategy": self.strategy,
        }
