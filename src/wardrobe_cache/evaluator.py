"""
Evaluation utilities for context-aware cache keys.

This module provides tools for judging how well a key strategy trades hit
rate against specificity, both from observed hit rates and by composing
keys for sample requests under every strategy.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from wardrobe_cache.entities import CacheKey, UserContext
from wardrobe_cache.services.key_composer import STRATEGIES, KeyComposer

logger = logging.getLogger(__name__)

LOW_HIT_RATE = 0.3
HIGH_DISTRIBUTION = 0.9
LOW_DISTRIBUTION = 0.5


@dataclass
class KeyEffectivenessReport:
    """Summary of how a set of keys performed."""

    average_hit_rate: float
    key_distribution: float
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "average_hit_rate": self.average_hit_rate,
            "key_distribution": self.key_distribution,
            "recommendations": list(self.recommendations),
        }


def analyze_key_effectiveness(
    keys: list[str],
    hit_rates: dict[str, float],
) -> KeyEffectivenessReport:
    """
    Analyze observed hit rates for a batch of keys.

    Args:
        keys: Keys issued over some period, duplicates included.
        hit_rates: Observed hit rate per key.

    Returns:
        KeyEffectivenessReport with averages and tuning recommendations.
    """
    rates = list(hit_rates.values())
    average_hit_rate = sum(rates) / len(rates) if rates else 0.0
    key_distribution = len(set(keys)) / len(keys) if keys else 0.0

    recommendations = []
    if average_hit_rate < LOW_HIT_RATE:
        recommendations.append(
            "Consider using 'performance' strategy for better cache hit rates"
        )
    if key_distribution > HIGH_DISTRIBUTION:
        recommendations.append(
            "Keys are very specific - consider reducing granularity for better reuse"
        )
    elif key_distribution < LOW_DISTRIBUTION:
        recommendations.append(
            "Keys may be too generic - consider increasing specificity for better accuracy"
        )

    return KeyEffectivenessReport(
        average_hit_rate=round(average_hit_rate, 2),
        key_distribution=round(key_distribution, 2),
        recommendations=recommendations,
    )


@dataclass
class StrategyResult:
    """Result of composing sample keys under one strategy."""

    strategy: str
    total_requests: int = 0
    unique_keys: int = 0
    total_hit_probability: float = 0.0

    @property
    def unique_ratio(self) -> float:
        """Share of requests that produced a distinct key."""
        if self.total_requests == 0:
            return 0.0
        return self.unique_keys / self.total_requests

    @property
    def avg_hit_probability(self) -> float:
        """Mean estimated hit probability across the samples."""
        if self.total_requests == 0:
            return 0.0
        return self.total_hit_probability / self.total_requests

    def to_dict(self) -> dict[str, float | int | str]:
        """Convert to dictionary."""
        return {
            "strategy": self.strategy,
            "total_requests": self.total_requests,
            "unique_keys": self.unique_keys,
            "unique_ratio": round(self.unique_ratio, 2),
            "avg_hit_probability": round(self.avg_hit_probability, 2),
        }


@dataclass
class SampleRequest:
    """A request to compose keys for."""

    user_id: str
    prompt_type: str
    items: list[dict[str, Any]] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)
    user_context: UserContext | None = None


class StrategyEvaluator:
    """Compares key strategies on the same sample requests."""

    def __init__(self, composer: KeyComposer | None = None) -> None:
        """
        Initialize the evaluator.

        Args:
            composer: KeyComposer to evaluate. Defaults to a new one.
        """
        self.composer = composer or KeyComposer()
        self.results: list[StrategyResult] = []

    def evaluate_strategy(self, strategy: str, samples: list[SampleRequest]) -> StrategyResult:
        """
        Compose one key per sample under a single strategy.

        Args:
            strategy: Strategy preset name.
            samples: Requests to compose keys for.

        Returns:
            StrategyResult for this strategy.
        """
        result = StrategyResult(strategy=strategy)
        seen: set[str] = set()

        for sample in samples:
            cache_key: CacheKey = self.composer.compose(
                sample.user_id,
                sample.items,
                sample.context,
                sample.prompt_type,
                sample.user_context,
                strategy,
            )
            result.total_requests += 1
            result.total_hit_probability += cache_key.metrics.hit_probability
            seen.add(f"{sample.user_id}:{cache_key.key}")

        result.unique_keys = len(seen)
        return result

    def compare(self, samples: list[SampleRequest]) -> list[StrategyResult]:
        """
        Evaluate every strategy preset on the same samples.

        Returns:
            One StrategyResult per strategy, in preset order.
        """
        self.results = [self.evaluate_strategy(name, samples) for name in STRATEGIES]
        for result in self.results:
            logger.info(
                f"Strategy {result.strategy}: unique ratio {result.unique_ratio:.2%}, "
                f"hit probability {result.avg_hit_probability:.2f}"
            )
        return self.results

    def find_best(self, metric: str = "avg_hit_probability") -> StrategyResult:
        """
        Find the strategy with the highest value for a metric.

        Args:
            metric: 'avg_hit_probability' or 'unique_ratio'.
        """
        if not self.results:
            raise ValueError("No evaluation results available. Run compare first.")

        return max(self.results, key=lambda r: getattr(r, metric))

    def summary(self) -> str:
        """Get a formatted comparison table."""
        lines = [f"{'Strategy':<14} {'Requests':<10} {'Unique':<10} {'Hit prob.':<10}"]
        for r in self.results:
            lines.append(
                f"{r.strategy:<14} {r.total_requests:<10} "
                f"{r.unique_ratio:<10.2%} {r.avg_hit_probability:<10.2f}"
            )
        return "\n".join(lines)
