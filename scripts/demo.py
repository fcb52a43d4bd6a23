#!/usr/bin/env python3
"""
Demo script for the wardrobe cache.

This script composes keys for a sample outfit request under every strategy,
then stores and looks up a response in Redis.
"""

import asyncio

from wardrobe_cache import CacheService, RedisCacheRepository, UserContext
from wardrobe_cache.evaluator import SampleRequest, StrategyEvaluator

ITEMS = [
    {"id": "a", "category": "Tops", "color": "Black", "brand": "Uniqlo"},
    {"id": "b", "category": "Bottoms", "color": "Blue", "brand": "Levi's"},
]

USER_CONTEXT = UserContext.from_dict(
    {
        "preferences": {"style": "minimalist", "colors": ["black", "white"]},
        "seasonal_context": {"season": "fall", "climate": "temperate"},
    }
)


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def demo_strategies() -> None:
    """Compare key strategies on a few similar requests."""
    print_section("Key Strategies")

    recolored = [dict(item, color="Red") for item in ITEMS]
    samples = [
        SampleRequest("u1", "outfit-generation", ITEMS, {"occasion": "work"}),
        SampleRequest("u1", "outfit-generation", recolored, {"occasion": "work"}),
        SampleRequest("u1", "outfit-generation", ITEMS, {"occasion": "Work "}),
        SampleRequest("u1", "outfit-generation", ITEMS, {"occasion": "date"}),
    ]

    evaluator = StrategyEvaluator()
    evaluator.compare(samples)
    print(evaluator.summary())

    best = evaluator.find_best()
    print(f"\n  Highest estimated hit probability: {best.strategy}")


async def demo_round_trip() -> None:
    """Store a response and read it back."""
    print_section("Store and Lookup")

    cache = CacheService.create(repository=RedisCacheRepository.create())
    context = {"occasion": "work", "weather": "rainy"}

    key = cache.compose_key("u1", ITEMS, context, "outfit-generation", USER_CONTEXT)
    print(f"\n  Key: {key.key} ({key.strategy})")
    print(f"  Metrics: {key.metrics.to_dict()}")

    first = await cache.lookup(key, "u1", USER_CONTEXT)
    print(f"\n  First lookup cached: {first.cached}")

    if not first.cached:
        stored = await cache.store(
            key, "u1", "outfit-generation", ITEMS, context, {"name": "Look A"}, USER_CONTEXT
        )
        print(f"  Stored: {stored}")

    second = await cache.lookup(key, "u1", USER_CONTEXT)
    print(f"  Second lookup cached: {second.cached}, data: {second.data}")

    other = await cache.lookup(key, "u2", USER_CONTEXT)
    print(f"  Other user cached: {other.cached}")

    print(f"\n  Stats: {cache.get_stats()['metrics']}")


def main() -> None:
    """Run all demos."""
    print("\nWardrobe Cache Demo")
    print("=" * 70)

    demo_strategies()

    try:
        asyncio.run(demo_round_trip())
        print("\n" + "=" * 70)
        print("Demo completed successfully!")
        print("=" * 70)
    except Exception as e:
        print(f"\nError: {e}")
        print("\nMake sure Redis is running:")
        print("  docker compose up -d")
        print("\nOr set REDIS_URL to your Redis instance.")


if __name__ == "__main__":
    main()
