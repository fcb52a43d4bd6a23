"""Cache key composition.

Combines the context fingerprint with an item-set signature and a
user-behaviour signature into a 32-character key. The item granularity,
chosen through a named strategy, is the main lever between hit rate and
specificity.

The key is a truncated SHA-256. Collisions at 128 bits are accepted as
negligible for per-user tables.
"""

import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from wardrobe_cache.entities import CacheKey, CacheKeyMetrics, ContextFingerprint, UserContext
from wardrobe_cache.services.fingerprint import WEEKS_PER_TEMPORAL_BUCKET, FingerprintExtractor
from wardrobe_cache.utils.clock import current_season, utc_now, week_of_year
from wardrobe_cache.utils.normalize import short_hash

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
ITEM_SIGNATURE_LENGTH = 12
USER_PREFIX_LENGTH = 8
BEHAVIOR_USER_PREFIX_LENGTH = 6
MAX_ACTIVITY_LEVEL = 10
MEDIUM_STYLE_TAG_LIMIT = 3
NO_ITEMS_SIGNATURE = "no-items"

GRANULARITIES = ("fine", "medium", "coarse")
GRANULARITY_HIT_SCORES = {"coarse": 0.8, "medium": 0.6, "fine": 0.4}


@dataclass(frozen=True)
class KeyStrategy:
    """Named bundle of key-composition settings.

    Attributes:
        name: Preset name
        granularity: Item detail folded into the item signature
        seasonal_sensitivity: Whether the temporal group is fingerprinted
        include_timestamp: Whether a season/month bucket is folded into the key
    """

    name: str
    granularity: str
    seasonal_sensitivity: bool
    include_timestamp: bool


STRATEGIES: dict[str, KeyStrategy] = {
    # High hit rate, lower specificity
    "performance": KeyStrategy("performance", "coarse", False, False),
    "balanced": KeyStrategy("balanced", "medium", True, False),
    # High specificity, lower hit rate
    "precision": KeyStrategy("precision", "fine", True, True),
}


def get_strategy(name: str) -> KeyStrategy:
    """Look up a strategy preset by name.

    Raises:
        ValueError: If the name is not a known preset
    """
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown cache key strategy {name!r}, expected one of {list(STRATEGIES)}"
        ) from None


def item_category(item: dict[str, Any]) -> str:
    """Category name of a wardrobe item (plain string or joined row)."""
    category = item.get("category")
    if isinstance(category, str):
        return category
    if isinstance(category, dict) and category.get("name"):
        return str(category["name"])
    return "unknown"


def item_style_tags(item: dict[str, Any], limit: int | None = None) -> str:
    """Sorted, comma-joined style tag names, optionally truncated to ``limit``.

    Accepts the joined ``clothing_item_style_tags`` shape as well as a flat
    ``style_tags`` list of names.
    """
    names: list[str] = []

    for tag in item.get("clothing_item_style_tags") or []:
        style_tag = tag.get("style_tag") if isinstance(tag, dict) else None
        if isinstance(style_tag, dict) and style_tag.get("name"):
            names.append(str(style_tag["name"]))

    if not names:
        for tag in item.get("style_tags") or []:
            name = tag.get("name") if isinstance(tag, dict) else tag
            if name:
                names.append(str(name))

    names.sort()
    if limit is not None:
        names = names[:limit]
    return ",".join(names)


def item_signature(items: list[dict[str, Any]] | None, granularity: str) -> str:
    """Hash of the item set at the requested granularity.

    - fine: id, category, color, brand and all style tags
    - medium: id, category, color and up to 3 style tags
    - coarse: id and category only

    Items are ordered by id first; the input list is not modified.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity {granularity!r}, expected one of {list(GRANULARITIES)}")

    if not items:
        return NO_ITEMS_SIGNATURE

    parts = []
    for item in sorted(items, key=lambda i: str(i.get("id") or "")):
        item_id = item.get("id") or ""
        category = item_category(item)

        if granularity == "fine":
            color = item.get("color") or "unknown"
            brand = item.get("brand") or "unknown"
            parts.append(f"{item_id}:{category}:{color}:{brand}:{item_style_tags(item)}")
        elif granularity == "medium":
            color = item.get("color") or "unknown"
            tags = item_style_tags(item, MEDIUM_STYLE_TAG_LIMIT)
            parts.append(f"{item_id}:{category}:{color}:{tags}")
        else:
            parts.append(f"{item_id}:{category}")

    return short_hash("|".join(parts), ITEM_SIGNATURE_LENGTH)


def behavior_signature(user_id: str, user_context: UserContext | None) -> str:
    """Human-readable user behaviour signature, e.g. ``u1-activity:3-style:9f2c``."""
    elements = [user_id[:BEHAVIOR_USER_PREFIX_LENGTH]]

    evolution = user_context.wardrobe_evolution if user_context else None
    if evolution is not None and evolution.recent_additions is not None:
        activity = min(len(evolution.recent_additions), MAX_ACTIVITY_LEVEL)
        elements.append(f"activity:{activity}")

    preferences = user_context.preferences if user_context else None
    if preferences is not None and preferences.style:
        elements.append(f"style:{short_hash(preferences.style, 4)}")

    return "-".join(elements)


def temporal_signature(now: datetime, seasonal_sensitivity: bool) -> str:
    """Season and four-week bucket, or empty when not seasonally sensitive."""
    if not seasonal_sensitivity:
        return ""
    return f"{current_season(now)}-{week_of_year(now) // WEEKS_PER_TEMPORAL_BUCKET}"


def calculate_metrics(
    fingerprint: ContextFingerprint,
    items: list[dict[str, Any]] | None,
    context: dict[str, Any] | None,
    granularity: str,
) -> CacheKeyMetrics:
    """Diagnostic metrics for a composed key."""
    groups = fingerprint.groups()
    complexity = sum(1 for group in groups if group) / len(groups)

    specificity = min((len(context or {}) + len(items or [])) / 20, 1.0)

    if fingerprint.temporal:
        stability = 0.6
    elif fingerprint.behavioral:
        stability = 0.8
    else:
        stability = 0.9

    hit_probability = GRANULARITY_HIT_SCORES[granularity] * stability

    return CacheKeyMetrics(
        complexity=round(complexity, 2),
        specificity=round(specificity, 2),
        stability=round(stability, 2),
        hit_probability=round(hit_probability, 2),
    )


class KeyComposer:
    """Composes context-aware cache keys.

    Args:
        extractor: Fingerprint extractor. Defaults to one sharing ``clock``.
        clock: Returns the current time; drives temporal signals.
    """

    def __init__(
        self,
        extractor: FingerprintExtractor | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._clock = clock
        self._extractor = extractor or FingerprintExtractor(clock=clock)

    def compose(
        self,
        user_id: str,
        items: list[dict[str, Any]] | None,
        context: dict[str, Any] | None,
        prompt_type: str,
        user_context: UserContext | None = None,
        strategy: str = "balanced",
    ) -> CacheKey:
        """Compose the cache key for a request.

        Args:
            user_id: Owner of the request
            items: Wardrobe items the request is about
            context: Request context
            prompt_type: Kind of AI request (outfit-generation, ...)
            user_context: Optional personalisation signals
            strategy: Preset name (performance, balanced, precision)

        Returns:
            CacheKey with the 32-character key, metrics and fingerprint
        """
        preset = get_strategy(strategy)

        fingerprint = self._extractor.extract(
            context, user_context, seasonal_sensitivity=preset.seasonal_sensitivity
        )
        temporal = (
            temporal_signature(self._clock(), preset.seasonal_sensitivity)
            if preset.include_timestamp
            else ""
        )

        components = [
            user_id[:USER_PREFIX_LENGTH],
            prompt_type,
            item_signature(items, preset.granularity),
            fingerprint.core,
            fingerprint.style,
            behavior_signature(user_id, user_context),
            temporal,
        ]
        joined = ":".join(component for component in components if component)
        key = hashlib.sha256(joined.encode("utf-8")).hexdigest()[:KEY_LENGTH]

        metrics = calculate_metrics(fingerprint, items, context, preset.granularity)

        logger.debug(
            f"Composed cache key {key[:8]}... with {strategy} strategy "
            f"(complexity={metrics.complexity}, hit_probability={metrics.hit_probability})"
        )

        return CacheKey(key=key, metrics=metrics, fingerprint=fingerprint, strategy=strategy)
