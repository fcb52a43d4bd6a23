"""Staleness rules for cached responses.

Rules are checked in order and the first one that fails invalidates the
entry:

1. age: the entry is older than the maximum age
2. wardrobe_evolved: items were added and the wardrobe was re-analysed
   after the entry was written
3. season_changed: the season recorded at write time differs from now
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

from wardrobe_cache.config import settings
from wardrobe_cache.entities import CacheEntryEntity, UserContext
from wardrobe_cache.utils.clock import current_season, utc_now


class InvalidationReason(str, Enum):
    AGE = "age"
    WARDROBE_EVOLVED = "wardrobe_evolved"
    SEASON_CHANGED = "season_changed"


class InvalidationPolicy:
    """Decides whether a stored entry may still be served.

    Args:
        max_age_ms: Hard age limit in milliseconds. Defaults to settings.
        clock: Returns the current time.
    """

    def __init__(
        self,
        max_age_ms: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._max_age = timedelta(milliseconds=max_age_ms or settings.cache_max_age_ms)
        self._clock = clock

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    def check(
        self,
        entry: CacheEntryEntity,
        user_context: UserContext | None = None,
    ) -> InvalidationReason | None:
        """Return the first failing rule, or None if the entry is valid."""
        now = self._clock()

        if now - entry.created_at > self._max_age:
            return InvalidationReason.AGE

        evolution = user_context.wardrobe_evolution if user_context else None
        if (
            evolution is not None
            and evolution.recent_additions
            and evolution.last_analysis_date is not None
            and evolution.last_analysis_date > entry.created_at
        ):
            return InvalidationReason.WARDROBE_EVOLVED

        stored_season = entry.stored_season
        if stored_season and stored_season != current_season(now):
            return InvalidationReason.SEASON_CHANGED

        return None

    def is_valid(self, entry: CacheEntryEntity, user_context: UserContext | None = None) -> bool:
        return self.check(entry, user_context) is None
