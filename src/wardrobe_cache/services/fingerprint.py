"""Context fingerprinting.

Turns a request's free-form context and the user's personalisation signals
into five independent hashed signal groups. Two calls with structurally
equal inputs produce the same fingerprint regardless of key order, string
casing or the order of list values.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from wardrobe_cache.entities import ContextFingerprint, UserContext
from wardrobe_cache.utils.clock import current_season, utc_now, week_of_year
from wardrobe_cache.utils.normalize import hash_object, normalize_array, normalize_value

CORE_KEYS = ("occasion", "weather", "formality", "activity", "purpose")

CORE_HASH_LENGTH = 8
STYLE_HASH_LENGTH = 6
TEMPORAL_HASH_LENGTH = 4
BEHAVIORAL_HASH_LENGTH = 6
ENVIRONMENTAL_HASH_LENGTH = 4

WEEKS_PER_TEMPORAL_BUCKET = 4


def normalize_signal(value: Any) -> str:
    """Lists are sorted and joined, everything else is normalised as a scalar."""
    if isinstance(value, list):
        return normalize_array(value)
    return normalize_value(value)


class FingerprintExtractor:
    """Derives the core/style/temporal/behavioral/environmental signal groups.

    Args:
        clock: Returns the current time; drives the temporal group.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock

    def extract(
        self,
        context: dict[str, Any] | None,
        user_context: UserContext | None = None,
        seasonal_sensitivity: bool = True,
    ) -> ContextFingerprint:
        """Compute the fingerprint for a request.

        Args:
            context: Request context (occasion, weather, style, ...)
            user_context: Optional personalisation signals
            seasonal_sensitivity: When False the temporal group is left empty

        Returns:
            ContextFingerprint with one short hash per group
        """
        context = context or {}
        temporal = self.temporal_signals(user_context) if seasonal_sensitivity else {}

        return ContextFingerprint(
            core=hash_object(self.core_signals(context), CORE_HASH_LENGTH),
            style=hash_object(self.style_signals(context, user_context), STYLE_HASH_LENGTH),
            temporal=hash_object(temporal, TEMPORAL_HASH_LENGTH),
            behavioral=hash_object(self.behavioral_signals(user_context), BEHAVIORAL_HASH_LENGTH),
            environmental=hash_object(
                self.environmental_signals(context, user_context), ENVIRONMENTAL_HASH_LENGTH
            ),
        )

    @staticmethod
    def core_signals(context: dict[str, Any]) -> dict[str, str]:
        """Allow-listed context keys that define what is being asked for."""
        return {
            key: normalize_value(context[key])
            for key in CORE_KEYS
            if context.get(key) is not None
        }

    @staticmethod
    def style_signals(context: dict[str, Any], user_context: UserContext | None) -> dict[str, str]:
        signals: dict[str, str] = {}

        if context.get("style"):
            signals["requested_style"] = normalize_signal(context["style"])
        if context.get("colors"):
            signals["requested_colors"] = normalize_array(context["colors"])
        if context.get("aesthetic"):
            signals["aesthetic"] = normalize_signal(context["aesthetic"])

        preferences = user_context.preferences if user_context else None
        if preferences is not None:
            if preferences.style:
                signals["preferred_style"] = normalize_value(preferences.style)
            if preferences.colors:
                signals["preferred_colors"] = normalize_array(preferences.colors)

        return signals

    def temporal_signals(self, user_context: UserContext | None) -> dict[str, Any]:
        now = self._clock()
        signals: dict[str, Any] = {
            "season": current_season(now),
            "time_bucket": week_of_year(now) // WEEKS_PER_TEMPORAL_BUCKET,
        }

        seasonal = user_context.seasonal_context if user_context else None
        if seasonal is not None:
            signals["user_season"] = seasonal.season
            signals["climate"] = seasonal.climate

        return signals

    @staticmethod
    def behavioral_signals(user_context: UserContext | None) -> dict[str, Any]:
        if user_context is None:
            return {}

        signals: dict[str, Any] = {}

        preferences = user_context.preferences
        if preferences is not None:
            signals["lifestyle"] = preferences.lifestyle
            signals["occasions"] = normalize_array(preferences.occasions)
            signals["budget"] = preferences.budget

        evolution = user_context.wardrobe_evolution
        if evolution is not None:
            signals["style_shifts"] = normalize_array(evolution.style_shifts)
            signals["recent_activity"] = len(evolution.recent_additions or [])

        return signals

    @staticmethod
    def environmental_signals(
        context: dict[str, Any], user_context: UserContext | None
    ) -> dict[str, str]:
        signals: dict[str, str] = {}

        if context.get("location"):
            signals["location"] = normalize_value(context["location"])
        if context.get("climate"):
            signals["climate"] = normalize_value(context["climate"])

        seasonal = user_context.seasonal_context if user_context else None
        if seasonal is not None and seasonal.location:
            signals["user_location"] = normalize_value(seasonal.location)

        return signals
