"""User context domain entities.

The user context is loosely typed upstream (it comes from profile rows and
AI analysis), so only the fields the cache reads are modelled here. Unknown
keys are kept in ``extra`` and travel with the request snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from wardrobe_cache.utils.clock import parse_timestamp, to_iso


@dataclass(frozen=True)
class Preferences:
    """Style preferences from the user's profile."""

    style: str | None = None
    colors: list[str] | None = None
    occasions: list[str] | None = None
    lifestyle: str | None = None
    body_type: str | None = None
    budget: str | None = None


@dataclass(frozen=True)
class SeasonalContext:
    """Season and climate the user is dressing for."""

    season: str | None = None
    climate: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class WardrobeEvolution:
    """Recent changes to the user's wardrobe.

    ``recent_additions`` is None when unknown and an empty list when known
    to be empty; the two are fingerprinted differently.
    """

    recent_additions: list[Any] | None = None
    style_shifts: list[str] | None = None
    last_analysis_date: datetime | None = None


@dataclass(frozen=True)
class UserContext:
    """Personalisation signals attached to a request."""

    preferences: Preferences | None = None
    seasonal_context: SeasonalContext | None = None
    wardrobe_evolution: WardrobeEvolution | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "UserContext | None":
        """Build a UserContext from a JSON-like dict (None passes through)."""
        if data is None:
            return None

        known = {"preferences", "seasonal_context", "wardrobe_evolution"}
        preferences = data.get("preferences")
        seasonal = data.get("seasonal_context")
        evolution = data.get("wardrobe_evolution")

        return cls(
            preferences=Preferences(
                style=preferences.get("style"),
                colors=preferences.get("colors"),
                occasions=preferences.get("occasions"),
                lifestyle=preferences.get("lifestyle"),
                body_type=preferences.get("body_type"),
                budget=preferences.get("budget"),
            )
            if isinstance(preferences, dict)
            else None,
            seasonal_context=SeasonalContext(
                season=seasonal.get("season"),
                climate=seasonal.get("climate"),
                location=seasonal.get("location"),
            )
            if isinstance(seasonal, dict)
            else None,
            wardrobe_evolution=WardrobeEvolution(
                recent_additions=evolution.get("recent_additions"),
                style_shifts=evolution.get("style_shifts"),
                last_analysis_date=parse_timestamp(evolution.get("last_analysis_date")),
            )
            if isinstance(evolution, dict)
            else None,
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting unset fields."""
        result: dict[str, Any] = dict(self.extra)

        if self.preferences is not None:
            result["preferences"] = _drop_none(vars(self.preferences))
        if self.seasonal_context is not None:
            result["seasonal_context"] = _drop_none(vars(self.seasonal_context))
        if self.wardrobe_evolution is not None:
            evolution = self.wardrobe_evolution
            result["wardrobe_evolution"] = _drop_none(
                {
                    "recent_additions": evolution.recent_additions,
                    "style_shifts": evolution.style_shifts,
                    "last_analysis_date": to_iso(evolution.last_analysis_date)
                    if evolution.last_analysis_date
                    else None,
                }
            )

        return result


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
