"""Request DTOs for API endpoints."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

StrategyName = Literal["performance", "balanced", "precision"]


class PreferencesModel(BaseModel):
    """Style preferences from the user's profile."""

    style: str | None = None
    colors: list[str] | None = None
    occasions: list[str] | None = None
    lifestyle: str | None = None
    body_type: str | None = None
    budget: str | None = None


class SeasonalContextModel(BaseModel):
    """Season and climate the user is dressing for."""

    season: str | None = None
    climate: str | None = None
    location: str | None = None


class WardrobeEvolutionModel(BaseModel):
    """Recent wardrobe changes, used to detect stale entries."""

    recent_additions: list[Any] | None = None
    style_shifts: list[str] | None = None
    last_analysis_date: datetime | None = None


class UserContextModel(BaseModel):
    """Personalisation signals attached to a request.

    Unknown keys are accepted and stored with the request snapshot.
    """

    preferences: PreferencesModel | None = None
    seasonal_context: SeasonalContextModel | None = None
    wardrobe_evolution: WardrobeEvolutionModel | None = None

    model_config = {"extra": "allow"}


class CacheKeyRequest(BaseModel):
    """Request DTO for composing a cache key.

    The handler will convert this to internal calls to the service layer.
    """

    user_id: str = Field(..., description="Owner of the request", min_length=1)
    prompt_type: str = Field(
        ..., description="Kind of AI request, e.g. outfit-generation", min_length=1
    )
    items: list[dict[str, Any]] = Field(
        default_factory=list, description="Wardrobe items the request is about"
    )
    context: dict[str, Any] = Field(
        default_factory=dict, description="Request context (occasion, weather, style, ...)"
    )
    user_context: UserContextModel | None = Field(None, description="Personalisation signals")
    strategy: StrategyName | None = Field(
        None, description="Key strategy preset (defaults to the configured strategy)"
    )


class CacheLookupRequest(BaseModel):
    """Request DTO for looking up a cache entry."""

    user_id: str = Field(..., description="Owner of the entry", min_length=1)
    key: str = Field(..., description="Composed cache key", min_length=1)
    user_context: UserContextModel | None = Field(
        None, description="Current personalisation signals, used for invalidation"
    )


class CacheStoreRequest(BaseModel):
    """Request DTO for storing a generated response."""

    user_id: str = Field(..., description="Owner of the entry", min_length=1)
    key: str = Field(..., description="Composed cache key", min_length=1)
    prompt_type: str = Field(..., description="Kind of AI request", min_length=1)
    items: list[dict[str, Any]] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)
    response: Any = Field(..., description="The generator output to cache")
    user_context: UserContextModel | None = None


class SuggestionRequest(CacheKeyRequest):
    """Request DTO for get-or-generate."""

    prompt: str = Field(..., description="Prompt sent to the generator on a miss", min_length=1)
    options: dict[str, Any] | None = Field(
        None, description="Generator option overrides (temperature, max_output_tokens, ...)"
    )
    force_refresh: bool = Field(False, description="Skip the cache and regenerate")


class WarmPatternRequest(BaseModel):
    """A single request pattern to pre-generate."""

    prompt_type: str = Field(..., min_length=1)
    items: list[dict[str, Any]] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)
    user_context: UserContextModel | None = None


class WarmCacheRequest(BaseModel):
    """Request DTO for warming explicit patterns for a user."""

    user_id: str = Field(..., min_length=1)
    patterns: list[WarmPatternRequest] = Field(..., min_length=1)
