import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()

STRATEGIES = ("performance", "balanced", "precision")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Cache
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "gemini_cache")
    cache_max_age_hours: float = float(os.getenv("CACHE_MAX_AGE_HOURS", "24"))
    cache_ttl: int = int(os.getenv("CACHE_TTL", "2592000"))  # 30 days default
    cache_default_strategy: str = os.getenv("CACHE_DEFAULT_STRATEGY", "balanced")

    # Maintenance
    cleanup_max_age_days: int = int(os.getenv("CACHE_CLEANUP_MAX_AGE_DAYS", "30"))
    unused_max_age_days: int = int(os.getenv("CACHE_UNUSED_MAX_AGE_DAYS", "7"))
    max_cache_size_mb: float = float(os.getenv("CACHE_MAX_SIZE_MB", "100"))
    smart_min_age_days: int = int(os.getenv("CACHE_SMART_MIN_AGE_DAYS", "7"))
    maintenance_secret_key: str | None = os.getenv("MAINTENANCE_SECRET_KEY")

    # Warming
    warming_enabled: bool = os.getenv("WARMING_ENABLED", "false").lower() == "true"
    warming_interval_minutes: int = int(os.getenv("WARMING_INTERVAL_MINUTES", "30"))

    # Gemini
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    gemini_base_url: str = os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    gemini_timeout: float = float(os.getenv("GEMINI_TIMEOUT", "30"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def cache_max_age_ms(self) -> float:
        """Hard age limit for serving an entry, in milliseconds."""
        return self.cache_max_age_hours * 60 * 60 * 1000

    @property
    def has_gemini(self) -> bool:
        """Check if a Gemini API key is configured."""
        return bool(self.gemini_api_key)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_default_strategy not in STRATEGIES:
            raise ValueError(
                f"CACHE_DEFAULT_STRATEGY must be one of {list(STRATEGIES)}, "
                f"got {self.cache_default_strategy!r}"
            )

        if self.cache_max_age_hours <= 0:
            raise ValueError("CACHE_MAX_AGE_HOURS must be positive")

        if self.max_cache_size_mb <= 0:
            raise ValueError("CACHE_MAX_SIZE_MB must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
