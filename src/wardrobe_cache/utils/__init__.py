"""Utility modules for the wardrobe cache."""

from .clock import current_season, parse_timestamp, to_iso, utc_now, week_of_year
from .normalize import hash_object, normalize_array, normalize_value, short_hash

__all__ = [
    "current_season",
    "parse_timestamp",
    "to_iso",
    "utc_now",
    "week_of_year",
    "hash_object",
    "normalize_array",
    "normalize_value",
    "short_hash",
]
