"""Exception types raised by the cache layers.

Only ``MalformedFingerprintError`` is meant to escape the service layer;
storage failures are turned into cache misses by ``CacheService``.
"""


class CacheError(Exception):
    """Base class for all wardrobe cache errors."""


class StoreUnavailableError(CacheError):
    """The persisted cache table could not be reached or returned an error."""


class DuplicateEntryError(CacheError):
    """An entry already exists for this (user_id, request_hash) pair."""

    def __init__(self, user_id: str, request_hash: str) -> None:
        super().__init__(f"Cache entry already exists for {request_hash[:8]}...")
        self.user_id = user_id
        self.request_hash = request_hash


class MalformedFingerprintError(CacheError):
    """A context value could not be normalised for hashing."""


class GenerationError(CacheError):
    """The response generator failed to produce text."""
