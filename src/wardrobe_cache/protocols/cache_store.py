"""Cache storage protocol.

Defines the interface for the persisted table that holds AI responses,
one row per (user_id, request_hash).

Implementations can include:
- Redis hashes (default)
- A Postgres / Supabase table with a unique (user_id, request_hash) index
- An in-memory dict (tests)

Every method may raise ``StoreUnavailableError`` when the backend cannot be
reached. The service layer turns that into a cache miss.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from wardrobe_cache.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed.

    Example:
        ```python
        from wardrobe_cache.protocols import CacheStore

        repo: CacheStore = RedisCacheRepository()
        ```
    """

    def select(self, user_id: str, request_hash: str) -> CacheEntryEntity | None:
        """Fetch a single entry.

        Args:
            user_id: Owner of the entry
            request_hash: The composed cache key

        Returns:
            The entry, or None if no row exists for this user and key
        """
        ...

    def insert(self, entry: CacheEntryEntity) -> None:
        """Insert a new entry.

        Args:
            entry: The entry to persist

        Raises:
            DuplicateEntryError: If a row already exists for the same
                (user_id, request_hash)
        """
        ...

    def touch(self, user_id: str, request_hash: str, accessed_at: datetime) -> bool:
        """Record a hit: atomically increment access_count and set last_accessed_at.

        Args:
            user_id: Owner of the entry
            request_hash: The composed cache key
            accessed_at: Timestamp of the hit

        Returns:
            True if the row existed and was updated, False otherwise
        """
        ...

    def delete(self, user_id: str, request_hash: str) -> bool:
        """Delete a single entry.

        Returns:
            True if a row was deleted, False otherwise
        """
        ...

    def delete_older_than(self, cutoff: datetime, only_unused: bool = False) -> int:
        """Bulk-delete entries created before ``cutoff``.

        Args:
            cutoff: Entries with created_at strictly before this are removed
            only_unused: Restrict deletion to entries with access_count == 0

        Returns:
            Number of entries deleted
        """
        ...

    def list_entries(self, user_id: str | None = None) -> list[CacheEntryEntity]:
        """List entries, optionally restricted to one user.

        Returns:
            All matching entries, in no particular order
        """
        ...

    def count_all(self) -> int:
        """Count total entries in the cache."""
        ...

    def health_check(self) -> bool:
        """Check if the backend is accessible."""
        ...

    def get_stats(self) -> dict:
        """Get backend statistics (implementation-specific)."""
        ...
