"""Cache entry domain entity."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for one persisted AI response.

    At most one entry exists per (user_id, request_hash). Only
    ``last_accessed_at`` and ``access_count`` change after insertion.

    Attributes:
        user_id: Owner of the entry; every read and write is scoped by it
        request_hash: The composed cache key
        request_data: Snapshot of the inputs that produced the response
        response: The generator output, opaque to the cache
        created_at: When the entry was first written
        last_accessed_at: When the entry was last served
        access_count: Number of validated hits
    """

    user_id: str
    request_hash: str
    request_data: dict[str, Any]
    response: Any
    created_at: datetime
    last_accessed_at: datetime
    access_count: int = field(default=0)

    @property
    def stored_season(self) -> str | None:
        """Season recorded in the request snapshot at write time."""
        seasonal = self.request_data.get("seasonal_context") or {}
        return seasonal.get("season") if isinstance(seasonal, dict) else None

    def age_seconds(self, now: datetime) -> float:
        """Seconds elapsed since the entry was created."""
        return (now - self.created_at).total_seconds()

    @property
    def payload_size(self) -> int:
        """Approximate stored size in bytes of the JSON columns."""
        return len(json.dumps(self.request_data, default=str)) + len(
            json.dumps(self.response, default=str)
        )
