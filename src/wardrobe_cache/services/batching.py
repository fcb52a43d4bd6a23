"""In-flight request de-duplication.

Concurrent misses on the same key share one generation instead of each
calling the generator. The pending map is local to the process and is not
needed for correctness: without it, the second store simply fails as a
duplicate.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class RequestBatcher:
    """Shares one in-flight coroutine between callers using the same key.

    Example:
        ```python
        batcher = RequestBatcher()
        data = await batcher.run("u1:3f9a...", lambda: generate_and_store())
        ```
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task] = {}
        self._executed = 0
        self._deduplicated = 0

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``factory`` unless a call for ``key`` is already in flight.

        Args:
            key: De-duplication key
            factory: Zero-argument callable returning the awaitable to run

        Returns:
            The result of the shared call. Its exception, if any, is raised
            to every waiting caller.
        """
        task = self._pending.get(key)
        if task is not None:
            self._deduplicated += 1
            logger.debug(f"Joining in-flight request {key[-8:]}")
            return await asyncio.shield(task)

        task = asyncio.ensure_future(factory())
        self._pending[key] = task
        self._executed += 1
        try:
            # Shielded so one cancelled waiter does not cancel the others
            return await asyncio.shield(task)
        finally:
            if self._pending.get(key) is task:
                del self._pending[key]

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def get_stats(self) -> dict[str, int]:
        return {
            "pending": self.pending_count,
            "executed": self._executed,
            "deduplicated": self._deduplicated,
        }
