"""Memoized resolution of the agent's node name.

The node name is fetched from the agent once per cache and shared by every
concurrent caller. There is no invalidation: if the agent restarts under a
different name, the cache keeps serving the first value for as long as the
owning client lives.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class NodeNameCache:
    """Compute-once slot for the agent's node name.

    Reads after resolution take no lock. Before resolution, callers
    serialize on an asyncio.Lock and re-check the slot, so concurrent
    callers issue at most one fetch between them.

    A failed or cancelled fetch leaves the slot empty; the error propagates
    to the caller that made the attempt and a later call fetches again.

    Example:
        cache = NodeNameCache(fetch=client.fetch_node_name)
        name = await cache.get()
    """

    def __init__(self, fetch: Callable[[], Awaitable[str]]) -> None:
        """Initialize the cache.

        Args:
            fetch: Coroutine function returning the node name from the agent.
        """
        self._fetch = fetch
        self._value: str | None = None
        self._lock = asyncio.Lock()

    @property
    def resolved(self) -> bool:
        """Whether the node name has been fetched."""
        return self._value is not None

    async def get(self) -> str:
        """Return the node name, fetching it on first use."""
        value = self._value
        if value is not None:
            return value

        async with self._lock:
            if self._value is None:
                resolved = await self._fetch()
                # Publish only a fully computed value
                self._value = resolved
                logger.debug("Resolved agent node name", extra={"node_name": resolved})
            return self._value
