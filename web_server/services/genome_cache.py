import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from models.genome import Genome
from services.events import EventHandler, emit

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    value: Genome
    fetched_at: float


class GenomeCache:
    """Time-bounded memoization over a genome fetcher.

    Failed fetches are never cached. Concurrent misses for the same
    username share a single fetch.
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[Genome]],
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_event: Optional[EventHandler] = None,
    ):
        self.fetch = fetch
        self.ttl = ttl
        self.clock = clock
        self.on_event = on_event
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    def get(self, username: str) -> Optional[Genome]:
        """Fresh cached value or None. Never fetches."""
        entry = self._entries.get(username)
        if entry is None:
            return None
        if self.clock() - entry.fetched_at >= self.ttl:
            return None
        return entry.value

    def set(self, username: str, value: Genome) -> None:
        self._entries[username] = CacheEntry(value=value, fetched_at=self.clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def get_genome(self, username: str) -> Optional[Genome]:
        """Cached genome, fetching on a miss. Returns None when the fetch fails."""
        cached = self.get(username)
        if cached is not None:
            logger.debug("Genome cache hit for %s", username)
            return cached

        pending = self._inflight.get(username)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch(username))
            self._inflight[username] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(username, None))
        return await asyncio.shield(pending)

    async def _fetch(self, username: str) -> Optional[Genome]:
        try:
            value = await self.fetch(username)
        except Exception as e:
            logger.warning("Could not fetch genome for %s: %s", username, e)
            emit(self.on_event, "genome_fetch_failed", username, e)
            return None
        self.set(username, value)
        return value
