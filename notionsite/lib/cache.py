import asyncio
import logging
import time
from dataclasses import dataclass as std_dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Generic, Set, TypeVar

from pydantic.dataclasses import dataclass

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = timedelta(minutes=5)
DEFAULT_REFRESH_THRESHOLD = 0.8


@dataclass(frozen=True)
class CacheConfig:
    """Freshness policy for cached values.

    Attributes:
        ttl (timedelta): How long a stored value stays valid. (Default: 5 min)
        refresh_threshold (float): Fraction of `ttl` after which a lookup
            triggers a background refresh. Must be in `(0, 1]`.
            (Default: `0.8`)
    """

    ttl: timedelta = DEFAULT_TTL
    refresh_threshold: float = DEFAULT_REFRESH_THRESHOLD

    def __post_init__(self):
        if self.ttl <= timedelta(0):
            raise ValueError(f"ttl should be positive: {self.ttl}")
        if not 0.0 < self.refresh_threshold <= 1.0:
            raise ValueError(
                f"refresh_threshold should be in (0, 1]: {self.refresh_threshold}"
            )


@std_dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    stored_at: float
    expires_at: float


class Cache:
    """In-process cache of asynchronously fetched values.

    Values are returned from the cache while fresh. Once a value is past
    `ttl * refresh_threshold` it is still returned, but a refresh is started
    in the background. Expired values are fetched again, and if that fetch
    fails the expired value is returned instead of the error.

    Concurrent lookups of a missing key are not de-duplicated: each of them
    calls `fetch`.

    Args:
        config: Default freshness policy.
        clock: Returns current time in seconds. Defaults to `time.monotonic`.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CacheConfig()
        self.clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._refreshes: Set[asyncio.Task] = set()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def get(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        config: CacheConfig | None = None,
    ) -> T:
        config = config or self.config
        ttl = config.ttl.total_seconds()
        now = self.clock()
        entry = self._entries.get(key, None)

        if entry is not None and now < entry.expires_at:
            if now > entry.stored_at + ttl * config.refresh_threshold:
                logger.debug(f"Refreshing cache in background: {key}")
                self._refresh_in_background(key, fetch, ttl, entry)
            else:
                logger.debug(f"Cache hit: {key}")
            return entry.data

        try:
            logger.debug(f"Fetching fresh data for: {key}")
            data = await fetch()
        except Exception as e:
            if entry is None:
                raise
            logger.warning(f"Using expired cache as fallback for: {key}", exc_info=e)
            return entry.data

        self._entries[key] = CacheEntry(data=data, stored_at=now, expires_at=now + ttl)

        return data

    def clear(self, prefix: str | None = None) -> None:
        """Remove all entries, or only those with keys starting with `prefix`."""
        if prefix:
            for key in [key for key in self._entries if key.startswith(prefix)]:
                del self._entries[key]
            logger.info(f"Cleared cache with prefix: {prefix}")
        else:
            self._entries.clear()
            logger.info("Cleared all cache")

    async def join(self) -> None:
        """Wait for in-flight background refreshes to finish."""
        while self._refreshes:
            await asyncio.gather(*self._refreshes)

    def _refresh_in_background(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl: float,
        entry: CacheEntry[Any],
    ) -> None:
        async def _refresh():
            try:
                data = await fetch()
            except Exception as e:
                logger.warning(f"Failed to refresh cache in background: {key}", exc_info=e)
                return

            # Entry was cleared or replaced while fetching.
            if self._entries.get(key) is not entry:
                logger.debug(f"Discarding background refresh for: {key}")
                return

            now = self.clock()
            self._entries[key] = CacheEntry(
                data=data, stored_at=now, expires_at=now + ttl
            )
            logger.debug(f"Cache refreshed in background: {key}")

        # Event loop keeps only weak references to tasks.
        task = asyncio.create_task(_refresh())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)
