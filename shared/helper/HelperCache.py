"""In-memory cache with a per-entry time-to-live."""

import time
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class HelperCache:
    """Key/value cache where every entry expires after its own TTL.

    Expired entries are evicted lazily on read.
    """

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._default_ttl = default_ttl
        self._clock = clock
        # key -> (data, stored_at, ttl)
        self._items: dict[str, tuple[Any, float, float]] = {}

    def get(self, key: str) -> Any | None:
        item = self._items.get(key)
        if item is None:
            return None
        data, stored_at, ttl = item
        if self._clock() - stored_at > ttl:
            del self._items[key]
            return None
        return data

    def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        self._items[key] = (data, self._clock(), self._default_ttl if ttl is None else ttl)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]], ttl: float | None = None) -> T:
        """Return the cached value for ``key`` or await ``loader`` and cache its result.

        A cached falsy value (empty list, 0) counts as a miss and is reloaded.
        """
        cached = self.get(key)
        if cached:
            return cached
        data = await loader()
        self.set(key, data, ttl)
        return data
