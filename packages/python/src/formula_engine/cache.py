import logging
from dataclasses import dataclass
from typing import Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """Size-bounded mapping that evicts the older half when full.

    Eviction is by insertion order, not by use: a hit does not make an entry
    younger.
    """

    def __init__(self, max_size: int):
        if max_size < 0:
            raise ValueError("max_size must not be negative")
        self.max_size = max_size
        self._entries: dict[K, V] = {}

    def get(self, key: K) -> Optional[V]:
        return self._entries.get(key)

    def set(self, key: K, value: V) -> None:
        if self.max_size == 0:
            return
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict()
        self._entries[key] = value

    def _evict(self) -> None:
        keep = self.max_size // 2
        dropped = len(self._entries) - keep
        # dicts keep insertion order, so the newest entries are at the end
        self._entries = dict(list(self._entries.items())[dropped:])
        logger.debug("Evicted %d cache entries, kept %d", dropped, keep)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class CacheStats:
    formula_cache_size: int
    result_cache_size: int
    max_cache_size: int
    cache_enabled: bool
