"""
In-memory cache for rendered pages.

`ResponseCache` is a bounded, time-limited mapping keyed by render mode and
URL. Entries expire `ttl_ms` after they were written; when a write pushes the
cache over capacity, the entry written longest ago is dropped. Reading an
entry does not change its position, so eviction order depends on write order
alone.
"""
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from page_renderer.core.exceptions import CacheError
from page_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from page_renderer.core.config import ConfigurationManager

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    payload: Dict[str, Any]
    inserted_at: float


class ResponseCache:
    """
    Bounded TTL cache of render payloads (`{"html": ..., "metadata": ...}`).

    Attributes:
        capacity (int): Maximum number of entries held at once.
        ttl_ms (int): Lifetime of an entry in milliseconds.
    """
    DEFAULT_CAPACITY = 50
    DEFAULT_TTL_MS = 5 * 60 * 1000

    def __init__(self, capacity: int = DEFAULT_CAPACITY, ttl_ms: int = DEFAULT_TTL_MS,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            capacity (int): Maximum number of live entries. Must be at least 1.
            ttl_ms (int): Entry lifetime in milliseconds. Must not be negative.
            clock (Callable[[], float]): Time source in seconds. Tests pass a fake clock.

        Raises:
            CacheError: If capacity or ttl_ms is out of range.
        """
        if int(capacity) < 1:
            raise CacheError(f"Cache capacity must be at least 1, got {capacity}.")
        if int(ttl_ms) < 0:
            raise CacheError(f"Cache TTL must not be negative, got {ttl_ms}.")
        self.capacity = int(capacity)
        self.ttl_ms = int(ttl_ms)
        self._clock = clock
        self._entries: 'OrderedDict[str, CacheEntry]' = OrderedDict()

    @classmethod
    def from_config(cls, config: Optional['ConfigurationManager']) -> 'ResponseCache':
        if config is None:
            return cls()
        return cls(
            capacity=config.get('cache.capacity', cls.DEFAULT_CAPACITY),
            ttl_ms=config.get('cache.ttl_ms', cls.DEFAULT_TTL_MS),
        )

    @staticmethod
    def make_key(mode: str, url: str) -> str:
        # Plain concatenation, case-sensitive.
        return f"{mode}{url}"

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return (now - entry.inserted_at) * 1000.0 > self.ttl_ms

    def read(self, mode: str, url: str) -> Optional[Dict[str, Any]]:
        """
        Returns the cached payload for (mode, url), or None on a miss.

        An expired entry counts as a miss and is removed.
        """
        key = self.make_key(mode, url)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired for {mode} {url}.")
            return None
        return entry.payload

    def write(self, mode: str, url: str, payload: Dict[str, Any]) -> None:
        """
        Stores `payload` for (mode, url) with the current time.

        Overwriting a key re-inserts it as the newest entry. If the cache then
        holds more than `capacity` entries, the oldest-written one is evicted.
        """
        key = self.make_key(mode, url)
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(payload=payload, inserted_at=self._clock())
        if len(self._entries) > self.capacity:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full ({self.capacity}); evicted oldest entry '{evicted_key}'.")

    def purge_expired(self) -> int:
        """Removes every expired entry and returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
