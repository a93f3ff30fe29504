import time
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple


class AlbumCache:
    """In-memory album cache with a TTL and an insertion-order size cap.

    Entries expire lazily on read; there is no background sweep. Once the cache
    holds ``max_entries`` keys, inserting a new key evicts the oldest inserted
    one (not the least recently read one).
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock

        # key -> (value, timestamp); dicts keep insertion order
        self._entries: Dict[str, Tuple[Any, float]] = {}

        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, dropping it if it has expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, timestamp = entry
            if self._clock() - timestamp < self.ttl_seconds:
                return value
            del self._entries[key]
            return None

    def set(self, key: str, value: Any):
        """Store a value, evicting the oldest entry when the cache is full"""
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest_key = next(iter(self._entries), None)
                if oldest_key is not None:
                    del self._entries[oldest_key]
            self._entries[key] = (value, self._clock())

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
