import time
from threading import Lock
from typing import Any, Hashable, Optional

from stilltrue.utils.env import env_float


class TTLCache:
    """Process-local memo for encyclopedia lookups; entries expire after ``ttl`` seconds."""

    def __init__(self, ttl: float = 3600.0, max_items: int = 512):
        self.ttl = ttl
        self.max_items = max_items
        self.store: dict[Hashable, tuple[float, Any]] = {}
        self._lock = Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        now = time.time()
        with self._lock:
            item = self.store.get(key)
            if not item:
                return None
            ts, val = item
            if now - ts > self.ttl:
                del self.store[key]
                return None
            return val

    def set(self, key: Hashable, val: Any):
        with self._lock:
            if len(self.store) >= self.max_items and key not in self.store:
                oldest = min(self.store, key=lambda k: self.store[k][0])
                del self.store[oldest]
            self.store[key] = (time.time(), val)

    def clear(self):
        with self._lock:
            self.store.clear()

    def invalidate(self, key: Hashable):
        with self._lock:
            self.store.pop(key, None)


context_cache = TTLCache(ttl=env_float("WIKI_CONTEXT_TTL_SEC", 3600.0, 0.0, 86400.0))
