from collections import deque
from threading import Lock
from time import monotonic
from typing import Deque, Dict, Optional

from fastapi import Request


class SlidingWindowLimiter:
    """Per-key sliding-window limiter. Process-local; each worker counts separately."""

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def allow(self, key: str, limit: int, window_sec: float, now: Optional[float] = None) -> bool:
        if limit <= 0 or window_sec <= 0:
            return True
        now = monotonic() if now is None else now
        cutoff = now - window_sec
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


def client_key(request: Request, scope: str) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip and request.client:
        ip = request.client.host
    return f"{scope}:{ip or 'anonymous'}"


rate_limiter = SlidingWindowLimiter()
