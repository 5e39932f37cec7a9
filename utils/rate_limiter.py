# utils/rate_limiter.py - Per-client sliding-window request limiter (in memory, per process)
import time
import logging
from collections import deque
from threading import Lock
from typing import Deque, Dict
from fastapi import Request
from config import RATE_LIMIT_WINDOW_SECONDS, RATE_LIMIT_MAX_REQUESTS
from utils.errors import RateLimited

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    def __init__(self, window_seconds: float, max_requests: int):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = None
        self._lock = Lock()

    def _sweep(self, window_start: float):
        """Drop every client whose newest hit has left the window"""
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= window_start]:
            del self._hits[key]

    def allow(self, key: str, now: float = None) -> bool:
        now = time.monotonic() if now is None else now
        window_start = now - self.window_seconds
        with self._lock:
            if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
                self._sweep(window_start)
                self._last_sweep = now

            hits = self._hits.get(key)
            if hits is None:
                hits = self._hits[key] = deque()
            while hits and hits[0] <= window_start:
                hits.popleft()
            if len(hits) >= self.max_requests:
                if not hits:
                    del self._hits[key]
                return False
            hits.append(now)
            return True

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self):
        with self._lock:
            self._hits.clear()
            self._last_sweep = None


reference_limiter = SlidingWindowLimiter(RATE_LIMIT_WINDOW_SECONDS, RATE_LIMIT_MAX_REQUESTS)


def rate_limit(request: Request):
    client_ip = request.client.host if request.client else "unknown"
    if not reference_limiter.allow(client_ip):
        logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
        raise RateLimited()
