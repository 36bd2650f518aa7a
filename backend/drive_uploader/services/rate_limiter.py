"""Per-client fixed-window request limiter.

In-process only: counts live in this worker's memory and reset on restart.
"""
import logging
import math
import time
from typing import Callable

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

_PRUNE_THRESHOLD = 10_000


class FixedWindowRateLimiter:
    """Allows `limit` hits per key every `window_seconds`."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> float:
        """Count a hit. Returns 0 if allowed, else seconds until the window resets."""
        now = self._clock()
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        if count >= self.limit:
            return max(self.window_seconds - (now - started), 0.0) or self.window_seconds
        self._windows[key] = (started, count + 1)

        if len(self._windows) > _PRUNE_THRESHOLD:
            cutoff = now - self.window_seconds
            self._windows = {k: v for k, v in self._windows.items() if v[0] > cutoff}
        return 0.0

    def reset(self) -> None:
        self._windows.clear()

    def dependency(self):
        """FastAPI dependency that rejects over-limit clients with 429."""
        async def _check(request: Request) -> None:
            key = request.client.host if request.client else "unknown"
            retry_after = self.hit(key)
            if retry_after:
                logger.warning("Rate limit exceeded for %s on %s", key, request.url.path)
                raise HTTPException(
                    status_code=429,
                    detail="Too many requests",
                    headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
                )
        return _check
