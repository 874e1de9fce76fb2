"""In-process fixed-window rate limiter.

Counters live in one dict owned by the event loop, so limits are
per-instance in multi-process deployments.
"""

import logging
import math
import time
from collections.abc import Callable, Mapping

from search_backend.domain.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Checked in order; the first non-empty header names the client.
CLIENT_IP_HEADERS = (
    "x-vercel-forwarded-for",
    "cf-connecting-ip",
    "x-forwarded-for",
    "x-real-ip",
)


def client_key(headers: Mapping[str, str], peer: str | None) -> str:
    """Resolve the client address behind known proxies."""
    for header in CLIENT_IP_HEADERS:
        value = headers.get(header)
        if value:
            # x-forwarded-for may hold a chain; the first hop is the client.
            return value.split(",")[0].strip()
    return peer or "unknown"


class RateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: float = 60,
        *,
        enabled: bool = True,
        message: str = "Too many requests from this IP, please try again later.",
        clock: Callable[[], float] = time.monotonic,
    ):
        self._limit = limit
        self._window = window_seconds
        self._enabled = enabled
        self._message = message
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._pruned_at = clock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def hit(self, key: str) -> int:
        """Count one request for ``key`` and return how many remain.

        Raises:
            RateLimitExceededError: When the window's budget is spent.
        """
        if not self._enabled:
            return self._limit
        now = self._clock()
        # At most one sweep per window keeps the map bounded by the
        # number of clients seen in the last two windows.
        if now - self._pruned_at >= self._window:
            self.prune()
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self._window:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)

        if count > self._limit:
            retry_after = max(1, math.ceil(self._window - (now - started)))
            logger.warning("Rate limit exceeded for %s (%d/%d)", key, count, self._limit)
            raise RateLimitExceededError(retry_after=retry_after, message=self._message)
        return self._limit - count

    def prune(self) -> int:
        """Forget windows that have fully elapsed."""
        now = self._clock()
        self._pruned_at = now
        stale = [k for k, (started, _) in self._windows.items() if now - started >= self._window]
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("Pruned %d elapsed rate-limit windows", len(stale))
        return len(stale)
