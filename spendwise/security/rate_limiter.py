"""
In-memory rate limiting for API requests.

Buckets are keyed by ``{principal}:{path}`` and refilled in fixed windows.
State lives in the process that owns the limiter: nothing is shared between
serving instances and everything is lost on restart.
"""

import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from .secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)


@dataclass
class RateLimitBucket:
    """Remaining tokens and the start of the current window (ms)"""

    tokens: int
    updated_at: float


@dataclass
class RateLimitResult:
    """Rate limit check result"""

    allowed: bool
    remaining: int
    reset_time: datetime
    retry_after: Optional[int] = None


def _now_ms() -> float:
    return time.time() * 1000


class InMemoryRateLimiter:
    """Fixed-window token bucket per principal and route.

    A burst straddling a window boundary can reach twice ``max_requests``.
    """

    def __init__(
        self,
        window_ms: int = 60_000,
        max_requests: int = 120,
        clock: Optional[Callable[[], float]] = None,
    ):
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or _now_ms
        self._buckets: Dict[str, RateLimitBucket] = {}
        self._lock = threading.Lock()

        logger.info(
            "Rate limiter initialized",
            window_ms=window_ms,
            max_requests=max_requests,
        )

    @staticmethod
    def _get_key(identifier: str, pathname: str) -> str:
        return f"{identifier}:{pathname}"

    def consume_token(self, identifier: str, pathname: str) -> RateLimitResult:
        """
        Consume one token for ``identifier`` on ``pathname``

        Args:
            identifier: Principal key, e.g. ``key:ab12cd34`` or ``user:42``
            pathname: Request path

        Returns:
            RateLimitResult with allow/deny decision
        """
        key = self._get_key(identifier, pathname)

        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = RateLimitBucket(tokens=self.max_requests, updated_at=now)
                self._buckets[key] = bucket

            elapsed = now - bucket.updated_at
            if elapsed > self.window_ms:
                bucket.tokens = self.max_requests
                bucket.updated_at = now
                elapsed = 0

            reset_time = datetime.fromtimestamp(
                (bucket.updated_at + self.window_ms) / 1000, tz=timezone.utc
            )

            if bucket.tokens <= 0:
                retry_after = max(1, math.ceil((self.window_ms - elapsed) / 1000))
                logger.info(
                    "Request rejected by rate limiter",
                    identifier=identifier,
                    path=pathname,
                    retry_after=retry_after,
                    operation="consume_token",
                )
                return RateLimitResult(False, 0, reset_time, retry_after)

            bucket.tokens -= 1
            return RateLimitResult(True, bucket.tokens, reset_time)

    def get_bucket(self, identifier: str, pathname: str) -> Optional[RateLimitBucket]:
        with self._lock:
            bucket = self._buckets.get(self._get_key(identifier, pathname))
            return RateLimitBucket(bucket.tokens, bucket.updated_at) if bucket else None

    def reset(self, identifier: Optional[str] = None, pathname: Optional[str] = None) -> None:
        """Drop one bucket, or all buckets when no key is given"""
        with self._lock:
            if identifier is None:
                self._buckets.clear()
            else:
                self._buckets.pop(self._get_key(identifier, pathname or ""), None)
