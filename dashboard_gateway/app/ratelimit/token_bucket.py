"""
Token bucket rate limiter for the Gateway service.
"""

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Any

from fastapi import Request

from shared.logging import get_logger, set_client_context


@dataclass
class RateBucket:
    """Per-client token state."""

    tokens: float
    last_refill: float


@dataclass(frozen=True)
class RateDecision:
    """Outcome of a single admission check."""

    allowed: bool
    retry_after_seconds: int
    limit: int
    remaining: int


class TokenBucketRateLimiter:
    """In-process token bucket rate limiter.

    Every client starts with a full bucket of ``limit`` tokens which refills
    continuously at ``limit`` tokens per ``window_ms``. A request costs one
    token. The bucket map is bounded by ``max_clients``: idle buckets (ones
    that would be full again) are swept first, then the least recently seen
    clients are dropped.
    """

    def __init__(
        self,
        limit: int = 1000,
        window_ms: int = 24 * 60 * 60 * 1000,
        *,
        max_clients: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        self.limit = limit
        self.window_ms = window_ms
        self.max_clients = max_clients
        self.logger = get_logger("gateway.rate_limiter")
        self._clock = clock
        self._buckets: "OrderedDict[str, RateBucket]" = OrderedDict()
        self._lock = threading.Lock()

    def check(self, client_id: str) -> RateDecision:
        """Consume a token for ``client_id`` if one is available."""
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(client_id)
            if bucket is None:
                bucket = RateBucket(tokens=float(self.limit), last_refill=now)
                self._buckets[client_id] = bucket
                self._enforce_capacity()
            else:
                self._buckets.move_to_end(client_id)

            self._refill(bucket, now)

            if bucket.tokens < 1:
                retry_after_ms = math.ceil(((1 - bucket.tokens) / self.limit) * self.window_ms)
                retry_after_seconds = max(1, math.ceil(retry_after_ms / 1000))
                self.logger.warning(
                    "Rate limit exceeded",
                    client_id=client_id,
                    retry_after_seconds=retry_after_seconds,
                    limit=self.limit
                )
                return RateDecision(
                    allowed=False,
                    retry_after_seconds=retry_after_seconds,
                    limit=self.limit,
                    remaining=0,
                )

            bucket.tokens -= 1
            return RateDecision(
                allowed=True,
                retry_after_seconds=0,
                limit=self.limit,
                remaining=int(bucket.tokens),
            )

    def _refill(self, bucket: RateBucket, now: float) -> None:
        elapsed_ms = max(0.0, (now - bucket.last_refill) * 1000)
        refill = (elapsed_ms / self.window_ms) * self.limit
        bucket.tokens = min(float(self.limit), bucket.tokens + refill)
        bucket.last_refill = now

    def _enforce_capacity(self) -> None:
        """Keep the bucket map within ``max_clients``. Caller holds the lock."""
        if len(self._buckets) <= self.max_clients:
            return

        swept = self._sweep_idle(self._clock())
        while len(self._buckets) > self.max_clients:
            evicted, _ = self._buckets.popitem(last=False)
            self.logger.debug("Evicted rate limit bucket", client_id=evicted)

        if swept:
            self.logger.info("Swept idle rate limit buckets", swept=swept)

    def _sweep_idle(self, now: float) -> int:
        window_seconds = self.window_ms / 1000
        idle = [
            client_id
            for client_id, bucket in self._buckets.items()
            if now - bucket.last_refill >= window_seconds
        ]
        for client_id in idle:
            del self._buckets[client_id]
        return len(idle)

    def sweep(self) -> int:
        """Drop buckets that have been idle long enough to be full again."""
        with self._lock:
            return self._sweep_idle(self._clock())

    def get_stats(self) -> Dict[str, Any]:
        """Get limiter statistics."""
        with self._lock:
            return {
                "tracked_clients": len(self._buckets),
                "limit": self.limit,
                "window_ms": self.window_ms,
                "max_clients": self.max_clients,
            }


class RateLimitMiddleware:
    """Resolves the caller identity and runs the limiter for a request."""

    def __init__(self, rate_limiter: TokenBucketRateLimiter, *, trust_forwarded_for: bool = False):
        self.rate_limiter = rate_limiter
        self.trust_forwarded_for = trust_forwarded_for
        self.logger = get_logger("gateway.rate_limit_middleware")

    def check_request(self, request: Request) -> RateDecision:
        """Check rate limit for request and bind the client to the log context."""
        client_id = self.get_client_id(request)
        set_client_context(client_id)
        return self.rate_limiter.check(client_id)

    def get_client_id(self, request: Request) -> str:
        """Extract client ID from request."""
        if self.trust_forwarded_for:
            forwarded_for = request.headers.get('X-Forwarded-For')
            if isinstance(forwarded_for, str) and forwarded_for:
                return forwarded_for.split(',')[0].strip()

        return request.client.host if request.client else 'unknown'
