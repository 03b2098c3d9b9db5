"""Per-client token bucket rate limiter.

Each client key gets a bucket holding up to ``burst_size`` tokens that
refills one token every ``60 / rate_limit`` seconds. A request consumes one
token or is rejected. State is process-local and never persisted.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .errors import RateLimitedError


@dataclass
class TokenBucket:
    tokens: float
    last_refill: float


class RateLimiter:
    """Token bucket rate limiter keyed by client (IP).

    The bucket table is split into shards, each guarded by its own lock, so
    the read-modify-write of one key is atomic while unrelated keys rarely
    contend.

    Args:
        rate_limit: Steady-state requests per minute
        burst_size: Bucket capacity
        clock: Monotonic time source in seconds
        shards: Number of lock stripes
        prune_threshold: Shard size above which idle full buckets are dropped
    """

    def __init__(
        self,
        rate_limit: int = 10,
        burst_size: int = 2,
        clock: Callable[[], float] = time.monotonic,
        shards: int = 16,
        prune_threshold: int = 10000,
        logger: Optional[logging.Logger] = None,
    ):
        if rate_limit < 1:
            raise ValueError("rate_limit must be at least 1 request per minute")
        if burst_size < 1:
            raise ValueError("burst_size must be at least 1")

        self.rate_limit = rate_limit
        self.burst_size = burst_size
        self.refill_interval = 60.0 / rate_limit
        self.clock = clock
        self.prune_threshold = prune_threshold
        self.logger = logger or logging.getLogger(__name__)
        self._shards: List[Tuple[threading.Lock, Dict[str, TokenBucket]]] = [
            (threading.Lock(), {}) for _ in range(max(1, shards))
        ]

    def _shard(self, key: str) -> Tuple[threading.Lock, Dict[str, TokenBucket]]:
        return self._shards[hash(key) % len(self._shards)]

    def _refill(self, bucket: TokenBucket, now: float) -> None:
        elapsed = max(0.0, now - bucket.last_refill)
        bucket.tokens = min(self.burst_size, bucket.tokens + elapsed / self.refill_interval)
        bucket.last_refill = now

    def _prune(self, buckets: Dict[str, TokenBucket], now: float) -> None:
        # A refilled bucket behaves exactly like a fresh one, so dropping it is safe
        idle = [
            key for key, bucket in buckets.items()
            if bucket.tokens + (now - bucket.last_refill) / self.refill_interval >= self.burst_size
        ]
        for key in idle:
            del buckets[key]
        if idle:
            self.logger.debug(f"Pruned {len(idle)} idle rate-limit buckets")

    def _consume(self, key: str, now: Optional[float] = None) -> float:
        """Take one token for ``key``.

        Returns:
            0.0 if admitted, otherwise seconds until a token is available
        """
        lock, buckets = self._shard(key)
        with lock:
            now = self.clock() if now is None else now

            bucket = buckets.get(key)
            if bucket is None:
                if len(buckets) >= self.prune_threshold:
                    self._prune(buckets, now)
                bucket = TokenBucket(tokens=float(self.burst_size), last_refill=now)
                buckets[key] = bucket
            else:
                self._refill(bucket, now)

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return 0.0

            return (1 - bucket.tokens) * self.refill_interval

    def acquire(self, key: str, now: Optional[float] = None) -> None:
        """Admit a request from ``key`` or raise.

        Raises:
            RateLimitedError: Bucket exhausted; ``retry_after`` is set
        """
        wait = self._consume(key, now)
        if wait > 0:
            self.logger.info(f"Rate limit exceeded for {key} (retry in {wait:.1f}s)")
            raise RateLimitedError("Too many requests, please slow down", retry_after=wait)

    def __len__(self) -> int:
        return sum(len(buckets) for _, buckets in self._shards)
