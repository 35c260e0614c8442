"""
Fixed-window rate limiting for public write routes.

Buckets are keyed by (route class, identity key). State lives in an injected
RateLimitStore so tests get a fresh store each time and a shared cache can
replace the in-memory one in a multi-instance deployment.
"""

import math
import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from src.shared.security.outcomes import RouteClass
from src.shared.security.policy import RateLimitConfig

BucketKey = Tuple[str, str]

# Expired buckets are swept once every this many consumptions
PURGE_EVERY = 500


@dataclass
class RateLimitBucket:
    window_start: float
    count: int = 0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # Seconds until the current window closes
    retry_after: Optional[int] = None


class RateLimitStore(ABC):
    """Storage backend for fixed-window counters. `consume` must be atomic per key."""

    @abstractmethod
    def consume(self, key: BucketKey, now: float, config: RateLimitConfig) -> RateLimitDecision:
        ...

    def purge_expired(self, now: float, max_window_seconds: float) -> int:
        return 0

    @abstractmethod
    def reset(self) -> None:
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local store. Each key has its own lock; the registry lock is only held
    long enough to look up or create that per-key lock, so different identities
    never wait on each other.
    """

    def __init__(self):
        self._buckets: Dict[BucketKey, RateLimitBucket] = {}
        self._locks: Dict[BucketKey, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, key: BucketKey) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
            return lock

    def consume(self, key: BucketKey, now: float, config: RateLimitConfig) -> RateLimitDecision:
        while True:
            lock = self._lock_for(key)
            with lock:
                # The key may have been purged between lookup and acquire
                if self._locks.get(key) is not lock:
                    continue
                return self._consume_locked(key, now, config)

    def _consume_locked(self, key: BucketKey, now: float, config: RateLimitConfig) -> RateLimitDecision:
        window = config.window_seconds
        bucket = self._buckets.get(key)
        if bucket is None or now - bucket.window_start >= window:
            bucket = RateLimitBucket(window_start=now)
            self._buckets[key] = bucket

        reset_after = max(int(math.ceil(bucket.window_start + window - now)), 1)
        if bucket.count >= config.max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=config.max_requests,
                remaining=0,
                reset_after=reset_after,
                retry_after=reset_after,
            )

        bucket.count += 1
        return RateLimitDecision(
            allowed=True,
            limit=config.max_requests,
            remaining=config.max_requests - bucket.count,
            reset_after=reset_after,
        )

    def purge_expired(self, now: float, max_window_seconds: float) -> int:
        """Drop buckets whose window has rolled over. Returns how many were removed."""
        with self._registry_lock:
            expired = [
                key for key, bucket in self._buckets.items()
                if now - bucket.window_start >= max_window_seconds
            ]
            removed = 0
            for key in expired:
                lock = self._locks.get(key)
                # A bucket being consumed right now is left for the next sweep
                if lock is not None and not lock.acquire(blocking=False):
                    continue
                try:
                    self._buckets.pop(key, None)
                    self._locks.pop(key, None)
                    removed += 1
                finally:
                    if lock is not None:
                        lock.release()
            return removed

    def reset(self) -> None:
        with self._registry_lock:
            self._buckets.clear()
            self._locks.clear()

    def __len__(self) -> int:
        return len(self._buckets)


class FixedWindowRateLimiter:
    """Applies per-route quotas against a RateLimitStore."""

    def __init__(self, store: RateLimitStore, clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.clock = clock
        self._consumptions = 0
        self._max_window_seen = 0

    def check_and_consume(
        self,
        route_class: RouteClass,
        identity_key: str,
        config: RateLimitConfig,
    ) -> RateLimitDecision:
        """
        Count one attempt for this identity and route class.

        Returns a denied decision with `retry_after` once `max_requests` attempts
        have been counted in the current window. Denied attempts are not counted.
        """
        now = self.clock()
        decision = self.store.consume((route_class.value, identity_key), now, config)

        self._max_window_seen = max(self._max_window_seen, config.window_seconds)
        self._consumptions += 1
        if self._consumptions % PURGE_EVERY == 0:
            removed = self.store.purge_expired(now, self._max_window_seen)
            if removed:
                logging.info(f"Purged {removed} expired rate limit buckets")

        if not decision.allowed:
            logging.warning(
                f"Rate limit exceeded for {route_class.value} "
                f"(limit {config.max_requests} per {config.window_seconds}s, retry in {decision.retry_after}s)"
            )
        return decision


def rate_limit_headers(decision: RateLimitDecision) -> Dict[str, str]:
    """Standard RateLimit-* headers, plus Retry-After when the request was refused."""
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(decision.reset_after),
    }
    if decision.retry_after is not None:
        headers["Retry-After"] = str(decision.retry_after)
    return headers
