"""
Rate Limiting

Two layers guard the API:

- TokenBucketRateLimiter: per-key token buckets with continuous refill.
  One instance per write/expensive surface (comments, AI, tracking).
  Instances are built once at app creation, stored on app.state and
  handed to endpoints through dependencies.
- slowapi Limiter: fixed "count/period" limits per IP on read endpoints.

State is per process. Several workers each keep an independent view of
quota; the limiter is advisory, not a global quota system.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from linkbio.core.setting import Settings

logger = logging.getLogger(__name__)

# Read endpoints, limited per IP
limiter = Limiter(key_func=get_remote_address)

# Format: "count/period"
RATE_LIMITS = {
    "music_resolve": "60/minute",
    "music_search": "30/minute",
    "profile": "120/minute",
}


@dataclass
class Bucket:
    """Token count for one key plus the time of its last refill."""
    tokens: float
    last_refill_at: float


class TokenBucketRateLimiter:
    """
    In-memory token bucket keyed by an opaque string.

    Tokens accrue continuously at refill_per_window per window_seconds and
    are capped at capacity. A new key starts with a full bucket, so its
    first call is always admitted.

    Memory is bounded: once the map holds more than max_entries buckets,
    buckets that have been idle long enough to refill completely are
    dropped (they would be recreated full anyway). If that is not enough,
    the least recently touched buckets go next. The idle sweep scans the
    whole map, so it runs at most once per full_refill_seconds; a flood of
    new keys in between only pops least recently used entries.
    """

    def __init__(
        self,
        capacity: float,
        refill_per_window: float,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10000,
    ):
        if capacity <= 0 or refill_per_window <= 0 or window_seconds <= 0:
            raise ValueError("capacity, refill_per_window and window_seconds must be positive")

        self.capacity = float(capacity)
        self.refill_per_window = float(refill_per_window)
        self.window_seconds = float(window_seconds)
        self.max_entries = max_entries
        self._clock = clock
        self._buckets: "OrderedDict[str, Bucket]" = OrderedDict()
        self._last_sweep_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def full_refill_seconds(self) -> float:
        """Time a drained bucket needs to get back to capacity."""
        return self.window_seconds * self.capacity / self.refill_per_window

    def try_consume(self, key: str) -> bool:
        """
        Take one token for key.

        Returns True when the action is admitted, False when the bucket
        holds less than one token. The refill is stored even on denial,
        so failing repeatedly never resets the clock.
        """
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)

            if bucket is None:
                bucket = Bucket(tokens=self.capacity, last_refill_at=now)
                self._buckets[key] = bucket
                if len(self._buckets) > self.max_entries:
                    self._evict(now)
            else:
                self._buckets.move_to_end(key)

            self._refill(bucket, now)

            if bucket.tokens < 1:
                return False

            bucket.tokens -= 1
            return True

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop buckets idle long enough to be full again. Returns how many."""
        with self._lock:
            return self._sweep_idle(self._clock() if now is None else now)

    def get_bucket(self, key: str) -> Optional[Bucket]:
        """Copy of the stored bucket for key, without refilling it."""
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                return None
            return Bucket(tokens=bucket.tokens, last_refill_at=bucket.last_refill_at)

    def bucket_count(self) -> int:
        return len(self._buckets)

    def _refill(self, bucket: Bucket, now: float) -> None:
        elapsed = max(0.0, now - bucket.last_refill_at)
        refill_amount = (elapsed / self.window_seconds) * self.refill_per_window
        bucket.tokens = min(self.capacity, bucket.tokens + refill_amount)
        bucket.last_refill_at = now

    def _sweep_idle(self, now: float) -> int:
        self._last_sweep_at = now
        idle_limit = self.full_refill_seconds
        stale = [
            key for key, bucket in self._buckets.items()
            if now - bucket.last_refill_at >= idle_limit
        ]
        for key in stale:
            del self._buckets[key]
        return len(stale)

    def _evict(self, now: float) -> None:
        # Full scans run at most once per refill period; in between only LRU pops
        removed = 0
        if self._last_sweep_at is None or now - self._last_sweep_at >= self.full_refill_seconds:
            removed = self._sweep_idle(now)
        # Oldest first; the newest entry is the bucket being created
        while len(self._buckets) > self.max_entries:
            self._buckets.popitem(last=False)
            removed += 1
        logger.debug(f"Rate limiter evicted {removed} buckets, {len(self._buckets)} remain")


@dataclass
class RateLimiters:
    """The token bucket limiters, one per guarded surface."""
    comments: TokenBucketRateLimiter
    ai: TokenBucketRateLimiter
    tracking: TokenBucketRateLimiter


def build_rate_limiters(
    config: Settings,
    clock: Callable[[], float] = time.monotonic,
) -> RateLimiters:
    """Create the per-surface limiters from settings."""
    return RateLimiters(
        comments=TokenBucketRateLimiter(
            config.COMMENT_RATE_CAPACITY,
            config.COMMENT_RATE_REFILL,
            config.COMMENT_RATE_WINDOW_SECONDS,
            clock=clock,
            max_entries=config.RATE_LIMIT_MAX_ENTRIES,
        ),
        ai=TokenBucketRateLimiter(
            config.AI_RATE_CAPACITY,
            config.AI_RATE_REFILL,
            config.AI_RATE_WINDOW_SECONDS,
            clock=clock,
            max_entries=config.RATE_LIMIT_MAX_ENTRIES,
        ),
        tracking=TokenBucketRateLimiter(
            config.TRACKING_RATE_CAPACITY,
            config.TRACKING_RATE_REFILL,
            config.TRACKING_RATE_WINDOW_SECONDS,
            clock=clock,
            max_entries=config.RATE_LIMIT_MAX_ENTRIES,
        ),
    )


def get_rate_limiters(request: Request) -> RateLimiters:
    """Dependency returning the limiters attached to the running app."""
    return request.app.state.rate_limiters
