"""Per-resource token-bucket rate limiter for outbound requests."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict

from glorynews.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


@dataclass
class BucketState:
    tokens: float
    last_refill: float
    in_progress: int = 0


class TokenBucketRateLimiter:
    """Token bucket keyed by resource (normally the request's hostname).

    Each resource gets ``max_requests`` tokens per ``window`` seconds.  Tokens
    refill continuously and lazily: every call computes the refill from the
    clock before touching the bucket, so there is no background timer.  All
    bucket mutations happen between awaits, which keeps them atomic on a
    single event loop.

    Parameters
    ----------
    max_requests:
        Bucket capacity.
    window:
        Seconds to refill a full bucket.
    max_wait:
        Upper bound on how long :meth:`wait` blocks for a token.
    fail_open:
        When the bound passes, proceed (True) or raise RateLimitExceeded (False).
    """

    def __init__(
        self,
        max_requests: int = 2,
        window: float = 10.0,
        max_wait: float = 5.0,
        fail_open: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self.max_wait = max_wait
        self.fail_open = fail_open
        self._clock = clock
        self._rate = max_requests / window
        self._buckets: Dict[str, BucketState] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def acquire(self, resource: str) -> bool:
        """Take a token if one is available; never blocks."""
        state = self._bucket(resource)
        self._refill(state)
        if state.tokens >= 1:
            state.tokens -= 1
            state.in_progress += 1
            return True
        logger.debug("rate_limited", extra={"resource": resource, "tokens": state.tokens})
        return False

    def release(self, resource: str) -> None:
        """Mark one in-flight request for *resource* as finished."""
        state = self._bucket(resource)
        if state.in_progress > 0:
            state.in_progress -= 1
        self._refill(state)

    async def wait(self, resource: str) -> bool:
        """Block until a token is available or ``max_wait`` elapses.

        Returns True when a token was taken.  After the bound, returns False
        (fail-open) or raises RateLimitExceeded (fail-closed).
        """
        started = self._clock()
        while True:
            if self.acquire(resource):
                return True
            waited = self._clock() - started
            remaining = self.max_wait - waited
            if remaining <= 0:
                if not self.fail_open:
                    raise RateLimitExceeded(resource, waited)
                logger.warning(
                    "rate_limit_wait_exceeded",
                    extra={"resource": resource, "waited": round(waited, 2)},
                )
                state = self._bucket(resource)
                state.in_progress += 1
                return False
            await asyncio.sleep(min(self.time_until_token(resource), remaining))

    def time_until_token(self, resource: str) -> float:
        """Seconds until the bucket for *resource* holds a whole token."""
        state = self._bucket(resource)
        self._refill(state)
        if state.tokens >= 1:
            return 0.0
        return (1 - state.tokens) / self._rate

    def state(self, resource: str) -> Dict[str, float]:
        """Snapshot of tokens and in-flight count (for debugging and tests)."""
        state = self._bucket(resource)
        self._refill(state)
        return {"tokens": state.tokens, "in_progress": state.in_progress}

    def reset(self) -> None:
        """Forget every bucket."""
        self._buckets.clear()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _bucket(self, resource: str) -> BucketState:
        state = self._buckets.get(resource)
        if state is None:
            state = BucketState(tokens=float(self.max_requests), last_refill=self._clock())
            self._buckets[resource] = state
        return state

    def _refill(self, state: BucketState) -> None:
        now = self._clock()
        elapsed = now - state.last_refill
        if elapsed > 0:
            state.tokens = min(float(self.max_requests), state.tokens + elapsed * self._rate)
            state.last_refill = now
