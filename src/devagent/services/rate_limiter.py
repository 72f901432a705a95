"""
Rate Limiter Service - Token Bucket Algorithm.

Bounds the call rate of each tool independently. Every tool gets its own
bucket: short bursts up to ``capacity`` are allowed, after which calls are
admitted at the sustained ``refill_rate``.

Tokens are refilled lazily from elapsed time before every read, so a
bucket's state is a pure function of the clock. Under the server's
single-threaded event loop no lock is needed; callers sharing a limiter
across threads must serialize ``check`` themselves.

Example:
    limiter = RateLimiter(default_capacity=100, default_refill_rate=10)

    result = limiter.check("dev_search")
    if not result.allowed:
        print(f"retry in {result.retry_after}s")

Author: dev-agent Team
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import RateLimitConfig
from ..constants import DEFAULT_RATE_LIMIT_CAPACITY, DEFAULT_RATE_LIMIT_REFILL_RATE


Clock = Callable[[], float]


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining_tokens: int = 0
    retry_after: int = 0  # seconds until the next token


class TokenBucket:
    """
    Token bucket: the core rate limiting primitive.

    The bucket starts full and refills continuously at ``refill_rate``
    tokens per second. ``tokens`` always stays within [0, capacity].
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            capacity: Maximum tokens (burst size). Must be > 0.
            refill_rate: Tokens added per second. Must be > 0.
            clock: Monotonic time source in seconds. Defaults to time.monotonic.

        Raises:
            ValueError: If capacity or refill_rate is not positive.
        """
        if capacity <= 0:
            raise ValueError("TokenBucket capacity must be > 0")
        if refill_rate <= 0:
            raise ValueError("TokenBucket refill_rate must be > 0")

        self._capacity = capacity
        self._refill_rate = refill_rate
        self._clock = clock or time.monotonic
        self._tokens = float(capacity)
        self._last_refill = self._clock()

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    @property
    def tokens(self) -> float:
        """Raw token count as of the last refill (no refill performed)."""
        return self._tokens

    def try_consume(self, tokens: float = 1) -> bool:
        """
        Consume tokens if enough are available.

        Args:
            tokens: Number of tokens to take.

        Returns:
            True if the tokens were taken, False if the bucket holds too few
            (the bucket is left unchanged).
        """
        if tokens < 0:
            raise ValueError("Cannot consume a negative number of tokens")

        self._refill()

        if self._tokens >= tokens:
            self._tokens -= tokens
            return True

        return False

    def get_available_tokens(self) -> int:
        """Whole tokens available right now. Does not consume."""
        self._refill()
        return math.floor(self._tokens)

    def get_retry_after(self) -> int:
        """
        Seconds until at least one token is available.

        Always rounded up so the caller is never told to retry too early.
        """
        self._refill()

        if self._tokens >= 1:
            return 0

        return math.ceil((1 - self._tokens) / self._refill_rate)

    def reset(self) -> None:
        """Refill the bucket to capacity."""
        self._tokens = float(self._capacity)
        self._last_refill = self._clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)

        self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_rate)
        self._last_refill = now


class RateLimiter:
    """
    Manages one TokenBucket per key (tool name).

    Buckets are created lazily on first use with the default parameters,
    or with the override registered for that key via ``set_limit``.
    """

    def __init__(
        self,
        default_capacity: float = DEFAULT_RATE_LIMIT_CAPACITY,
        default_refill_rate: float = DEFAULT_RATE_LIMIT_REFILL_RATE,
        custom_limits: Optional[dict[str, RateLimitConfig]] = None,
        clock: Optional[Clock] = None,
    ):
        if default_capacity <= 0:
            raise ValueError("RateLimiter default_capacity must be > 0")
        if default_refill_rate <= 0:
            raise ValueError("RateLimiter default_refill_rate must be > 0")

        self._default_capacity = default_capacity
        self._default_refill_rate = default_refill_rate
        self._custom_limits: dict[str, RateLimitConfig] = dict(custom_limits or {})
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}

    @classmethod
    def from_config(
        cls,
        default: RateLimitConfig,
        overrides: Optional[dict[str, RateLimitConfig]] = None,
        clock: Optional[Clock] = None,
    ) -> "RateLimiter":
        return cls(
            default_capacity=default.capacity,
            default_refill_rate=default.refill_rate,
            custom_limits=overrides,
            clock=clock,
        )

    def check(self, key: str) -> RateLimitResult:
        """
        Try to admit one call for ``key``.

        Returns:
            RateLimitResult with ``allowed``, the tokens left and, when
            denied, the seconds to wait.
        """
        bucket = self._get_bucket(key)

        if bucket.try_consume():
            return RateLimitResult(
                allowed=True,
                remaining_tokens=bucket.get_available_tokens(),
                retry_after=0,
            )

        return RateLimitResult(
            allowed=False,
            remaining_tokens=0,
            retry_after=bucket.get_retry_after(),
        )

    def set_limit(self, key: str, limit: RateLimitConfig) -> None:
        """
        Override the bucket parameters for ``key``.

        The key's existing bucket is discarded so the next call starts
        from a full bucket with the new parameters.
        """
        self._custom_limits[key] = limit
        self._buckets.pop(key, None)

    def get_status(self) -> dict[str, dict[str, float]]:
        """Snapshot of every active bucket: {key: {available, capacity}}."""
        return {
            key: {
                "available": bucket.get_available_tokens(),
                "capacity": bucket.capacity,
            }
            for key, bucket in self._buckets.items()
        }

    def reset(self, key: str) -> None:
        """Refill the bucket for ``key`` if it exists."""
        bucket = self._buckets.get(key)
        if bucket is not None:
            bucket.reset()

    def reset_all(self) -> None:
        """Refill every active bucket."""
        for bucket in self._buckets.values():
            bucket.reset()

    def _get_bucket(self, key: str) -> TokenBucket:
        bucket = self._buckets.get(key)

        if bucket is None:
            limit = self._custom_limits.get(key)
            capacity = limit.capacity if limit else self._default_capacity
            refill_rate = limit.refill_rate if limit else self._default_refill_rate

            bucket = TokenBucket(capacity, refill_rate, clock=self._clock)
            self._buckets[key] = bucket

        return bucket
