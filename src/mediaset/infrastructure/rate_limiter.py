"""
Token bucket rate limiter shared by the metadata provider clients.

Hey future me - every provider we talk to has a published (or at least enforced) limit:
MusicBrainz bans at >1 req/sec, GiantBomb throttles "velocity", TMDB answers 429 when
you burst. One limiter per provider, shared by every request to it.

ALGORITHM: Token Bucket
- Bucket holds max_tokens
- Tokens refill at refill_rate per second
- Each request takes one token, waiting if the bucket is empty

ADAPTIVE BACKOFF on 429:
- First 429: initial_backoff_seconds
- Each further 429 multiplies the wait by backoff_multiplier
- A successful request resets it

USAGE:
    limiter = RateLimiter.for_giantbomb()

    async with limiter:
        response = await client.get(url)

    # on 429:
    await limiter.handle_rate_limit_response(retry_after)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter."""

    max_tokens: int = 5  # Bucket size
    refill_rate: float = 1.0  # Tokens per second
    max_backoff_seconds: float = 120.0
    initial_backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class RateLimiter:
    """Token Bucket Rate Limiter with adaptive backoff.

    Use it as an async context manager around each outgoing request.
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    _tokens: float = field(default=0.0, init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _current_backoff: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.config.max_tokens)
        self._current_backoff = self.config.initial_backoff_seconds

    @classmethod
    def for_musicbrainz(cls) -> "RateLimiter":
        """MusicBrainz is strict: 1 req/sec, no bursts."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=1,
                refill_rate=1.0,
                max_backoff_seconds=120.0,
                initial_backoff_seconds=2.0,
            ),
            name="musicbrainz",
        )

    @classmethod
    def for_giantbomb(cls) -> "RateLimiter":
        """GiantBomb allows 200 req/hour per resource and punishes fast bursts.

        We stay at one request per second and let the hourly cap surface as 420/429.
        """
        return cls(
            config=RateLimiterConfig(
                max_tokens=1,
                refill_rate=1.0,
                max_backoff_seconds=300.0,
                initial_backoff_seconds=5.0,
            ),
            name="giantbomb",
        )

    @classmethod
    def for_tmdb(cls) -> "RateLimiter":
        """TMDB tolerates roughly 40 req/sec; we use a fraction of that."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=10,
                refill_rate=10.0,
                max_backoff_seconds=60.0,
                initial_backoff_seconds=1.0,
            ),
            name="tmdb",
        )

    @classmethod
    def for_openlibrary(cls) -> "RateLimiter":
        """OpenLibrary asks heavy users to stay around 1 req/sec."""
        return cls(
            config=RateLimiterConfig(
                max_tokens=3,
                refill_rate=1.0,
                max_backoff_seconds=60.0,
                initial_backoff_seconds=2.0,
            ),
            name="openlibrary",
        )

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(
            self.config.max_tokens, self._tokens + elapsed * self.config.refill_rate
        )
        self._last_refill = now

    async def acquire(self) -> None:
        """Acquire one token, waiting if necessary."""
        async with self._lock:
            self._refill_tokens()

            while self._tokens < 1.0:
                wait_time = (1.0 - self._tokens) / self.config.refill_rate
                logger.debug(
                    f"RateLimiter[{self.name}]: No tokens available, "
                    f"waiting {wait_time:.2f}s"
                )
                # Sleep while holding the lock: waiters queue up in order.
                await asyncio.sleep(wait_time)
                self._refill_tokens()

            self._tokens -= 1.0

    async def handle_rate_limit_response(
        self, retry_after: float | None = None
    ) -> float:
        """Wait after a 429, honouring Retry-After when the provider sends one.

        Returns:
            The wait time actually used
        """
        async with self._lock:
            wait_time = (
                float(retry_after) if retry_after is not None else self._current_backoff
            )
            wait_time = min(wait_time, self.config.max_backoff_seconds)

            logger.warning(
                f"RateLimiter[{self.name}]: 429 Rate Limited! "
                f"Waiting {wait_time:.1f}s before retry "
                f"(backoff level: {self._current_backoff:.1f}s)"
            )

            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            self._tokens = 0.0

        await asyncio.sleep(wait_time)
        return wait_time

    def reset_backoff(self) -> None:
        self._current_backoff = self.config.initial_backoff_seconds

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        if exc_type is None:
            self.reset_backoff()

    @property
    def available_tokens(self) -> float:
        """Current available tokens (for debugging)."""
        self._refill_tokens()
        return self._tokens


__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
]
