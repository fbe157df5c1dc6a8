"""Shared HTTP client for image downloads.

Hey future me - cover images come from a handful of CDNs (TMDB, GiantBomb, OpenLibrary
covers, Cover Art Archive). Creating an AsyncClient per download throws away keep-alive,
so the image service borrows this one shared client instead. The metadata clients keep
their own AsyncClient because each one needs its own base_url and auth headers.

Call HttpClientPool.close() at shutdown (see mediaset.main).
"""

import asyncio
import logging
from typing import ClassVar

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "MediaSet/0.1 (+cover-art enrichment)"


class HttpClientPool:
    """Process-wide httpx.AsyncClient with lazy creation."""

    _client: ClassVar[httpx.AsyncClient | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    DEFAULT_TIMEOUT: ClassVar[float] = 30.0
    DEFAULT_MAX_KEEPALIVE: ClassVar[int] = 10
    DEFAULT_MAX_CONNECTIONS: ClassVar[int] = 20

    @classmethod
    def _ensure_lock(cls) -> asyncio.Lock:
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_client(cls, timeout: float | None = None) -> httpx.AsyncClient:
        """Return the shared client; the timeout only applies on first creation."""
        async with cls._ensure_lock():
            if cls._client is None:
                effective_timeout = timeout or cls.DEFAULT_TIMEOUT
                cls._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(effective_timeout),
                    limits=httpx.Limits(
                        max_keepalive_connections=cls.DEFAULT_MAX_KEEPALIVE,
                        max_connections=cls.DEFAULT_MAX_CONNECTIONS,
                    ),
                    headers={"User-Agent": USER_AGENT},
                    http2=True,
                    # CDNs love redirecting to the real asset host
                    follow_redirects=True,
                )
                logger.info(
                    "HTTP client pool initialized (timeout=%.1fs)", effective_timeout
                )
            return cls._client

    @classmethod
    async def close(cls) -> None:
        async with cls._ensure_lock():
            if cls._client is not None:
                await cls._client.aclose()
                cls._client = None
                logger.info("HTTP client pool closed")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._client is not None
