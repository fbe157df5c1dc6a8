"""UPCitemdb barcode lookup client (free trial endpoint)."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any

import httpx

from mediaset.config.settings import UpcItemDbSettings
from mediaset.domain.entities import BarcodeItem, BarcodeLookupResponse
from mediaset.domain.exceptions import RateLimitExceededError
from mediaset.domain.ports import IBarcodeLookupClient
from mediaset.infrastructure.integrations.provider_errors import (
    ensure_success,
    translate_transport_errors,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "upcitemdb"


class UpcItemDbClient(IBarcodeLookupClient):
    """HTTP client for the UPCitemdb trial API with local request budgeting."""

    # Hey future me, the trial endpoint is brutal: ~100 requests per DAY and a burst limit
    # of a handful per minute, per IP. Blowing the daily quota means every barcode lookup
    # fails until UTC midnight. So we keep our OWN counters (minute window + day window)
    # below the real limits and refuse locally before the provider refuses us. The
    # X-RateLimit-* headers tell us what the server thinks; we trust those over our
    # counters when present.
    def __init__(self, settings: UpcItemDbSettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()
        self._last_request_time: float = 0.0
        self._minute_window_start: float = 0.0
        self._minute_count = 0
        self._day = datetime.now(UTC).date()
        self._day_count = 0
        self._server_remaining: int | None = None
        self._server_reset_at: float | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={"Accept": "application/json"},
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _roll_windows(self, now: float) -> None:
        today = datetime.now(UTC).date()
        if today != self._day:
            self._day = today
            self._day_count = 0
        if now - self._minute_window_start >= 60.0:
            self._minute_window_start = now
            self._minute_count = 0

    async def _wait_for_budget(self) -> None:
        """Block until a request is allowed; raise if today's budget is gone."""
        now = time.monotonic()
        self._roll_windows(now)

        if self._day_count >= self.settings.max_requests_per_day:
            logger.warning(
                "UPCitemdb daily budget exhausted (%d requests)", self._day_count
            )
            raise RateLimitExceededError(SERVICE_NAME)

        if self._minute_count >= self.settings.max_requests_per_minute:
            wait = 60.0 - (now - self._minute_window_start)
            if wait > 0:
                logger.info("UPCitemdb minute budget used up, waiting %.1fs", wait)
                await asyncio.sleep(wait)
            now = time.monotonic()
            self._roll_windows(now)

        min_delay = self.settings.min_delay_between_requests_ms / 1000.0
        since_last = time.monotonic() - self._last_request_time
        if since_last < min_delay:
            await asyncio.sleep(min_delay - since_last)

    def _record_rate_headers(self, response: httpx.Response) -> None:
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is not None and remaining.isdigit():
            self._server_remaining = int(remaining)
        if reset is not None and reset.isdigit():
            # Header is an epoch timestamp; store seconds-from-now on the monotonic clock
            seconds_until = max(0.0, int(reset) - time.time())
            self._server_reset_at = time.monotonic() + seconds_until

    def _seconds_until_reset(self) -> float | None:
        if self._server_reset_at is None:
            return None
        return max(0.0, self._server_reset_at - time.monotonic())

    async def _rate_limited_request(self, code: str) -> httpx.Response:
        async with self._lock:
            await self._wait_for_budget()
            client = await self._get_client()
            with translate_transport_errors(SERVICE_NAME):
                response = await client.get("prod/trial/lookup", params={"upc": code})
            self._last_request_time = time.monotonic()
            self._minute_count += 1
            self._day_count += 1
            self._record_rate_headers(response)
            return response

    # Yo, on 429 we get ONE retry, and only if the server says the window resets soon
    # (burst limit). A far-away reset means the daily quota is gone - fail fast and let the
    # orchestrator record a transient failure instead of parking the worker for hours.
    async def get_by_code(self, code: str) -> BarcodeLookupResponse | None:
        """Look up a UPC/EAN barcode.

        Returns:
            Parsed items, or None when the code is unknown

        Raises:
            RateLimitExceededError: local or remote budget exhausted
            ExternalServiceError: transport failure or unexpected status
        """
        logger.info("Looking up UPC/EAN code: %s", code)
        response = await self._rate_limited_request(code)

        if response.status_code == 429:
            wait = self._seconds_until_reset()
            if wait is not None and wait <= self.settings.max_retry_pause_seconds:
                logger.warning(
                    "UPCitemdb burst limit hit for %s, retrying in %.0fs", code, wait
                )
                await asyncio.sleep(wait)
                response = await self._rate_limited_request(code)
            else:
                raise RateLimitExceededError(SERVICE_NAME, wait)

        # UPCitemdb answers unknown codes with 400 INVALID_UPC or 404
        if response.status_code == 400:
            logger.info("UPCitemdb rejected code %s as invalid", code)
            return None
        if not ensure_success(SERVICE_NAME, response):
            return None

        with translate_transport_errors(SERVICE_NAME):
            payload: dict[str, Any] = response.json()

        result = parse_upc_response(payload)
        logger.info(
            "Retrieved UPC/EAN data for code %s, found %d items", code, len(result.items)
        )
        return result

    @property
    def requests_today(self) -> int:
        return self._day_count


def parse_upc_response(payload: dict[str, Any]) -> BarcodeLookupResponse:
    items = []
    for raw in payload.get("items") or []:
        items.append(
            BarcodeItem(
                title=(raw.get("title") or "").strip(),
                category=raw.get("category"),
                brand=raw.get("brand"),
                model=raw.get("model"),
                isbn=raw.get("isbn"),
                ean=raw.get("ean"),
                upc=raw.get("upc"),
                images=tuple(raw.get("images") or ()),
            )
        )
    return BarcodeLookupResponse(items=tuple(items))
