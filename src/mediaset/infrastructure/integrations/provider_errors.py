"""Translate httpx failures into domain exceptions.

Every provider client follows the same contract:
- 404            -> "no data" (the client returns None)
- 429            -> RateLimitExceededError
- other non-2xx  -> ExternalServiceError
- transport/JSON -> ExternalServiceError (chained from the original exception)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from mediaset.domain.exceptions import ExternalServiceError, RateLimitExceededError


def retry_after_seconds(response: httpx.Response) -> float | None:
    """Parse a numeric Retry-After header, ignoring HTTP-date values."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def ensure_success(service: str, response: httpx.Response) -> bool:
    """Return False for 404, True for 2xx, raise for everything else."""
    if response.status_code == 404:
        return False
    if response.status_code == 429:
        raise RateLimitExceededError(service, retry_after_seconds(response))
    if response.is_error:
        raise ExternalServiceError(
            service,
            f"unexpected HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return True


@contextmanager
def translate_transport_errors(service: str) -> Iterator[None]:
    """Re-raise httpx transport problems and bad JSON as ExternalServiceError."""
    try:
        yield
    except httpx.HTTPError as e:
        raise ExternalServiceError(service, f"request failed: {e}") from e
    except ValueError as e:
        # response.json() raises JSONDecodeError (a ValueError) on garbage bodies
        raise ExternalServiceError(service, f"invalid response payload: {e}") from e
