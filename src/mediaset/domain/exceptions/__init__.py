"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - use a specific subclass so callers can
    # catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when a catalog entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when input or entity validation fails."""

    pass


class ConfigurationError(DomainException):
    """Raised when the application is misconfigured (bad cron, missing key, ...)."""

    pass


class ExternalServiceError(DomainException):
    """A metadata provider failed (transport error or unexpected HTTP status).

    Hey future me - "provider returned no data" is NOT this exception! 404s and empty
    result lists come back as None / []. This one is for the stuff that might work on
    a later attempt: timeouts, 5xx, garbage payloads.
    """

    def __init__(
        self, service: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class RateLimitExceededError(ExternalServiceError):
    """A provider (or our local budget for it) refused more requests."""

    def __init__(self, service: str, retry_after: float | None = None) -> None:
        detail = "rate limit exceeded"
        if retry_after is not None:
            detail += f" (retry after {retry_after:.0f}s)"
        super().__init__(service, detail, status_code=429)
        self.retry_after = retry_after


class ImageDownloadError(DomainException):
    """Downloading, validating or storing a cover image failed."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


__all__ = [
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "ExternalServiceError",
    "ImageDownloadError",
    "RateLimitExceededError",
    "ValidationException",
]
