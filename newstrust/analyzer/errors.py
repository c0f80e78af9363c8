"""Classification of AI provider failures."""

import asyncio
from typing import Optional

import httpx
import openai

from ..errors import ExternalAPIError

_RETRYABLE_MARKERS = (
    # Rate limit
    "quota",
    "resource_exhausted",
    "429",
    "too many requests",
    "rate limit",
    # Server errors
    "500",
    "502",
    "503",
    "504",
    "internal server error",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    # Network
    "econnreset",
    "etimedout",
    "enotfound",
    "connection reset",
    "timed out",
    "timeout",
)


def is_retryable(error_message: Optional[str]) -> bool:
    """
    Decide from an error message whether retrying can help.

    Rate limits, 5xx and network failures are transient. Auth errors,
    missing models, bad requests and safety refusals are not.
    """
    if not error_message or not error_message.strip():
        return False
    msg = error_message.lower()
    return any(marker in msg for marker in _RETRYABLE_MARKERS)


def _status_code(error: BaseException) -> Optional[int]:
    if isinstance(error, openai.APIStatusError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None)
    return status if isinstance(status, int) else None


def to_external_api_error(error: BaseException, service: str = "OpenAI") -> ExternalAPIError:
    """Wrap any provider failure in an ExternalAPIError with status and retry hint."""
    if isinstance(error, ExternalAPIError):
        return error

    message = str(error) or error.__class__.__name__
    msg = message.lower()
    status = _status_code(error)

    if status == 401 or "api key" in msg or "401" in msg:
        return ExternalAPIError(service, "Invalid API key", 401, retryable=False, cause=error)

    if status == 404 or (status is None and ("404" in msg or "not found" in msg)):
        return ExternalAPIError(service, f"Model not found: {message}", 404, retryable=False, cause=error)

    if "safety" in msg or "content policy" in msg or "content_filter" in msg:
        return ExternalAPIError(service, f"Blocked by safety policy: {message}", 400, retryable=False, cause=error)

    if status == 429 or (is_retryable(message) and ("429" in msg or "quota" in msg)):
        return ExternalAPIError(service, "Rate limit exceeded", 429, retryable=True, cause=error)

    if isinstance(error, (openai.APIConnectionError, httpx.TransportError, asyncio.TimeoutError)):
        return ExternalAPIError(service, f"Network error: {message}", 503, retryable=True, cause=error)

    if status is not None and status >= 500:
        return ExternalAPIError(service, f"Server error: {message}", status, retryable=True, cause=error)

    if status is not None and 400 <= status < 500:
        return ExternalAPIError(service, f"Request rejected: {message}", status, retryable=False, cause=error)

    return ExternalAPIError(service, f"API error: {message}", 500, retryable=is_retryable(message), cause=error)
