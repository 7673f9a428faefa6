"""
Error Handler - Failure taxonomy for external provider calls.

Provides:
- FailureKind: the closed set of ways a provider/source call can fail
- Typed exceptions providers raise so the orchestrator can classify them
- classify_exception(): maps any exception (typed, requests, timeout,
  or plain message) onto a FailureKind
- Error logging helper

Providers raise; the orchestrator and sources catch at their boundary and
turn the exception into a Failure value. Nothing above that boundary ever
sees a raw provider exception.
"""
import asyncio
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import requests
from loguru import logger


class FailureKind(Enum):
    """Categories of provider failures for fallback decisions."""
    RATE_LIMITED = "RATE_LIMITED"                  # Transient, not charged
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"            # Terminal until external reset
    AUTH_ERROR = "AUTH_ERROR"                      # Terminal, surface to operators
    NETWORK_ERROR = "NETWORK_ERROR"                # Transient, charged
    TIMEOUT = "TIMEOUT"                            # Transient, charged
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"  # Not configured / unknown
    EMPTY_RESULT = "EMPTY_RESULT"                  # Success-shaped but empty


TRANSIENT_KINDS = frozenset({
    FailureKind.RATE_LIMITED,
    FailureKind.NETWORK_ERROR,
    FailureKind.TIMEOUT,
})


def is_transient(kind: FailureKind) -> bool:
    """True if retrying later (or via another provider) may succeed."""
    return kind in TRANSIENT_KINDS


class AcquisitionError(Exception):
    """Base exception for provider and source failures."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.NETWORK_ERROR,
                 provider: Optional[str] = None):
        self.message = message
        self.kind = kind
        self.provider = provider
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)


class RateLimitError(AcquisitionError):
    """Provider answered 429 / throttled the call."""

    def __init__(self, message: str, provider: Optional[str] = None,
                 retry_after: Optional[float] = None):
        super().__init__(message, FailureKind.RATE_LIMITED, provider)
        self.retry_after = retry_after


class AuthError(AcquisitionError):
    """Credentials rejected."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, FailureKind.AUTH_ERROR, provider)


class QuotaExhaustedError(AcquisitionError):
    """Provider reports its plan quota is used up."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, FailureKind.QUOTA_EXHAUSTED, provider)


class EmptyResultError(AcquisitionError):
    """Call succeeded but returned nothing usable."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, FailureKind.EMPTY_RESULT, provider)


class UnsupportedProviderError(AcquisitionError):
    """Provider unknown or missing credentials."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, FailureKind.UNSUPPORTED_PROVIDER, provider)


def raise_for_provider_status(response: requests.Response, provider: str) -> None:
    """Raise the typed exception matching an HTTP error response.

    429 -> RateLimitError, 401/403 -> AuthError, 402 -> QuotaExhaustedError,
    anything else non-2xx -> requests.HTTPError via raise_for_status().
    """
    status = response.status_code
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        try:
            retry_seconds = float(retry_after) if retry_after else None
        except ValueError:
            retry_seconds = None
        raise RateLimitError(f"{provider}: 429 Too Many Requests",
                             provider=provider, retry_after=retry_seconds)
    if status in (401, 403):
        raise AuthError(f"{provider}: HTTP {status} credentials rejected", provider=provider)
    if status == 402:
        raise QuotaExhaustedError(f"{provider}: HTTP 402 plan quota exhausted", provider=provider)
    response.raise_for_status()


def classify_exception(e: BaseException) -> FailureKind:
    """
    Categorize an exception for fallback decisions.
    """
    # Check our custom exceptions first
    if isinstance(e, AcquisitionError):
        return e.kind

    if isinstance(e, (asyncio.TimeoutError, TimeoutError, requests.exceptions.Timeout)):
        return FailureKind.TIMEOUT

    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        status = e.response.status_code
        if status == 429:
            return FailureKind.RATE_LIMITED
        if status in (401, 403):
            return FailureKind.AUTH_ERROR
        if status == 402:
            return FailureKind.QUOTA_EXHAUSTED

    if isinstance(e, requests.exceptions.ConnectionError):
        return FailureKind.NETWORK_ERROR

    error_str = str(e).lower()

    # Rate limiting
    if any(x in error_str for x in ['429', 'rate limit', 'too many requests', 'throttle']):
        return FailureKind.RATE_LIMITED

    # Quota / credits
    if any(x in error_str for x in ['quota exceeded', 'insufficient credits', 'credits exhausted', '402']):
        return FailureKind.QUOTA_EXHAUSTED

    # Authentication
    if any(x in error_str for x in ['401', '403', 'unauthorized', 'forbidden', 'invalid key', 'api key']):
        return FailureKind.AUTH_ERROR

    if 'timeout' in error_str or 'timed out' in error_str:
        return FailureKind.TIMEOUT

    # Network, 5xx and malformed payloads all fall through here
    return FailureKind.NETWORK_ERROR


def log_exception(e: BaseException, context: str = ""):
    """Log an exception with its failure kind."""
    kind = classify_exception(e)
    tb = traceback.format_exc()

    if context:
        logger.error(f"[{kind.value}] {context}: {e}")
    else:
        logger.error(f"[{kind.value}] {e}")

    logger.debug(f"Traceback:\n{tb}")
