"""
Tests for utils/error_handler.py - failure taxonomy and exception classification.
"""
import asyncio
from unittest.mock import patch

import pytest
import requests

from tests.conftest import mock_response
from utils.error_handler import (
    AcquisitionError,
    AuthError,
    EmptyResultError,
    FailureKind,
    QuotaExhaustedError,
    RateLimitError,
    UnsupportedProviderError,
    classify_exception,
    is_transient,
    log_exception,
    raise_for_provider_status,
)


class TestTransience:
    @pytest.mark.parametrize("kind", [
        FailureKind.RATE_LIMITED, FailureKind.NETWORK_ERROR, FailureKind.TIMEOUT,
    ])
    def test_transient(self, kind):
        assert is_transient(kind)

    @pytest.mark.parametrize("kind", [
        FailureKind.QUOTA_EXHAUSTED, FailureKind.AUTH_ERROR,
        FailureKind.UNSUPPORTED_PROVIDER, FailureKind.EMPTY_RESULT,
    ])
    def test_terminal(self, kind):
        assert not is_transient(kind)


class TestTypedExceptions:
    def test_kinds(self):
        assert RateLimitError("x").kind == FailureKind.RATE_LIMITED
        assert AuthError("x").kind == FailureKind.AUTH_ERROR
        assert QuotaExhaustedError("x").kind == FailureKind.QUOTA_EXHAUSTED
        assert EmptyResultError("x").kind == FailureKind.EMPTY_RESULT
        assert UnsupportedProviderError("x").kind == FailureKind.UNSUPPORTED_PROVIDER

    def test_base_defaults_to_network(self):
        err = AcquisitionError("x", provider="firecrawl")
        assert err.kind == FailureKind.NETWORK_ERROR
        assert err.provider == "firecrawl"
        assert err.timestamp.tzinfo is not None


class TestRaiseForProviderStatus:
    def test_ok_passes(self):
        raise_for_provider_status(mock_response(status=200), "p")

    def test_server_error_is_http_error(self):
        with pytest.raises(requests.exceptions.HTTPError):
            raise_for_provider_status(mock_response(status=503), "p")

    def test_bad_retry_after_ignored(self):
        resp = mock_response(status=429, headers={"Retry-After": "Wed, 21 Oct 2026"})
        with pytest.raises(RateLimitError) as exc_info:
            raise_for_provider_status(resp, "p")
        assert exc_info.value.retry_after is None
        assert exc_info.value.provider == "p"


class TestClassifyException:
    """Maps arbitrary exceptions onto FailureKind."""

    def test_typed_exception_wins(self):
        assert classify_exception(AuthError("timeout")) == FailureKind.AUTH_ERROR

    def test_asyncio_timeout(self):
        assert classify_exception(asyncio.TimeoutError()) == FailureKind.TIMEOUT

    def test_requests_timeout(self):
        assert classify_exception(requests.exceptions.ReadTimeout("x")) == FailureKind.TIMEOUT

    def test_connection_error(self):
        assert classify_exception(requests.exceptions.ConnectionError("x")) == FailureKind.NETWORK_ERROR

    @pytest.mark.parametrize("status,kind", [
        (429, FailureKind.RATE_LIMITED),
        (401, FailureKind.AUTH_ERROR),
        (403, FailureKind.AUTH_ERROR),
        (402, FailureKind.QUOTA_EXHAUSTED),
        (500, FailureKind.NETWORK_ERROR),
    ])
    def test_http_status(self, status, kind):
        err = requests.exceptions.HTTPError("err", response=mock_response(status=status))
        assert classify_exception(err) == kind

    @pytest.mark.parametrize("message,kind", [
        ("Rate limit reached", FailureKind.RATE_LIMITED),
        ("Insufficient credits for this request", FailureKind.QUOTA_EXHAUSTED),
        ("Invalid key supplied", FailureKind.AUTH_ERROR),
        ("operation timed out", FailureKind.TIMEOUT),
        ("something odd", FailureKind.NETWORK_ERROR),
    ])
    def test_message_keywords(self, message, kind):
        assert classify_exception(Exception(message)) == kind


class TestLogException:
    def test_logs_kind_and_context(self):
        with patch("utils.error_handler.logger") as mock_logger:
            log_exception(RateLimitError("slow down"), "news fetch")
        message = mock_logger.error.call_args.args[0]
        assert "[RATE_LIMITED]" in message
        assert "news fetch" in message
