"""
Tests for StreamLoop error taxonomy and HTTP error classification
"""

import json

import pytest

from streamloop.errors import (
    MalformedIncrementError,
    ProviderError,
    ProviderOverloadedError,
    ProviderRequestError,
    RateLimitedError,
    StreamProtocolError,
    StreamTruncatedError,
    ToolArgumentDecodeError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    UnknownToolCallFragmentError,
    classify_http_error,
)


# =============================================================================
# Classification
# =============================================================================

class TestClassifyHttpError:
    """Tests for classify_http_error()"""

    def test_429_is_rate_limited(self):
        error = classify_http_error(429, provider="VertexAI")

        assert isinstance(error, RateLimitedError)
        assert error.retryable
        assert error.retry_after is None
        assert str(error) == "VertexAI rate limit exceeded"

    def test_429_retry_after_header(self):
        error = classify_http_error(429, provider="OpenAI", headers={"Retry-After": "12"})

        assert error.retry_after == 12.0
        assert "retry after 12s" in str(error)
        assert error.to_dict()["retry_after"] == 12.0

    def test_429_unparseable_retry_after(self):
        error = classify_http_error(429, headers={"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert error.retry_after is None

    @pytest.mark.parametrize("value", ["inf", "-Infinity", "nan"])
    def test_429_non_finite_retry_after(self, value):
        error = classify_http_error(429, headers={"Retry-After": value})
        assert error.retry_after is None
        assert "retry after" not in str(error)

    def test_429_negative_retry_after_is_clamped(self):
        error = classify_http_error(429, headers={"Retry-After": "-5"})
        assert error.retry_after == 0.0

    def test_503_is_overloaded(self):
        error = classify_http_error(503, b"Service Unavailable", provider="Gemini")

        assert isinstance(error, ProviderOverloadedError)
        assert error.retryable
        assert error.provider == "Gemini"

    def test_google_error_body(self):
        body = json.dumps({
            "error": {"code": 400, "message": "Request contains an invalid argument.", "status": "INVALID_ARGUMENT"}
        })

        error = classify_http_error(400, body, provider="VertexAI")

        assert isinstance(error, ProviderRequestError)
        assert not error.retryable
        assert error.status_code == 400
        assert error.error_type == "INVALID_ARGUMENT"
        assert error.error_message == "Request contains an invalid argument."
        assert str(error) == "VertexAI Error [400]: INVALID_ARGUMENT: Request contains an invalid argument."

    def test_openai_error_body(self):
        body = {"error": {"message": "Incorrect API key provided", "type": "invalid_request_error"}}

        error = classify_http_error(401, body, provider="OpenAI")

        assert error.error_type == "invalid_request_error"
        assert error.error_message == "Incorrect API key provided"

    def test_list_wrapped_error_body(self):
        body = b'[{"error": {"code": 404, "message": "model not found", "status": "NOT_FOUND"}}]'

        error = classify_http_error(404, body, provider="VertexAI")

        assert error.error_type == "NOT_FOUND"
        assert error.error_message == "model not found"

    def test_string_error_field(self):
        error = classify_http_error(500, {"error": "upstream exploded"})
        assert error.error_message == "upstream exploded"
        assert error.error_type is None

    @pytest.mark.parametrize("body", [None, b"", "<html>Bad Gateway</html>", "[]"])
    def test_unparseable_body(self, body):
        error = classify_http_error(502, body, provider="OpenAI")

        assert isinstance(error, ProviderRequestError)
        assert error.error_type is None
        assert error.error_message is None
        assert str(error) == "OpenAI Error: request failed with status 502"

    def test_to_dict(self):
        error = classify_http_error(400, {"error": {"status": "INVALID_ARGUMENT", "message": "bad"}})

        assert error.to_dict() == {
            "type": "ProviderRequestError",
            "message": "Provider Error [400]: INVALID_ARGUMENT: bad",
            "status_code": 400,
            "error_type": "INVALID_ARGUMENT",
            "error_message": "bad",
        }


# =============================================================================
# Hierarchy
# =============================================================================

class TestHierarchy:
    """Tests for the three error families"""

    def test_provider_errors(self):
        for error in (RateLimitedError(), ProviderOverloadedError(), ProviderRequestError(400)):
            assert isinstance(error, ProviderError)

    def test_protocol_errors(self):
        errors = (
            StreamTruncatedError(0),
            UnknownToolCallFragmentError("call_1"),
            MalformedIncrementError("{", "bad json"),
        )
        for error in errors:
            assert isinstance(error, StreamProtocolError)
            assert not error.retryable

    def test_tool_errors(self):
        errors = (
            ToolNotFoundError("x"),
            ToolArgumentDecodeError("x", "{", "bad json"),
            ToolExecutionError("x", "failed"),
        )
        for error in errors:
            assert isinstance(error, ToolError)
            assert error.tool_name == "x"

    def test_messages(self):
        assert str(StreamTruncatedError(2)) == "Stream for step 2 ended without a finish signal"
        assert str(UnknownToolCallFragmentError("call_9")) == "Fragment for unknown tool call 'call_9'"
        assert "bad json" in str(MalformedIncrementError("{", "bad json"))
