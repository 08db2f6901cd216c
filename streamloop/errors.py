"""
StreamLoop Errors - Exception taxonomy and HTTP error classification

Three families:
- ProviderError: terminal transport failures (rate limits, overload, bad
  requests, malformed bodies, timeouts). These abort the whole orchestration.
- StreamProtocolError: the increment stream broke its contract (truncated
  stream, fragment for an unknown tool call, undecodable increment). Fatal.
- ToolError: problems decoding or running a single tool call. Never raised
  out of the orchestrator; carried inside a ToolResult so the model can react.

classify_http_error() maps a non-2xx response to a ProviderError. It only ever
looks at the handshake response, never at stream content.
"""

import json
import math
from typing import Any, Dict, Mapping, Optional, Union


class StreamLoopError(Exception):
    """Base class for every error raised by streamloop"""

    retryable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": str(self),
        }


# ---------------------------------------------------------------------------
# Provider (transport) errors
# ---------------------------------------------------------------------------

class ProviderError(StreamLoopError):
    """A terminal failure reported by (or while talking to) the provider."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class RateLimitedError(ProviderError):
    """HTTP 429 - the caller should back off before retrying."""

    retryable = True

    def __init__(self, provider: Optional[str] = None, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        message = f"{provider or 'Provider'} rate limit exceeded"
        if retry_after is not None:
            message += f" (retry after {retry_after:g}s)"
        super().__init__(message, provider)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class ProviderOverloadedError(ProviderError):
    """HTTP 503 - transient, the caller may retry."""

    retryable = True

    def __init__(self, provider: Optional[str] = None):
        super().__init__(f"{provider or 'Provider'} is overloaded, please retry later", provider)


class ProviderRequestError(ProviderError):
    """Any other non-2xx response. Carries provider details when parseable."""

    def __init__(
        self,
        status_code: int,
        provider: Optional[str] = None,
        error_type: Optional[str] = None,
        error_message: Optional[str] = None,
    ):
        self.status_code = status_code
        self.error_type = error_type
        self.error_message = error_message

        name = provider or "Provider"
        if error_type or error_message:
            details = ": ".join(part for part in (error_type, error_message) if part)
            message = f"{name} Error [{status_code}]: {details}"
        else:
            message = f"{name} Error: request failed with status {status_code}"
        super().__init__(message, provider)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "error_type": self.error_type,
            "error_message": self.error_message,
        })
        return data


class ProviderResponseFormatError(ProviderError):
    """2xx response whose body is structurally invalid."""


class ProviderTimeoutError(ProviderError):
    """The transport gave up waiting for the provider."""

    retryable = True


class ProviderConnectionError(ProviderError):
    """The connection to the provider could not be established or was lost."""

    retryable = True


# ---------------------------------------------------------------------------
# Stream protocol errors
# ---------------------------------------------------------------------------

class StreamProtocolError(StreamLoopError):
    """The increment stream violated the decoding contract."""


class StreamTruncatedError(StreamProtocolError):
    """The stream closed without ever signalling a finish reason."""

    def __init__(self, step_index: int, message: Optional[str] = None):
        self.step_index = step_index
        super().__init__(
            message or f"Stream for step {step_index} ended without a finish signal"
        )


class UnknownToolCallFragmentError(StreamProtocolError):
    """A tool-call fragment referenced an id that was never started."""

    def __init__(self, tool_call_id: str, message: Optional[str] = None):
        self.tool_call_id = tool_call_id
        super().__init__(message or f"Fragment for unknown tool call '{tool_call_id}'")


class MalformedIncrementError(StreamProtocolError):
    """An increment could not be decoded at all."""

    def __init__(self, payload: str, reason: str):
        self.payload = payload
        super().__init__(f"Malformed stream increment ({reason}): {payload[:200]!r}")


# ---------------------------------------------------------------------------
# Tool errors (carried as data inside ToolResult)
# ---------------------------------------------------------------------------

class ToolError(StreamLoopError):
    """Base class for per-call tool failures."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["tool_name"] = self.tool_name
        return data


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Unknown tool '{tool_name}'")


class ToolArgumentDecodeError(ToolError):
    """The completed argument payload was not a JSON object."""

    def __init__(self, tool_name: str, raw_arguments: str, reason: str):
        self.raw_arguments = raw_arguments
        super().__init__(
            tool_name,
            f"Failed to parse arguments for tool '{tool_name}': {reason}",
        )


class ToolExecutionError(ToolError):
    """The tool raised, or did not finish in time."""

    def __init__(self, tool_name: str, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(tool_name, message)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _parse_error_body(body: Union[bytes, str, Mapping[str, Any], None]) -> Dict[str, Any]:
    """Best-effort JSON decoding of an error body. Returns {} when unparseable."""
    if body is None:
        return {}
    if isinstance(body, Mapping):
        return dict(body)
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return {}
    # Some providers wrap the error object in a single-element list
    if isinstance(data, list) and data and isinstance(data[0], dict):
        data = data[0]
    return data if isinstance(data, dict) else {}


def _parse_retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    if not headers:
        return None
    value = None
    for key, val in headers.items():
        if key.lower() == "retry-after":
            value = val
            break
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if not math.isfinite(seconds):
        return None
    return max(0.0, seconds)


def classify_http_error(
    status_code: int,
    body: Union[bytes, str, Mapping[str, Any], None] = None,
    provider: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> ProviderError:
    """
    Map a non-2xx HTTP response to the error taxonomy.

    Args:
        status_code: HTTP status of the handshake response
        body: Raw or decoded response body
        provider: Provider name used in messages
        headers: Response headers (Retry-After is honoured for 429)

    Returns:
        The ProviderError subclass instance to raise
    """
    if status_code == 429:
        return RateLimitedError(provider, retry_after=_parse_retry_after(headers))
    if status_code == 503:
        return ProviderOverloadedError(provider)

    data = _parse_error_body(body)
    error = data.get("error")
    error_type = None
    error_message = None
    if isinstance(error, dict):
        # Google APIs use error.status, OpenAI-compatible APIs use error.type
        error_type = error.get("status") or error.get("type") or error.get("code")
        error_message = error.get("message")
    elif isinstance(error, str):
        error_message = error

    return ProviderRequestError(
        status_code=status_code,
        provider=provider,
        error_type=str(error_type) if error_type is not None else None,
        error_message=error_message,
    )
