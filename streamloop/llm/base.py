"""
StreamLoop LLM Base - Common types shared by providers and the orchestrator

This module provides:
- LLMConfig: Connection and sampling configuration
- LoopConfig: Step budget and tool execution settings
- Usage: Token usage for one step (or the sum over steps)
- FinishReason: Why generation stopped
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class FinishReason(str, Enum):
    """Reason why the model (or the orchestration) stopped"""
    STOP = "stop"                                    # Natural completion
    LENGTH = "length"                                # Hit token limit
    TOOL_CALLS = "tool_calls"                        # Model wants to use tools
    CONTENT_FILTER = "content_filter"                # Blocked by safety filters
    ERROR = "error"                                  # Provider-side error
    OTHER = "other"
    UNKNOWN = "unknown"
    TOOL_BUDGET_EXHAUSTED = "tool_budget_exhausted"  # Step budget ran out mid tool loop


@dataclass
class LLMConfig:
    """
    Configuration for a provider connection.

    Attributes:
        model: Model name (e.g., "gemini-2.5-flash", "gpt-4o")
        api_key: API key for the provider
        base_url: Optional base URL override for API
        temperature: Sampling temperature
        max_tokens: Maximum output tokens per step
        top_p: Nucleus sampling parameter
        timeout: Request timeout in seconds (connect/write/pool)
        stream_timeout: Read timeout in seconds while streaming
        max_retries: Handshake retries for retryable errors (429/503/timeouts)
        retry_base_delay: Base delay for exponential back-off in seconds
        default_headers: Additional headers to send with requests
    """
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    timeout: float = 60.0
    stream_timeout: float = 120.0
    max_retries: int = 0
    retry_base_delay: float = 1.0
    default_headers: Dict[str, str] = field(default_factory=dict)

    # Extra provider-specific config (e.g., project_id/location for Vertex AI)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Sampling parameters only (never the API key)"""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
        }


@dataclass
class LoopConfig:
    """
    Multi-step tool loop configuration.

    Attributes:
        max_steps: Maximum number of model rounds (step budget)
        parallel_tool_calls: Run the tool calls of one step concurrently
        tool_timeout: Per tool call timeout in seconds (None disables it)
    """
    max_steps: int = 1
    parallel_tool_calls: bool = True
    tool_timeout: Optional[float] = 30.0

    def __post_init__(self):
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")


@dataclass(frozen=True)
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    def __post_init__(self):
        if self.prompt_tokens < 0 or self.completion_tokens < 0:
            raise ValueError("token counts must be non-negative")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: "Usage") -> "Usage":
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }
