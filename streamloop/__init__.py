"""
StreamLoop - Streaming multi-step LLM generation with local tool execution

StreamLoop sends a prompt and tool definitions to a text-generation API,
streams the answer, runs the tools the model asks for, feeds the results back
and repeats until the model is done or the step budget runs out. Callers get
one strictly ordered event sequence for the whole exchange.

Key Features:
- Gemini, Vertex AI and OpenAI-compatible providers
- Streaming tool calls with parallel local execution
- Typed, classified errors (rate limits, overload, protocol violations)
- Structured output and embeddings
- YAML config and an SSE HTTP server

Quick Start:
    from streamloop import StreamLoop, TextDelta

    app = StreamLoop("config.yaml")

    @app.tool
    def weather(city: str) -> str:
        '''useful when you need to search for current weather conditions'''
        return f"The weather will be 75° and sunny in {city}"

    async with app.stream("What's the weather in Paris?", max_steps=3) as events:
        async for event in events:
            if isinstance(event, TextDelta):
                print(event.delta, end="")
"""

from .errors import (
    StreamLoopError,
    ProviderError,
    RateLimitedError,
    ProviderOverloadedError,
    ProviderRequestError,
    ProviderResponseFormatError,
    ProviderTimeoutError,
    ProviderConnectionError,
    StreamProtocolError,
    StreamTruncatedError,
    UnknownToolCallFragmentError,
    MalformedIncrementError,
    ToolError,
    ToolNotFoundError,
    ToolArgumentDecodeError,
    ToolExecutionError,
    classify_http_error,
)
from .llm import (
    FinishReason,
    LLMConfig,
    LoopConfig,
    Usage,
    ConversationHistory,
    UserTurn,
    AssistantTurn,
    ToolResultTurn,
    HTTPTransport,
)
from .tools import ToolDefinition, ToolCall, ToolResult, ToolRegistry, ToolExecutor, tool

# Streaming must be imported before the providers: provider decoders extend
# streaming.decoder.ChunkDecoder
from .streaming import (
    EventType,
    StreamEvent,
    StreamStart,
    StepStart,
    TextDelta,
    ToolCallRequested,
    ToolResultProduced,
    StepFinish,
    StreamEnd,
    Step,
    StreamOrchestrator,
    OrchestratorState,
    EventStream,
)
from .llm.providers import Provider, GenerationOptions, get_provider
from .text import TextResponse, generate_text
from .structured import StructuredResponse, generate_structured
from .embeddings import EmbeddingsResponse, embed
from .config import AppConfig
from .app import StreamLoop

__version__ = "0.1.0"

__all__ = [
    # Application
    "StreamLoop",
    "AppConfig",
    # Config
    "LLMConfig",
    "LoopConfig",
    # Providers
    "Provider",
    "GenerationOptions",
    "get_provider",
    "HTTPTransport",
    # Conversation
    "ConversationHistory",
    "UserTurn",
    "AssistantTurn",
    "ToolResultTurn",
    # Results
    "Usage",
    "FinishReason",
    "TextResponse",
    "StructuredResponse",
    "EmbeddingsResponse",
    "generate_text",
    "generate_structured",
    "embed",
    # Tools
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "ToolRegistry",
    "ToolExecutor",
    "tool",
    # Streaming
    "StreamOrchestrator",
    "OrchestratorState",
    "EventStream",
    "Step",
    "EventType",
    "StreamEvent",
    "StreamStart",
    "StepStart",
    "TextDelta",
    "ToolCallRequested",
    "ToolResultProduced",
    "StepFinish",
    "StreamEnd",
    # Errors
    "StreamLoopError",
    "ProviderError",
    "RateLimitedError",
    "ProviderOverloadedError",
    "ProviderRequestError",
    "ProviderResponseFormatError",
    "ProviderTimeoutError",
    "ProviderConnectionError",
    "StreamProtocolError",
    "StreamTruncatedError",
    "UnknownToolCallFragmentError",
    "MalformedIncrementError",
    "ToolError",
    "ToolNotFoundError",
    "ToolArgumentDecodeError",
    "ToolExecutionError",
    "classify_http_error",
]
