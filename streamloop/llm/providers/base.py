"""
StreamLoop Provider Base - Providers as a record of strategies

A provider is not a class hierarchy. It is a small record holding:
- endpoint: URL and auth shaping (where a request goes, how it is signed)
- request_builder: body construction for stream / generate / embed requests
- decoder_factory: creates a fresh ChunkDecoder per step
- response_parser: parses non-streaming bodies (structured output, embeddings)

Providers that share a wire dialect share strategies by reference. Vertex AI,
for example, uses the Gemini request builder, decoder and parser and only
brings its own endpoint.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...streaming.decoder import ChunkDecoder
from ...tools.models import ToolDefinition
from ..base import FinishReason, LLMConfig, Usage
from ..history import ConversationHistory
from ..transport import HTTPRequest

logger = logging.getLogger(__name__)


# Request kinds an endpoint must be able to address
STREAM = "stream"
GENERATE = "generate"
EMBED = "embed"

# Accepted tool choice values
TOOL_CHOICES = ("auto", "any", "none")


@dataclass
class GenerationOptions:
    """
    Per-request generation settings.

    Attributes:
        model: Model name
        system_prompt: Optional system instruction (travels beside the history)
        tools: Tool definitions offered to the model
        tool_choice: "auto", "any" or "none" (None leaves it to the provider)
        temperature: Sampling temperature
        max_tokens: Maximum output tokens per step
        top_p: Nucleus sampling parameter
        provider_options: Provider specific passthrough (e.g. thinkingConfig)
    """
    model: str
    system_prompt: Optional[str] = None
    tools: List[ToolDefinition] = field(default_factory=list)
    tool_choice: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    provider_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.tool_choice is not None and self.tool_choice not in TOOL_CHOICES:
            raise ValueError(
                f"tool_choice must be one of {', '.join(TOOL_CHOICES)}, got {self.tool_choice!r}"
            )

    @classmethod
    def from_config(cls, config: LLMConfig, **overrides) -> "GenerationOptions":
        """Options seeded from an LLMConfig; explicit overrides win unless None."""
        values = {
            "model": config.model,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "top_p": config.top_p,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class GenerationResult:
    """Parsed non-streaming generation body"""
    text: str
    usage: Usage
    finish_reason: FinishReason
    raw_finish_reason: Optional[str] = None
    thoughts: List[str] = field(default_factory=list)


@dataclass
class EmbeddingsResult:
    """Parsed embeddings body"""
    embeddings: List[List[float]]
    tokens: int = 0


class Endpoint:
    """URL and auth shaping. Subclasses implement ``url``."""

    def __init__(self, config: LLMConfig, provider: str):
        self.config = config
        self.provider = provider

    def url(self, kind: str, model: str) -> str:
        raise NotImplementedError

    def params(self, kind: str) -> Dict[str, str]:
        return {}

    def headers(self) -> Dict[str, str]:
        return {}

    def request(self, kind: str, model: str, body: Dict[str, Any]) -> HTTPRequest:
        request = HTTPRequest(
            url=self.url(kind, model),
            json=body,
            params=self.params(kind),
            headers=self.headers(),
            provider=self.provider,
        )
        logger.debug(f"{self.provider} {kind} request -> {request.url}")
        return request


class RequestBuilder:
    """Body construction for one wire dialect"""

    def generate_body(
        self,
        options: GenerationOptions,
        history: ConversationHistory,
        stream: bool = True,
    ) -> Dict[str, Any]:
        raise NotImplementedError

    def structured_body(
        self,
        options: GenerationOptions,
        history: ConversationHistory,
        schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        raise NotImplementedError

    def embeddings_body(
        self,
        model: str,
        inputs: Sequence[str],
        provider_options: Dict[str, Any],
    ) -> Dict[str, Any]:
        raise NotImplementedError


class ResponseParser:
    """Parsing of non-streaming bodies for one wire dialect"""

    def parse_generation(self, data: Dict[str, Any]) -> GenerationResult:
        raise NotImplementedError

    def parse_embeddings(self, data: Dict[str, Any]) -> EmbeddingsResult:
        raise NotImplementedError


@dataclass(frozen=True)
class Provider:
    """
    A provider: name plus the strategies it is composed of.

    Example:
        provider = get_provider("vertexai", config)
        request = provider.stream_request(options, history)
        decoder = provider.new_decoder()
    """
    name: str
    endpoint: Endpoint
    request_builder: RequestBuilder
    decoder_factory: Callable[[], ChunkDecoder]
    response_parser: ResponseParser

    def stream_request(self, options: GenerationOptions, history: ConversationHistory) -> HTTPRequest:
        body = self.request_builder.generate_body(options, history, stream=True)
        return self.endpoint.request(STREAM, options.model, body)

    def structured_request(
        self,
        options: GenerationOptions,
        history: ConversationHistory,
        schema: Dict[str, Any],
    ) -> HTTPRequest:
        body = self.request_builder.structured_body(options, history, schema)
        return self.endpoint.request(GENERATE, options.model, body)

    def embeddings_request(
        self,
        model: str,
        inputs: Sequence[str],
        provider_options: Optional[Dict[str, Any]] = None,
    ) -> HTTPRequest:
        body = self.request_builder.embeddings_body(model, inputs, provider_options or {})
        return self.endpoint.request(EMBED, model, body)

    def new_decoder(self) -> ChunkDecoder:
        return self.decoder_factory()


def drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``values`` without None entries"""
    return {k: v for k, v in values.items() if v is not None}
