"""
StreamLoop OpenAI Provider - OpenAI-compatible chat completions dialect

Supports:
- GPT-4o, GPT-4.1 and other chat models
- Any OpenAI-compatible API (vLLM, Ollama /v1, LM Studio, etc.) via base_url
- Streaming tool calls (argument chunks keyed by index)
- json_schema structured output
- /embeddings

Stream increments and response bodies are validated with the openai SDK's
pydantic types; the SDK client itself is not used, transport is httpx.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai.types import CreateEmbeddingResponse
from openai.types.chat import ChatCompletion, ChatCompletionChunk
from pydantic import ValidationError

from ...errors import (
    MalformedIncrementError,
    ProviderResponseFormatError,
    UnknownToolCallFragmentError,
)
from ...streaming.decoder import (
    ChunkDecoder,
    FinishFragment,
    Fragment,
    TextFragment,
    ToolCallArgumentsDelta,
    ToolCallStart,
    UsageFragment,
)
from ..base import FinishReason, LLMConfig, Usage
from ..history import AssistantTurn, ConversationHistory, ToolResultTurn, UserTurn
from .base import (
    EMBED,
    EmbeddingsResult,
    Endpoint,
    GenerationOptions,
    GenerationResult,
    Provider,
    RequestBuilder,
    ResponseParser,
    drop_none,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,  # Legacy
    "content_filter": FinishReason.CONTENT_FILTER,
}

TOOL_CHOICES = {
    "auto": "auto",
    "any": "required",
    "none": "none",
}

# Provider options copied to the top level of the body
PASSTHROUGH_OPTIONS = ("stop", "seed", "user", "reasoning_effort", "presence_penalty", "frequency_penalty")


def map_finish_reason(raw: Optional[str]) -> FinishReason:
    """Map an OpenAI finish_reason to FinishReason"""
    if raw is None:
        return FinishReason.UNKNOWN
    return FINISH_REASONS.get(raw, FinishReason.OTHER)


class OpenAIEndpoint(Endpoint):
    """Bearer auth against {base_url}/chat/completions and /embeddings"""

    def __init__(self, config: LLMConfig, provider: str = "OpenAI"):
        super().__init__(config, provider)
        self.base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")

    def url(self, kind: str, model: str) -> str:
        if kind == EMBED:
            return f"{self.base_url}/embeddings"
        return f"{self.base_url}/chat/completions"

    def headers(self) -> Dict[str, str]:
        if self.config.api_key:
            return {"Authorization": f"Bearer {self.config.api_key}"}
        return {}


class OpenAIRequestBuilder(RequestBuilder):
    """Builds chat/completions and embeddings bodies"""

    def _messages(self, options: GenerationOptions, history: ConversationHistory) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})

        for turn in history:
            if isinstance(turn, UserTurn):
                messages.append({"role": "user", "content": turn.content})
            elif isinstance(turn, AssistantTurn):
                message: Dict[str, Any] = {"role": "assistant", "content": turn.content or None}
                if turn.tool_calls:
                    message["tool_calls"] = [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": call.raw_arguments or json.dumps(call.arguments),
                            },
                        }
                        for call in turn.tool_calls
                    ]
                messages.append(message)
            elif isinstance(turn, ToolResultTurn):
                for result in turn.results:
                    messages.append({
                        "role": "tool",
                        "tool_call_id": result.tool_call_id,
                        "content": result.content,
                    })
        return messages

    def _base_body(self, options: GenerationOptions, history: ConversationHistory) -> Dict[str, Any]:
        body = {
            "model": options.model,
            "messages": self._messages(options, history),
            **drop_none({
                "temperature": options.temperature,
                "max_tokens": options.max_tokens,
                "top_p": options.top_p,
            }),
        }
        for key in PASSTHROUGH_OPTIONS:
            if key in options.provider_options:
                body[key] = options.provider_options[key]
        return body

    def generate_body(
        self,
        options: GenerationOptions,
        history: ConversationHistory,
        stream: bool = True,
    ) -> Dict[str, Any]:
        body = self._base_body(options, history)
        if stream:
            body["stream"] = True
            body["stream_options"] = {"include_usage": True}

        if options.tools:
            body["tools"] = [
                {"type": "function", "function": t.to_schema()} for t in options.tools
            ]
            if "parallel_tool_calls" in options.provider_options:
                body["parallel_tool_calls"] = options.provider_options["parallel_tool_calls"]
        if options.tool_choice:
            body["tool_choice"] = TOOL_CHOICES[options.tool_choice]
        return body

    def structured_body(
        self,
        options: GenerationOptions,
        history: ConversationHistory,
        schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        body = self._base_body(options, history)
        body["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": options.provider_options.get("schema_name", "output"),
                "schema": schema,
                "strict": options.provider_options.get("strict", False),
            },
        }
        return body

    def embeddings_body(
        self,
        model: str,
        inputs: Sequence[str],
        provider_options: Dict[str, Any],
    ) -> Dict[str, Any]:
        return drop_none({
            "model": model,
            "input": list(inputs),
            "dimensions": provider_options.get("dimensions"),
        })


class OpenAIChunkDecoder(ChunkDecoder):
    """
    Decodes chat.completion.chunk increments.

    The first delta of a tool call carries its id and name; later deltas only
    carry the call ``index`` and an argument chunk. Calls stay open until the
    choice reports a finish_reason. Usage arrives in a trailing chunk with no
    choices, after the finish.
    """

    def __init__(self):
        super().__init__()
        self._ids_by_index: Dict[int, str] = {}

    def _decode_data(self, data: Dict[str, Any]) -> List[Fragment]:
        try:
            chunk = ChatCompletionChunk.model_validate(data)
        except ValidationError as e:
            raise MalformedIncrementError(json.dumps(data), str(e)) from e

        out: List[Fragment] = []
        for choice in chunk.choices:
            if choice.index != 0:
                continue
            delta = choice.delta
            if delta.content:
                out.append(TextFragment(delta.content))

            for tc in delta.tool_calls or []:
                self._tool_call_delta(tc, chunk.id, out)

            if choice.finish_reason is not None:
                self._end_pending_tool_calls(out)
                out.append(FinishFragment(map_finish_reason(choice.finish_reason), choice.finish_reason))

        if chunk.usage is not None:
            out.append(UsageFragment(Usage(
                prompt_tokens=chunk.usage.prompt_tokens,
                completion_tokens=chunk.usage.completion_tokens,
            )))
        return out

    def _tool_call_delta(self, tc, reasoning_id: str, out: List[Fragment]) -> None:
        call_id = self._ids_by_index.get(tc.index)
        if call_id is None:
            if not tc.id:
                raise UnknownToolCallFragmentError(
                    f"index:{tc.index}",
                    f"Tool call delta for index {tc.index} arrived before the call was started",
                )
            call_id = tc.id
            self._ids_by_index[tc.index] = call_id
            name = tc.function.name if tc.function and tc.function.name else ""
            self._tool_part(ToolCallStart(call_id, name, reasoning_id=reasoning_id), out)

        if tc.function and tc.function.arguments:
            self._tool_part(ToolCallArgumentsDelta(call_id, tc.function.arguments), out)


class OpenAIResponseParser(ResponseParser):
    provider = "OpenAI"

    def parse_generation(self, data: Dict[str, Any]) -> GenerationResult:
        try:
            completion = ChatCompletion.model_validate(data)
        except ValidationError as e:
            raise ProviderResponseFormatError(
                f"{self.provider} Error: unexpected completion body: {e}", self.provider
            ) from e
        if not completion.choices:
            raise ProviderResponseFormatError(
                f"{self.provider} Error: response contained no choices", self.provider
            )

        choice = completion.choices[0]
        usage = Usage()
        if completion.usage is not None:
            usage = Usage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
            )
        return GenerationResult(
            text=choice.message.content or "",
            usage=usage,
            finish_reason=map_finish_reason(choice.finish_reason),
            raw_finish_reason=choice.finish_reason,
        )

    def parse_embeddings(self, data: Dict[str, Any]) -> EmbeddingsResult:
        try:
            response = CreateEmbeddingResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderResponseFormatError(
                f"{self.provider} Error: Invalid response format or missing embedding data",
                self.provider,
            ) from e
        if not response.data:
            raise ProviderResponseFormatError(
                f"{self.provider} Error: Invalid response format or missing embedding data",
                self.provider,
            )
        ordered = sorted(response.data, key=lambda item: item.index)
        return EmbeddingsResult(
            embeddings=[item.embedding for item in ordered],
            tokens=response.usage.prompt_tokens,
        )


def build_openai(config: LLMConfig) -> Provider:
    """OpenAI (or OpenAI-compatible) provider for the given config"""
    return Provider(
        name="openai",
        endpoint=OpenAIEndpoint(config),
        request_builder=OpenAIRequestBuilder(),
        decoder_factory=OpenAIChunkDecoder,
        response_parser=OpenAIResponseParser(),
    )
