"""
StreamLoop Gemini Provider - Google Gemini (AI Studio) wire dialect

Supports:
- streamGenerateContent?alt=sse streaming with function calling
- generateContent with JSON response schema (structured output)
- batchEmbedContents embeddings
- Thought signatures (echoed back on functionCall parts)

The request builder, decoder and parser here are reused unchanged by the
Vertex AI provider.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from ...errors import ProviderResponseFormatError
from ...streaming.decoder import (
    ChunkDecoder,
    FinishFragment,
    Fragment,
    TextFragment,
    ToolCallArgumentsDelta,
    ToolCallEnd,
    ToolCallStart,
    UsageFragment,
    new_id,
)
from ..base import FinishReason, LLMConfig, Usage
from ..history import AssistantTurn, ConversationHistory, ToolResultTurn, UserTurn
from .base import (
    EMBED,
    GENERATE,
    STREAM,
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

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

FINISH_REASONS = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.LENGTH,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "BLOCKLIST": FinishReason.CONTENT_FILTER,
    "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
    "SPII": FinishReason.CONTENT_FILTER,
    "IMAGE_SAFETY": FinishReason.CONTENT_FILTER,
    "MALFORMED_FUNCTION_CALL": FinishReason.ERROR,
    "OTHER": FinishReason.OTHER,
}

TOOL_CHOICE_MODES = {
    "auto": "AUTO",
    "any": "ANY",
    "none": "NONE",
}

# Provider options copied into generationConfig
GENERATION_CONFIG_OPTIONS = ("thinkingConfig", "stopSequences", "candidateCount", "topK", "seed")

# Provider options copied to the top level of the body
TOP_LEVEL_OPTIONS = ("safetySettings", "cachedContent", "labels")


def map_finish_reason(raw: Optional[str], has_tool_calls: bool = False) -> FinishReason:
    """Map a Gemini finishReason to FinishReason"""
    if raw is None:
        return FinishReason.UNKNOWN
    reason = FINISH_REASONS.get(str(raw).upper(), FinishReason.UNKNOWN)
    if reason == FinishReason.STOP and has_tool_calls:
        return FinishReason.TOOL_CALLS
    return reason


def parse_usage(metadata: Optional[Dict[str, Any]]) -> Usage:
    """usageMetadata -> Usage (thinking tokens count as completion)"""
    metadata = metadata or {}
    return Usage(
        prompt_tokens=int(metadata.get("promptTokenCount") or 0),
        completion_tokens=int(metadata.get("candidatesTokenCount") or 0)
        + int(metadata.get("thoughtsTokenCount") or 0),
    )


# =============================================================================
# Endpoint
# =============================================================================

class GeminiEndpoint(Endpoint):
    """Google AI Studio: API key sent as x-goog-api-key"""

    ACTIONS = {
        STREAM: "streamGenerateContent",
        GENERATE: "generateContent",
        EMBED: "batchEmbedContents",
    }

    def __init__(self, config: LLMConfig, provider: str = "Gemini"):
        super().__init__(config, provider)
        self.base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")

    def url(self, kind: str, model: str) -> str:
        return f"{self.base_url}/{model}:{self.ACTIONS[kind]}"

    def params(self, kind: str) -> Dict[str, str]:
        return {"alt": "sse"} if kind == STREAM else {}

    def headers(self) -> Dict[str, str]:
        if self.config.api_key:
            return {"x-goog-api-key": self.config.api_key}
        return {}


# =============================================================================
# Request builder
# =============================================================================

class GeminiRequestBuilder(RequestBuilder):
    """Builds Gemini generateContent / embedContent bodies"""

    def _contents(self, history: ConversationHistory) -> List[Dict[str, Any]]:
        contents = []
        for turn in history:
            if isinstance(turn, UserTurn):
                contents.append({"role": "user", "parts": [{"text": turn.content}]})
            elif isinstance(turn, AssistantTurn):
                parts: List[Dict[str, Any]] = []
                if turn.content:
                    parts.append({"text": turn.content})
                for call in turn.tool_calls:
                    part: Dict[str, Any] = {
                        "functionCall": {"name": call.name, "args": call.arguments},
                    }
                    if call.signature:
                        part["thoughtSignature"] = call.signature
                    parts.append(part)
                if parts:
                    contents.append({"role": "model", "parts": parts})
            elif isinstance(turn, ToolResultTurn):
                if turn.results:
                    contents.append({
                        "role": "user",
                        "parts": [
                            {
                                "functionResponse": {
                                    "name": result.tool_name,
                                    "response": {
                                        "name": result.tool_name,
                                        "content": result.content,
                                    },
                                }
                            }
                            for result in turn.results
                        ],
                    })
        return contents

    def _format_tool(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        declaration = {"name": schema["name"], "description": schema["description"]}
        # Gemini rejects OBJECT parameters with no properties
        parameters = schema.get("parameters") or {}
        if parameters.get("properties"):
            declaration["parameters"] = parameters
        return declaration

    def _generation_config(self, options: GenerationOptions) -> Dict[str, Any]:
        config = drop_none({
            "temperature": options.temperature,
            "maxOutputTokens": options.max_tokens,
            "topP": options.top_p,
        })
        for key in GENERATION_CONFIG_OPTIONS:
            if key in options.provider_options:
                config[key] = options.provider_options[key]
        return config

    def _base_body(self, options: GenerationOptions, history: ConversationHistory) -> Dict[str, Any]:
        body: Dict[str, Any] = {"contents": self._contents(history)}

        if options.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": options.system_prompt}]}

        generation_config = self._generation_config(options)
        if generation_config:
            body["generationConfig"] = generation_config

        for key in TOP_LEVEL_OPTIONS:
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

        if options.tools:
            body["tools"] = [{
                "functionDeclarations": [self._format_tool(t.to_schema()) for t in options.tools]
            }]
        if options.tool_choice:
            body["toolConfig"] = {
                "functionCallingConfig": {"mode": TOOL_CHOICE_MODES[options.tool_choice]}
            }
        return body

    def structured_body(
        self,
        options: GenerationOptions,
        history: ConversationHistory,
        schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        body = self._base_body(options, history)
        generation_config = body.setdefault("generationConfig", {})
        generation_config["response_mime_type"] = "application/json"
        generation_config["response_schema"] = schema
        return body

    def embeddings_body(
        self,
        model: str,
        inputs: Sequence[str],
        provider_options: Dict[str, Any],
    ) -> Dict[str, Any]:
        return {
            "requests": [
                drop_none({
                    "model": f"models/{model}",
                    "content": {"parts": [{"text": text}]},
                    "taskType": provider_options.get("taskType"),
                    "title": provider_options.get("title"),
                    "outputDimensionality": provider_options.get("outputDimensionality"),
                })
                for text in inputs
            ]
        }


# =============================================================================
# Stream decoder
# =============================================================================

class GeminiChunkDecoder(ChunkDecoder):
    """
    Decodes Gemini SSE increments.

    Gemini delivers each functionCall whole (args already parsed) and without
    a call id, so the decoder mints ids. Every call of the step shares one
    reasoning id: the model emits them all in a single reasoning turn.
    """

    def __init__(self):
        super().__init__()
        self.reasoning_id = new_id("rs")

    def _decode_data(self, data: Dict[str, Any]) -> List[Fragment]:
        out: List[Fragment] = []

        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates else {}
        parts = (candidate.get("content") or {}).get("parts") or []

        for part in parts:
            if "functionCall" in part:
                self._function_call(part, out)
            elif part.get("thought"):
                # Thought summaries are not part of the answer
                continue
            elif part.get("text"):
                out.append(TextFragment(part["text"]))

        if data.get("usageMetadata"):
            out.append(UsageFragment(parse_usage(data["usageMetadata"])))

        raw_reason = candidate.get("finishReason")
        if raw_reason:
            out.append(FinishFragment(
                map_finish_reason(raw_reason, self.tool_call_count > 0),
                raw_reason,
            ))
        return out

    def _function_call(self, part: Dict[str, Any], out: List[Fragment]) -> None:
        call = part.get("functionCall") or {}
        call_id = call.get("id") or new_id("call")
        self._tool_part(ToolCallStart(
            id=call_id,
            name=call.get("name", ""),
            reasoning_id=self.reasoning_id,
            signature=part.get("thoughtSignature"),
        ), out)
        args = call.get("args")
        if args is not None:
            self._tool_part(ToolCallArgumentsDelta(call_id, json.dumps(args)), out)
        self._tool_part(ToolCallEnd(call_id), out)


# =============================================================================
# Response parser
# =============================================================================

class GeminiResponseParser(ResponseParser):
    """Parses generateContent and batchEmbedContents bodies"""

    provider = "Gemini"

    def parse_generation(self, data: Dict[str, Any]) -> GenerationResult:
        candidates = data.get("candidates")
        if not candidates:
            raise ProviderResponseFormatError(
                f"{self.provider} Error: response contained no candidates", self.provider
            )
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []

        text = []
        thoughts = []
        for part in parts:
            if "text" not in part:
                continue
            if part.get("thought"):
                thoughts.append(part["text"])
            else:
                text.append(part["text"])

        raw_reason = candidate.get("finishReason")
        return GenerationResult(
            text="".join(text),
            usage=parse_usage(data.get("usageMetadata")),
            finish_reason=map_finish_reason(raw_reason),
            raw_finish_reason=raw_reason,
            thoughts=thoughts,
        )

    def parse_embeddings(self, data: Dict[str, Any]) -> EmbeddingsResult:
        embeddings = data.get("embeddings")
        if not embeddings or not all(isinstance(e, dict) and "values" in e for e in embeddings):
            raise ProviderResponseFormatError(
                f"{self.provider} Error: Invalid response format or missing embedding data",
                self.provider,
            )
        return EmbeddingsResult(embeddings=[e["values"] for e in embeddings])


def build_gemini(config: LLMConfig) -> Provider:
    """Gemini provider for the given config"""
    return Provider(
        name="gemini",
        endpoint=GeminiEndpoint(config),
        request_builder=GeminiRequestBuilder(),
        decoder_factory=GeminiChunkDecoder,
        response_parser=GeminiResponseParser(),
    )
