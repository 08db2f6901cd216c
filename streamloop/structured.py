"""
StreamLoop Structured Output - JSON constrained by a provider-ready schema

The schema is passed through untouched; translating a schema language into
the provider's dialect is the caller's business.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .errors import ProviderResponseFormatError
from .llm.base import FinishReason, Usage
from .llm.history import ConversationHistory
from .llm.providers.base import GenerationOptions, Provider
from .llm.transport import HTTPTransport
from .text import as_history

logger = logging.getLogger(__name__)


@dataclass
class StructuredResponse:
    """Result of generate_structured()"""
    structured: Any
    text: str
    usage: Usage
    finish_reason: FinishReason
    thoughts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "structured": self.structured,
            "text": self.text,
            "usage": self.usage.to_dict(),
            "finish_reason": self.finish_reason.value,
        }


async def generate_structured(
    provider: Provider,
    transport: HTTPTransport,
    prompt: Union[str, ConversationHistory],
    schema: Dict[str, Any],
    options: GenerationOptions,
) -> StructuredResponse:
    """
    Request a JSON object matching ``schema``.

    Raises:
        ProviderResponseFormatError: the model's answer is not valid JSON
    """
    request = provider.structured_request(options, as_history(prompt), schema)
    data = await transport.send(request)
    result = provider.response_parser.parse_generation(data)

    try:
        structured = json.loads(result.text)
    except json.JSONDecodeError as e:
        logger.warning(f"{provider.name} structured output is not valid JSON: {result.text[:200]!r}")
        raise ProviderResponseFormatError(
            f"{provider.endpoint.provider} Error: structured output is not valid JSON: {e}",
            provider.endpoint.provider,
        ) from e

    return StructuredResponse(
        structured=structured,
        text=result.text,
        usage=result.usage,
        finish_reason=result.finish_reason,
        thoughts=result.thoughts,
    )
