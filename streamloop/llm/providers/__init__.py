"""
StreamLoop Providers - Built-in provider strategy records

Usage:
    from streamloop.llm.providers import get_provider

    provider = get_provider("vertexai", LLMConfig(
        model="gemini-2.5-flash",
        api_key="...",
        extra={"project_id": "my-project", "location": "us-central1"},
    ))
"""

from typing import Callable, Dict

from ..base import LLMConfig
from .base import (
    EmbeddingsResult,
    Endpoint,
    GenerationOptions,
    GenerationResult,
    Provider,
    RequestBuilder,
    ResponseParser,
)
from .gemini import build_gemini
from .openai import build_openai
from .vertexai import build_vertexai

PROVIDERS: Dict[str, Callable[[LLMConfig], Provider]] = {
    "gemini": build_gemini,
    "vertexai": build_vertexai,
    "openai": build_openai,
}


def get_provider(name: str, config: LLMConfig) -> Provider:
    """
    Build a provider by name.

    Raises:
        ValueError: if the provider is unknown
    """
    try:
        builder = PROVIDERS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown provider '{name}'. Available: {', '.join(sorted(PROVIDERS))}"
        ) from None
    return builder(config)


__all__ = [
    "Provider",
    "Endpoint",
    "RequestBuilder",
    "ResponseParser",
    "GenerationOptions",
    "GenerationResult",
    "EmbeddingsResult",
    "PROVIDERS",
    "get_provider",
]
