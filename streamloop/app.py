"""
StreamLoop Application - Single entry point built from a config file.

Usage:
    from streamloop import StreamLoop

    app = StreamLoop("config.yaml")

    @app.tool
    def weather(city: str) -> str:
        '''useful when you need to search for current weather conditions'''
        return f"The weather will be 75° and sunny in {city}"

    # Streaming
    async with app.stream("What's the weather in Paris?", max_steps=3) as events:
        async for event in events:
            ...

    # Complete result
    response = await app.text("What's the weather in Paris?", max_steps=3)

    await app.close()
"""

import dataclasses
import logging
from typing import Any, Dict, Iterable, Optional, Sequence, Union

import httpx

from .config import AppConfig
from .embeddings import EmbeddingsResponse, embed
from .llm.history import ConversationHistory
from .llm.providers import get_provider
from .llm.providers.base import GenerationOptions, Provider
from .llm.transport import HTTPTransport
from .streaming.orchestrator import StreamOrchestrator
from .structured import StructuredResponse, generate_structured
from .text import TextResponse, as_history, generate_text
from .tools.decorator import tool as tool_decorator
from .tools.models import ToolDefinition
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class StreamLoop:
    """
    StreamLoop application entry point.

    Sync constructor reads and validates config; the HTTP client is created
    on first use.

    Args:
        config: Path to a YAML configuration file, or an AppConfig
        tools: Tools available to every request
        client: Optional pre-built httpx.AsyncClient (tests, proxies)
    """

    def __init__(
        self,
        config: Union[str, AppConfig],
        tools: Optional[Iterable[ToolDefinition]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config if isinstance(config, AppConfig) else AppConfig.from_file(config)
        self.registry = ToolRegistry(tools)

        llm_config = self.config.llm_config()
        self.provider: Provider = get_provider(self.config.llm.provider, llm_config)
        self.transport = HTTPTransport.from_config(llm_config, client=client)
        logger.info(f"LLM provider: {self.provider.name}, model={llm_config.model}")

    def tool(self, func=None, *, name: Optional[str] = None, description: Optional[str] = None):
        """Register a function as a tool. Usable as @app.tool or @app.tool(name=...)."""
        return tool_decorator(func, name=name, description=description, registry=self.registry)

    def _options(
        self,
        system_prompt: Optional[str] = None,
        tool_choice: Optional[str] = None,
        tools: bool = True,
        **overrides,
    ) -> GenerationOptions:
        llm = self.config.llm
        provider_options = overrides.pop("provider_options", None) or {}
        values: Dict[str, Any] = {
            "model": llm.model,
            "temperature": llm.temperature,
            "max_tokens": llm.max_tokens,
            "top_p": llm.top_p,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return GenerationOptions(
            system_prompt=system_prompt or self.config.system_prompt,
            tools=self.registry.list() if tools else [],
            tool_choice=tool_choice,
            provider_options=provider_options,
            **values,
        )

    def _loop(self, max_steps: Optional[int] = None):
        loop = self.config.loop_config()
        if max_steps is not None:
            loop = dataclasses.replace(loop, max_steps=max_steps)
        return loop

    def stream(
        self,
        prompt: Union[str, ConversationHistory],
        *,
        system_prompt: Optional[str] = None,
        tool_choice: Optional[str] = None,
        max_steps: Optional[int] = None,
        **options,
    ) -> StreamOrchestrator:
        """
        Start a streaming exchange.

        Returns a single-use StreamOrchestrator; iterate it (or use it as an
        async context manager) to receive events.
        """
        return StreamOrchestrator(
            self.provider,
            self.transport,
            self._options(system_prompt, tool_choice, **options),
            as_history(prompt),
            registry=self.registry,
            loop=self._loop(max_steps),
        )

    async def text(
        self,
        prompt: Union[str, ConversationHistory],
        *,
        system_prompt: Optional[str] = None,
        tool_choice: Optional[str] = None,
        max_steps: Optional[int] = None,
        **options,
    ) -> TextResponse:
        """Generate text, running tools between steps"""
        return await generate_text(
            self.provider,
            self.transport,
            prompt,
            self._options(system_prompt, tool_choice, **options),
            registry=self.registry,
            loop=self._loop(max_steps),
        )

    async def structured(
        self,
        prompt: Union[str, ConversationHistory],
        schema: Dict[str, Any],
        *,
        system_prompt: Optional[str] = None,
        **options,
    ) -> StructuredResponse:
        """Generate JSON matching a provider-ready schema"""
        return await generate_structured(
            self.provider,
            self.transport,
            prompt,
            schema,
            self._options(system_prompt, tools=False, **options),
        )

    async def embed(
        self,
        inputs: Union[str, Sequence[str]],
        model: Optional[str] = None,
        provider_options: Optional[Dict[str, Any]] = None,
    ) -> EmbeddingsResponse:
        """Embed inputs with the configured (or given) embedding model"""
        embedding = self.config.embedding
        if model is None:
            if embedding is None:
                raise ValueError("No embedding model configured (set 'embedding.model')")
            model = embedding.model
        merged = dict(embedding.provider_options) if embedding is not None else {}
        merged.update(provider_options or {})
        return await embed(self.provider, self.transport, model, inputs, merged)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.transport.close()
        logger.info("StreamLoop shut down")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
