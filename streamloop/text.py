"""
StreamLoop Text Generation - Run an orchestration to completion

generate_text() drives the same StreamOrchestrator as streaming callers and
collects the result, so tool loops, step budgets and error handling behave
identically whether or not the caller consumes events.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .llm.base import FinishReason, LoopConfig, Usage
from .llm.history import ConversationHistory
from .llm.providers.base import GenerationOptions, Provider
from .llm.transport import HTTPTransport
from .streaming.orchestrator import StreamOrchestrator
from .streaming.step import Step
from .tools.models import ToolCall, ToolResult
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class TextResponse:
    """Result of generate_text()"""
    text: str
    finish_reason: FinishReason
    usage: Usage
    model: str
    steps: List[Step] = field(default_factory=list)
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "finish_reason": self.finish_reason.value,
            "usage": self.usage.to_dict(),
            "model": self.model,
            "step_count": len(self.steps),
            "tool_calls": [call.to_dict() for call in self.tool_calls],
            "tool_results": [result.to_dict() for result in self.tool_results],
        }


def as_history(prompt: Union[str, ConversationHistory]) -> ConversationHistory:
    if isinstance(prompt, ConversationHistory):
        return prompt
    return ConversationHistory.from_prompt(prompt)


async def generate_text(
    provider: Provider,
    transport: HTTPTransport,
    prompt: Union[str, ConversationHistory],
    options: GenerationOptions,
    registry: Optional[ToolRegistry] = None,
    loop: Optional[LoopConfig] = None,
) -> TextResponse:
    """
    Generate text, running tool calls locally between steps.

    Args:
        provider: Provider strategies
        transport: HTTP transport
        prompt: User prompt or an existing history
        options: Generation options (model, tools, sampling)
        registry: Tools the model may call
        loop: Step budget and tool execution settings

    Returns:
        TextResponse with text from the final step and all steps

    Raises:
        ProviderError / StreamProtocolError on fatal failures
    """
    orchestrator = StreamOrchestrator(
        provider,
        transport,
        options,
        as_history(prompt),
        registry=registry,
        loop=loop,
    )
    async with orchestrator.events() as events:
        async for _ in events:
            pass

    steps = list(orchestrator.steps)
    return TextResponse(
        text=steps[-1].text if steps else "",
        finish_reason=orchestrator.finish_reason or FinishReason.UNKNOWN,
        usage=orchestrator.usage,
        model=options.model,
        steps=steps,
        tool_calls=[call for step in steps for call in step.tool_calls],
        tool_results=[result for step in steps for result in step.tool_results],
    )
