"""
StreamLoop Step Driver - One model round over an open increment stream

A step has two phases:

1. read(increments): decode every increment, yielding TextDelta and
   ToolCallRequested as content arrives. Reading continues until the stream
   closes because usage can arrive after the finish signal.
2. seal(): run the decoded tool calls and yield one ToolResultProduced per
   call in request order, then freeze the Step.

The driver never opens or closes connections; the orchestrator owns them and
closes the stream between the two phases.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ..errors import StreamTruncatedError, ToolError
from ..llm.base import FinishReason, Usage
from ..llm.history import AssistantTurn, ToolResultTurn, Turn
from ..tools.executor import ToolExecutor
from ..tools.models import ToolCall, ToolResult
from .decoder import (
    ChunkDecoder,
    FinishFragment,
    Fragment,
    TextFragment,
    ToolCallFragment,
    UsageFragment,
)
from .models import StreamEvent, TextDelta, ToolCallRequested, ToolResultProduced

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    """A sealed model round"""
    index: int
    text: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_results: Tuple[ToolResult, ...] = ()
    usage: Usage = field(default_factory=Usage)
    finish_reason: FinishReason = FinishReason.UNKNOWN
    raw_finish_reason: Optional[str] = None

    def turns(self) -> List[Turn]:
        """History turns this step contributes"""
        turns: List[Turn] = [AssistantTurn(content=self.text, tool_calls=self.tool_calls)]
        if self.tool_results:
            turns.append(ToolResultTurn(results=self.tool_results))
        return turns


class StepDriver:
    """
    Drives a single step.

    Usage:
        driver = StepDriver(0, provider.new_decoder(), executor)

        async with transport.stream(request) as increments:
            async for event in driver.read(increments):
                ...
        async for event in driver.seal():
            ...
        step = driver.step
    """

    def __init__(self, step_index: int, decoder: ChunkDecoder, executor: ToolExecutor):
        self.step_index = step_index
        self.decoder = decoder
        self.executor = executor

        self._text: List[str] = []
        self._tool_calls: List[ToolCall] = []
        self._decode_errors: Dict[str, ToolError] = {}
        self._usage: Optional[Usage] = None
        self._finish: Optional[FinishFragment] = None
        self.step: Optional[Step] = None

    async def read(self, increments: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        """Consume the open stream to its end"""
        async for payload in increments:
            for fragment in self.decoder.decode(payload):
                event = self._apply(fragment)
                if event is not None:
                    yield event

        for fragment in self.decoder.finish():
            event = self._apply(fragment)
            if event is not None:
                yield event

        if self._finish is None:
            raise StreamTruncatedError(self.step_index)

    def _apply(self, fragment: Fragment) -> Optional[StreamEvent]:
        if isinstance(fragment, TextFragment):
            self._text.append(fragment.delta)
            return TextDelta(step_index=self.step_index, delta=fragment.delta)

        if isinstance(fragment, ToolCallFragment):
            call = fragment.tool_call
            self._tool_calls.append(call)
            if fragment.error is not None:
                self._decode_errors[call.id] = fragment.error
            logger.debug(f"Step {self.step_index}: tool call {call.name} ({call.id})")
            return ToolCallRequested(step_index=self.step_index, tool_call=call)

        if isinstance(fragment, UsageFragment):
            # Some providers repeat cumulative usage on every increment
            self._usage = fragment.usage
            return None

        if isinstance(fragment, FinishFragment):
            if self._finish is None:
                self._finish = fragment
            else:
                logger.debug(f"Step {self.step_index}: ignoring repeated finish {fragment.raw_reason}")
            return None

        return None

    async def seal(self) -> AsyncIterator[StreamEvent]:
        """Execute tool calls and freeze the step"""
        if self._finish is None:
            raise StreamTruncatedError(self.step_index)

        results: List[ToolResult] = []
        if self._tool_calls:
            logger.info(f"Step {self.step_index}: executing {len(self._tool_calls)} tool call(s)")
            results = await self.executor.execute_all(self._tool_calls, self._decode_errors)
            for result in results:
                yield ToolResultProduced(step_index=self.step_index, tool_result=result)

        self.step = Step(
            index=self.step_index,
            text="".join(self._text),
            tool_calls=tuple(self._tool_calls),
            tool_results=tuple(results),
            usage=self._usage or Usage(),
            finish_reason=self._finish.reason,
            raw_finish_reason=self._finish.raw_reason,
        )
