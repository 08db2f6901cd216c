"""
StreamLoop Stream Orchestrator - Multi-step streaming with local tool execution

The orchestrator sends the prompt and tool definitions, streams the model's
output, runs requested tools locally, feeds the results back and repeats until
the model stops asking for tools or the step budget is used up.

States:
    NOT_STARTED -> STREAMING <-> STEP_BOUNDARY -> FINISHED

Guarantees:
- Exactly one StreamStart first and, on success, exactly one StreamEnd last
- A failed handshake on the first request raises before any event
- Fatal errors propagate unchanged and end the stream; no StreamEnd follows
- Once FINISHED, iteration stops immediately
- Closing the stream (aclose / leaving ``async with``) releases the
  connection; no further events are produced

Usage:
    orchestrator = StreamOrchestrator(provider, transport, options, history,
                                      registry=registry, loop=LoopConfig(max_steps=3))

    async with orchestrator.events() as events:
        async for event in events:
            if isinstance(event, TextDelta):
                print(event.delta, end="")
"""

import dataclasses
import logging
from enum import Enum
from typing import Any, AsyncIterator, Callable, List, Optional

from ..errors import StreamLoopError
from ..llm.base import FinishReason, LoopConfig, Usage
from ..llm.history import ConversationHistory
from ..llm.providers.base import GenerationOptions, Provider
from ..llm.transport import HTTPTransport
from ..tools.executor import ToolExecutor
from ..tools.registry import ToolRegistry
from .models import StepFinish, StepStart, StreamEnd, StreamEvent, StreamStart
from .step import Step, StepDriver

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    """Lifecycle of one orchestration"""
    NOT_STARTED = "not_started"
    STREAMING = "streaming"
    STEP_BOUNDARY = "step_boundary"
    FINISHED = "finished"


class EventStream:
    """
    Async iterator over orchestrator events with explicit close.

    Breaking out of ``async for`` does not close an async generator; use
    ``aclose()`` or ``async with`` to release the connection promptly.
    """

    def __init__(self, agen: AsyncIterator[StreamEvent], on_close: Optional[Callable[[], Any]] = None):
        self._agen = agen
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._agen.__anext__()
        except BaseException:
            # StopAsyncIteration, fatal errors and cancellation all end the stream
            self._closed = True
            raise

    async def aclose(self) -> None:
        self._closed = True
        await self._agen.aclose()
        if self._on_close is not None:
            self._on_close()

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


class StreamOrchestrator:
    """
    Runs one multi-step streaming exchange. Single use.

    Attributes:
        state: Current OrchestratorState
        history: Conversation history, extended after every step
        steps: Sealed steps so far
        finish_reason: Final reason once StreamEnd was emitted
    """

    def __init__(
        self,
        provider: Provider,
        transport: HTTPTransport,
        options: GenerationOptions,
        history: ConversationHistory,
        registry: Optional[ToolRegistry] = None,
        loop: Optional[LoopConfig] = None,
    ):
        self.provider = provider
        self.transport = transport
        self.options = options
        self.history = history
        self.registry = registry or ToolRegistry()
        self.loop = loop or LoopConfig()
        self.executor = ToolExecutor(
            self.registry,
            timeout=self.loop.tool_timeout,
            parallel=self.loop.parallel_tool_calls,
        )

        self.state = OrchestratorState.NOT_STARTED
        self.steps: List[Step] = []
        self.usage = Usage()
        self.finish_reason: Optional[FinishReason] = None
        self._sequence = 0
        self._stream: Optional[EventStream] = None

    @property
    def text(self) -> str:
        """All text generated so far, across steps"""
        return "".join(step.text for step in self.steps)

    def events(self) -> EventStream:
        """The event stream. Repeated calls return the same stream."""
        if self._stream is None:
            self._stream = EventStream(self._run(), on_close=self._mark_finished)
        return self._stream

    def __aiter__(self) -> EventStream:
        return self.events()

    async def aclose(self) -> None:
        await self.events().aclose()

    async def __aenter__(self) -> EventStream:
        return self.events()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _mark_finished(self) -> None:
        self.state = OrchestratorState.FINISHED

    def _emit(self, event: StreamEvent) -> StreamEvent:
        stamped = dataclasses.replace(event, sequence=self._sequence)
        self._sequence += 1
        return stamped

    async def _run(self) -> AsyncIterator[StreamEvent]:
        step_index = 0
        try:
            while True:
                request = self.provider.stream_request(self.options, self.history)
                driver = StepDriver(step_index, self.provider.new_decoder(), self.executor)

                async with self.transport.stream(request) as increments:
                    if step_index == 0:
                        logger.info(
                            f"Stream started: provider={self.provider.name} model={self.options.model}"
                        )
                        yield self._emit(StreamStart(model=self.options.model, provider=self.provider.name))
                    self.state = OrchestratorState.STREAMING
                    yield self._emit(StepStart(step_index=step_index))
                    async for event in driver.read(increments):
                        yield self._emit(event)

                async for event in driver.seal():
                    yield self._emit(event)

                step = driver.step
                self.steps.append(step)
                self.usage = self.usage + step.usage
                self.history = self.history.extend(*step.turns())
                self.state = OrchestratorState.STEP_BOUNDARY

                has_budget = step_index + 1 < self.loop.max_steps
                if step.tool_calls and has_budget:
                    logger.info(
                        f"Step {step_index} finished with {len(step.tool_calls)} tool call(s), continuing"
                    )
                    yield self._emit(StepFinish(step_index=step_index, usage=step.usage))
                    step_index += 1
                    continue

                if step.tool_calls:
                    logger.warning(
                        f"Step budget of {self.loop.max_steps} exhausted with tool calls pending"
                    )
                    final_reason = FinishReason.TOOL_BUDGET_EXHAUSTED
                else:
                    final_reason = step.finish_reason

                yield self._emit(StepFinish(
                    step_index=step_index,
                    usage=step.usage,
                    finish_reason=final_reason,
                ))
                self.finish_reason = final_reason
                self.state = OrchestratorState.FINISHED
                logger.info(
                    f"Stream finished: reason={final_reason.value} steps={len(self.steps)} "
                    f"tokens={self.usage.total_tokens}"
                )
                yield self._emit(StreamEnd(
                    finish_reason=final_reason,
                    usage=self.usage,
                    step_count=len(self.steps),
                ))
                return
        except StreamLoopError as e:
            logger.error(f"Stream failed at step {step_index}: {e}")
            raise
        finally:
            self.state = OrchestratorState.FINISHED
