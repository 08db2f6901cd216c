"""
StreamLoop Streaming Models - Events emitted by the stream orchestrator

This module defines:
- EventType enum
- StreamEvent base and the seven concrete events

Every orchestration produces, in order:

    StreamStart
    (StepStart (TextDelta | ToolCallRequested)* ToolResultProduced* StepFinish)+
    StreamEnd

``sequence`` is assigned by the orchestrator and strictly increases by one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

from ..llm.base import FinishReason, Usage
from ..tools.models import ToolCall, ToolResult


class EventType(str, Enum):
    """Types of events that can be streamed"""
    # Stream lifecycle
    STREAM_START = "stream_start"
    STREAM_END = "stream_end"

    # Step lifecycle
    STEP_START = "step_start"
    STEP_FINISH = "step_finish"

    # Content
    TEXT_DELTA = "text_delta"

    # Tool events
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class StreamEvent:
    """
    Base event structure for streaming.

    All events have:
    - type: The type of event (class level)
    - sequence: Position in the orchestration's event sequence
    - timestamp: When the event occurred
    """
    type: ClassVar[EventType]

    sequence: int = field(default=0, kw_only=True)
    timestamp: datetime = field(default_factory=datetime.now, kw_only=True, compare=False)

    @property
    def data(self) -> Dict[str, Any]:
        """Event-specific payload"""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "type": self.type.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class StreamStart(StreamEvent):
    """First event of every orchestration"""
    type: ClassVar[EventType] = EventType.STREAM_START

    model: str
    provider: str

    @property
    def data(self) -> Dict[str, Any]:
        return {"model": self.model, "provider": self.provider}


@dataclass(frozen=True)
class StepStart(StreamEvent):
    type: ClassVar[EventType] = EventType.STEP_START

    step_index: int

    @property
    def data(self) -> Dict[str, Any]:
        return {"step_index": self.step_index}


@dataclass(frozen=True)
class TextDelta(StreamEvent):
    """A chunk of generated text"""
    type: ClassVar[EventType] = EventType.TEXT_DELTA

    step_index: int
    delta: str

    @property
    def data(self) -> Dict[str, Any]:
        return {"step_index": self.step_index, "delta": self.delta}


@dataclass(frozen=True)
class ToolCallRequested(StreamEvent):
    """The model requested a tool call (arguments complete)"""
    type: ClassVar[EventType] = EventType.TOOL_CALL

    step_index: int
    tool_call: ToolCall

    @property
    def data(self) -> Dict[str, Any]:
        return {"step_index": self.step_index, "tool_call": self.tool_call.to_dict()}


@dataclass(frozen=True)
class ToolResultProduced(StreamEvent):
    """Result (or failure) of one requested tool call"""
    type: ClassVar[EventType] = EventType.TOOL_RESULT

    step_index: int
    tool_result: ToolResult

    @property
    def data(self) -> Dict[str, Any]:
        return {"step_index": self.step_index, "tool_result": self.tool_result.to_dict()}


@dataclass(frozen=True)
class StepFinish(StreamEvent):
    """
    End of one step.

    ``finish_reason`` is only set on the last step of the orchestration; for a
    step that hands over to another step it is None.

    When the last step still requested tools but the step budget is spent,
    ``finish_reason`` is ``TOOL_BUDGET_EXHAUSTED`` and matches StreamEnd. The
    reason the provider reported for that step stays on ``Step.finish_reason``.
    """
    type: ClassVar[EventType] = EventType.STEP_FINISH

    step_index: int
    usage: Usage
    finish_reason: Optional[FinishReason] = None

    @property
    def data(self) -> Dict[str, Any]:
        return {
            "step_index": self.step_index,
            "usage": self.usage.to_dict(),
            "finish_reason": self.finish_reason.value if self.finish_reason else None,
        }


@dataclass(frozen=True)
class StreamEnd(StreamEvent):
    """Last event of every successful orchestration"""
    type: ClassVar[EventType] = EventType.STREAM_END

    finish_reason: FinishReason
    usage: Usage
    step_count: int

    @property
    def data(self) -> Dict[str, Any]:
        return {
            "finish_reason": self.finish_reason.value,
            "usage": self.usage.to_dict(),
            "step_count": self.step_count,
        }
