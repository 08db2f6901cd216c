"""
StreamLoop Streaming - Chunk decoding, step driving and orchestration

Usage:
    from streamloop.streaming import StreamOrchestrator, TextDelta

    async with orchestrator.events() as events:
        async for event in events:
            if isinstance(event, TextDelta):
                print(event.delta, end="")
"""

from .decoder import (
    ChunkDecoder,
    FinishFragment,
    TextFragment,
    ToolCallAccumulator,
    ToolCallArgumentsDelta,
    ToolCallEnd,
    ToolCallFragment,
    ToolCallStart,
    UsageFragment,
)
from .models import (
    EventType,
    StepFinish,
    StepStart,
    StreamEnd,
    StreamEvent,
    StreamStart,
    TextDelta,
    ToolCallRequested,
    ToolResultProduced,
)
from .step import Step, StepDriver
from .orchestrator import EventStream, OrchestratorState, StreamOrchestrator

__all__ = [
    # Decoder
    "ChunkDecoder",
    "ToolCallAccumulator",
    "TextFragment",
    "ToolCallFragment",
    "UsageFragment",
    "FinishFragment",
    "ToolCallStart",
    "ToolCallArgumentsDelta",
    "ToolCallEnd",
    # Events
    "EventType",
    "StreamEvent",
    "StreamStart",
    "StepStart",
    "TextDelta",
    "ToolCallRequested",
    "ToolResultProduced",
    "StepFinish",
    "StreamEnd",
    # Steps
    "Step",
    "StepDriver",
    # Orchestrator
    "StreamOrchestrator",
    "OrchestratorState",
    "EventStream",
]
