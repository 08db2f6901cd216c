"""
StreamLoop Chunk Decoder - Raw stream increments -> typed fragments

This module defines:
- Fragment types handed to the step driver (text, completed tool call,
  usage, finish)
- Low-level tool call parts produced by provider decoders (start, argument
  delta, end)
- ToolCallAccumulator: joins argument chunks per call id and decodes the
  completed payload
- ChunkDecoder: base class every provider decoder extends

Decoders are created once per step. They never reorder: fragments come out
in the order their content was received.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..errors import (
    MalformedIncrementError,
    ToolArgumentDecodeError,
    UnknownToolCallFragmentError,
)
from ..llm.base import FinishReason, Usage
from ..tools.models import ToolCall

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fragments (decoder output)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextFragment:
    delta: str


@dataclass(frozen=True)
class ToolCallFragment:
    """A tool call whose argument payload is complete.

    ``error`` is set when the payload could not be decoded; the call is still
    reported so it can be answered with a failed result.
    """
    tool_call: ToolCall
    error: Optional[ToolArgumentDecodeError] = None


@dataclass(frozen=True)
class UsageFragment:
    usage: Usage


@dataclass(frozen=True)
class FinishFragment:
    reason: FinishReason
    raw_reason: Optional[str] = None


Fragment = Union[TextFragment, ToolCallFragment, UsageFragment, FinishFragment]


# ---------------------------------------------------------------------------
# Tool call parts (provider decoder -> accumulator)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolCallStart:
    id: str
    name: str
    reasoning_id: Optional[str] = None
    signature: Optional[str] = None


@dataclass(frozen=True)
class ToolCallArgumentsDelta:
    id: str
    chunk: str


@dataclass(frozen=True)
class ToolCallEnd:
    id: str


ToolCallPart = Union[ToolCallStart, ToolCallArgumentsDelta, ToolCallEnd]


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:24]}"


class ToolCallAccumulator:
    """
    Accumulates streamed tool call arguments keyed by call id.

    Example:
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="call_1", name="weather"))
        acc.feed(ToolCallArgumentsDelta(id="call_1", chunk='{"city": '))
        acc.feed(ToolCallArgumentsDelta(id="call_1", chunk='"Paris"}'))
        fragment = acc.feed(ToolCallEnd(id="call_1"))
    """

    def __init__(self):
        self._open: Dict[str, Dict[str, Any]] = {}
        self._seen: List[str] = []

    @property
    def pending_ids(self) -> List[str]:
        """Ids started but not yet ended, in start order"""
        return [call_id for call_id in self._seen if call_id in self._open]

    def feed(self, part: ToolCallPart) -> Optional[ToolCallFragment]:
        """Apply one part. Returns a fragment when a call completes."""
        if isinstance(part, ToolCallStart):
            if part.id in self._seen:
                raise UnknownToolCallFragmentError(
                    part.id, f"Tool call '{part.id}' was started twice in one step"
                )
            self._seen.append(part.id)
            self._open[part.id] = {
                "name": part.name,
                "chunks": [],
                "reasoning_id": part.reasoning_id,
                "signature": part.signature,
            }
            return None

        if part.id not in self._open:
            raise UnknownToolCallFragmentError(part.id)

        if isinstance(part, ToolCallArgumentsDelta):
            self._open[part.id]["chunks"].append(part.chunk)
            return None

        return self._complete(part.id)

    def _complete(self, call_id: str) -> ToolCallFragment:
        state = self._open.pop(call_id)
        raw = "".join(state["chunks"])
        arguments: Dict[str, Any] = {}
        error = None

        if raw.strip():
            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError as e:
                error = ToolArgumentDecodeError(state["name"], raw, str(e))
            else:
                if isinstance(decoded, dict):
                    arguments = decoded
                else:
                    error = ToolArgumentDecodeError(
                        state["name"], raw, f"expected a JSON object, got {type(decoded).__name__}"
                    )

        if error is not None:
            logger.warning(str(error))

        return ToolCallFragment(
            tool_call=ToolCall(
                id=call_id,
                name=state["name"],
                arguments=arguments,
                raw_arguments=raw,
                reasoning_id=state["reasoning_id"],
                signature=state["signature"],
            ),
            error=error,
        )


class ChunkDecoder(ABC):
    """
    Base class for provider stream decoders.

    Subclasses implement ``_decode_data`` (one parsed JSON increment) and push
    tool call parts through ``self._tool_part`` so accumulation and validation
    is shared.
    """

    # Payloads that mark the end of the stream without carrying data
    SENTINELS = ("[DONE]",)

    def __init__(self):
        self._accumulator = ToolCallAccumulator()
        self.tool_call_count = 0

    def decode(self, payload: str) -> List[Fragment]:
        """Decode one raw increment into zero or more fragments"""
        payload = payload.strip()
        if not payload or payload in self.SENTINELS:
            return []
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedIncrementError(payload, str(e)) from e
        if not isinstance(data, dict):
            raise MalformedIncrementError(payload, "expected a JSON object")

        fragments = self._decode_data(data)
        logger.debug(f"Decoded {len(fragments)} fragment(s)")
        return fragments

    def finish(self) -> List[Fragment]:
        """Flush state at end of stream. Default: nothing buffered."""
        return []

    @abstractmethod
    def _decode_data(self, data: Dict[str, Any]) -> List[Fragment]:
        """Decode one parsed increment"""

    def _tool_part(self, part: ToolCallPart, out: List[Fragment]) -> None:
        fragment = self._accumulator.feed(part)
        if fragment is not None:
            self.tool_call_count += 1
            out.append(fragment)

    def _end_pending_tool_calls(self, out: List[Fragment]) -> None:
        for call_id in self._accumulator.pending_ids:
            self._tool_part(ToolCallEnd(call_id), out)
