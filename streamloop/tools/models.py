"""
StreamLoop Tool Models - Data structures for LLM tool calling
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..errors import ToolError


@dataclass
class ToolDefinition:
    """
    A tool the model may call.

    Attributes:
        name: Tool name (used in model tool calls)
        description: What this tool does (shown to the model)
        parameters: JSON Schema for tool arguments
        executor: Callable receiving the arguments as keyword arguments.
            May be a plain function or a coroutine function.
    """
    name: str
    description: str
    parameters: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    executor: Optional[Callable[..., Any]] = None

    def to_schema(self) -> Dict[str, Any]:
        """Provider-neutral description consumed by request builders."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@dataclass(frozen=True)
class ToolCall:
    """
    Represents a tool call decoded from the model stream

    Attributes:
        id: Unique call ID within the step
        name: Tool name
        arguments: Parsed arguments dict ({} when decoding failed)
        raw_arguments: Argument payload exactly as streamed
        reasoning_id: Shared by every call the model emitted in one reasoning turn
        signature: Provider-opaque thought signature, echoed back in history
    """
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    raw_arguments: str = ""
    reasoning_id: Optional[str] = None
    signature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "arguments": self.arguments,
            "reasoning_id": self.reasoning_id,
        }


@dataclass(frozen=True)
class ToolResult:
    """
    Result of a tool execution

    Attributes:
        tool_call_id: ID of the tool call this result is for
        tool_name: Name of the tool that was called
        arguments: Arguments the tool was called with
        result: Return value on success
        error: ToolError on failure (argument decoding, unknown tool, execution)
    """
    tool_call_id: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Optional[ToolError] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def content(self) -> str:
        """String form sent back to the model."""
        if self.error is not None:
            return f"Error: {self.error}"
        if isinstance(self.result, str):
            return self.result
        try:
            return json.dumps(self.result, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(self.result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_name,
            "arguments": self.arguments,
            "result": self.result if self.error is None else None,
            "error": self.error.to_dict() if self.error is not None else None,
        }
