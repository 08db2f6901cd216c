"""
StreamLoop Tools - Tool calling system for LLM function calling

Provides:
- ToolDefinition: Define tools with schemas
- ToolRegistry: Register and resolve tools by name
- ToolExecutor: Execute the tool calls of one step
- @tool decorator: Build tools from type hints

Usage:
    from streamloop.tools import tool, ToolRegistry

    @tool
    def weather(city: str) -> str:
        '''useful when you need to search for current weather conditions'''
        return f"The weather will be 75° and sunny in {city}"

    registry = ToolRegistry([weather])
"""

from .models import ToolDefinition, ToolCall, ToolResult
from .registry import ToolRegistry
from .executor import ToolExecutor
from .decorator import tool

__all__ = [
    # Models
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    # Registry
    "ToolRegistry",
    # Executor
    "ToolExecutor",
    # Decorator
    "tool",
]
