"""
StreamLoop LLM - Provider-facing layer

Provides:
- LLMConfig / LoopConfig / Usage / FinishReason
- ConversationHistory and its turn types
- HTTPTransport (httpx) for streaming and plain requests

Providers live in ``streamloop.llm.providers``.
"""

from .base import FinishReason, LLMConfig, LoopConfig, Usage
from .history import AssistantTurn, ConversationHistory, ToolResultTurn, UserTurn
from .transport import HTTPRequest, HTTPTransport

__all__ = [
    "FinishReason",
    "LLMConfig",
    "LoopConfig",
    "Usage",
    "ConversationHistory",
    "UserTurn",
    "AssistantTurn",
    "ToolResultTurn",
    "HTTPRequest",
    "HTTPTransport",
]
