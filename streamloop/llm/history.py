"""
StreamLoop Conversation History - Immutable, append-only turn sequence

The orchestrator owns the history and replaces it with an extended copy after
every step; request builders only read it.
"""

from dataclasses import dataclass, field
from typing import Iterator, Tuple, Union

from ..tools.models import ToolCall, ToolResult


@dataclass(frozen=True)
class UserTurn:
    content: str


@dataclass(frozen=True)
class AssistantTurn:
    """Model output for one step: text plus the tool calls it requested"""
    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()


@dataclass(frozen=True)
class ToolResultTurn:
    """Results of the tool calls of the preceding assistant turn"""
    results: Tuple[ToolResult, ...] = ()


Turn = Union[UserTurn, AssistantTurn, ToolResultTurn]


@dataclass(frozen=True)
class ConversationHistory:
    """
    Ordered sequence of turns. Never mutated, only extended.

    Example:
        history = ConversationHistory.from_prompt("What's the weather?")
        history = history.extend(assistant_turn, tool_turn)
    """
    turns: Tuple[Turn, ...] = field(default_factory=tuple)

    @classmethod
    def from_prompt(cls, prompt: str) -> "ConversationHistory":
        return cls(turns=(UserTurn(prompt),))

    def extend(self, *turns: Turn) -> "ConversationHistory":
        return ConversationHistory(turns=self.turns + tuple(turns))

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.turns)

    def __len__(self) -> int:
        return len(self.turns)

    @property
    def last(self) -> Union[Turn, None]:
        return self.turns[-1] if self.turns else None
