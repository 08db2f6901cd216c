"""
StreamLoop Tool Registry - Holds callable tool definitions by name
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..errors import ToolNotFoundError
from .models import ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of tools available to the model.

    Example:
        registry = ToolRegistry([weather, search])
        definition = registry.resolve("weather")
        schemas = registry.schemas()
    """

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in tools or []:
            self.register(definition)

    def register(self, definition: ToolDefinition, replace: bool = False) -> None:
        """Register a tool. Re-registering a name requires replace=True."""
        if definition.name in self._tools and not replace:
            raise ValueError(f"Tool '{definition.name}' is already registered")
        if definition.executor is None:
            raise ValueError(f"Tool '{definition.name}' has no executor")
        self._tools[definition.name] = definition
        logger.debug(f"Registered tool: {definition.name}")

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns False if it was not registered."""
        return self._tools.pop(name, None) is not None

    def resolve(self, name: str) -> ToolDefinition:
        """Get a tool by name, raising ToolNotFoundError when missing"""
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def schemas(self) -> List[Dict[str, Any]]:
        """Provider-neutral schemas for every registered tool"""
        return [definition.to_schema() for definition in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())
