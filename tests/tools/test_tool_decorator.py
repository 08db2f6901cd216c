"""
Tests for StreamLoop @tool decorator

Tests cover:
- Bare and parameterised usage
- JSON Schema generation from type hints and Annotated descriptions
- Required vs optional parameters
- Registration into a ToolRegistry
"""

from typing import Annotated, Dict, List, Optional, Union

import pytest

from streamloop.tools import ToolDefinition, ToolRegistry, tool
from streamloop.tools.decorator import annotation_schema, parameters_schema


# =============================================================================
# Type mapping
# =============================================================================

class TestTypeMapping:
    """Tests for Python type -> JSON Schema mapping"""

    @pytest.mark.parametrize("annotation,expected", [
        (str, {"type": "string"}),
        (int, {"type": "integer"}),
        (float, {"type": "number"}),
        (bool, {"type": "boolean"}),
        (dict, {"type": "object"}),
        (Dict[str, int], {"type": "object"}),
        (List[str], {"type": "array", "items": {"type": "string"}}),
        (list, {"type": "array"}),
        (Optional[int], {"type": "integer"}),
        (int | None, {"type": "integer"}),
        (Optional[Union[int, str]], {"anyOf": [{"type": "integer"}, {"type": "string"}]}),
        (Annotated[str, "A city"], {"type": "string"}),
    ])
    def test_mapping(self, annotation, expected):
        assert annotation_schema(annotation) == expected

    def test_unknown_type_falls_back_to_string(self):
        class Custom:
            pass

        assert annotation_schema(Custom) == {"type": "string"}


# =============================================================================
# Schema generation
# =============================================================================

class TestSchemaGeneration:
    """Tests for parameter schema generation"""

    def test_required_and_optional(self):
        def search(query: str, limit: int = 10, region: Optional[str] = None):
            pass

        schema = parameters_schema(search)

        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"query", "limit", "region"}
        assert schema["required"] == ["query"]

    def test_annotated_description(self):
        def weather(city: Annotated[str, "The city that you want the weather for"]):
            pass

        schema = parameters_schema(weather)

        assert schema["properties"]["city"] == {
            "type": "string",
            "description": "The city that you want the weather for",
        }

    def test_no_parameters(self):
        def now():
            pass

        schema = parameters_schema(now)

        assert schema == {"type": "object", "properties": {}}

    def test_varargs_are_skipped(self):
        def flexible(name: str, *args, **kwargs):
            pass

        schema = parameters_schema(flexible)

        assert list(schema["properties"]) == ["name"]

    def test_unannotated_parameter_is_string(self):
        def echo(value):
            pass

        assert parameters_schema(echo)["properties"]["value"] == {"type": "string"}


# =============================================================================
# Decorator
# =============================================================================

class TestToolDecorator:
    """Tests for @tool"""

    def test_bare_decorator(self):
        @tool
        def weather(city: str) -> str:
            """useful when you need to search for current weather conditions

            More details that are not part of the description.
            """
            return f"sunny in {city}"

        assert isinstance(weather, ToolDefinition)
        assert weather.name == "weather"
        assert weather.description == "useful when you need to search for current weather conditions"
        assert weather.parameters["required"] == ["city"]
        assert weather.executor(city="Paris") == "sunny in Paris"

    def test_name_and_description_override(self):
        @tool(name="news", description="Search the news")
        async def search_news(query: str) -> str:
            return query

        assert search_news.name == "news"
        assert search_news.description == "Search the news"

    def test_missing_docstring_uses_name(self):
        @tool
        def ping():
            return "pong"

        assert ping.description == "ping"

    def test_registers_into_registry(self):
        registry = ToolRegistry()

        @tool(registry=registry)
        def weather(city: str) -> str:
            """Get weather"""
            return city

        assert "weather" in registry
        assert registry.resolve("weather") is weather

    def test_to_schema(self):
        @tool
        def weather(city: str) -> str:
            """Get weather"""
            return city

        assert weather.to_schema() == {
            "name": "weather",
            "description": "Get weather",
            "parameters": {
                "type": "object",
                "properties": {"city": {"type": "string"}},
                "required": ["city"],
            },
        }
