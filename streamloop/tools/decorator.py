"""
@tool decorator - turn a typed function into a ToolDefinition.

The parameter schema is read off the signature: type hints give the JSON
types, ``Annotated[T, "text"]`` gives a description, and a parameter is
required unless it has a default or is ``Optional``. Sync and async
functions both work; the executor calls them with the decoded arguments as
keyword arguments.

Usage::

    from typing import Annotated
    from streamloop.tools import tool

    @tool
    async def weather(
        city: Annotated[str, "The city that you want the weather for"],
    ) -> str:
        \"\"\"useful when you need to search for current weather conditions\"\"\"
        return f"The weather will be 75° and sunny in {city}"

    @tool(name="search", registry=my_registry)
    def search_news(query: Annotated[str, "The detailed search query"]) -> str:
        \"\"\"useful for searching current events or data\"\"\"
        ...
"""

import inspect
import types
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, Union, get_args, get_origin, get_type_hints

from .models import ToolDefinition

_SCALAR_TYPES = {str: "string", bool: "boolean", int: "integer", float: "number"}
_UNION_ORIGINS = (Union, types.UnionType)
_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def _split(annotation: Any) -> Tuple[Any, Optional[str], bool]:
    """Peel ``Annotated`` and ``Optional`` off an annotation.

    Returns ``(inner type, description, nullable)``.
    """
    description = None
    if get_origin(annotation) is Annotated:
        annotation, *metadata = get_args(annotation)
        description = next((m for m in metadata if isinstance(m, str)), None)

    nullable = False
    if get_origin(annotation) in _UNION_ORIGINS:
        members = [m for m in get_args(annotation) if m is not type(None)]
        if len(members) < len(get_args(annotation)):
            nullable = True
            annotation = members[0] if len(members) == 1 else Union[tuple(members)]
    return annotation, description, nullable


def annotation_schema(annotation: Any) -> Dict[str, Any]:
    """JSON Schema for a single parameter annotation. Unknown types map to string."""
    inner, _, _ = _split(annotation)
    if inner in _SCALAR_TYPES:
        return {"type": _SCALAR_TYPES[inner]}

    origin = get_origin(inner)
    if inner is list or origin is list:
        item_types = get_args(inner)
        if item_types:
            return {"type": "array", "items": annotation_schema(item_types[0])}
        return {"type": "array"}
    if inner is dict or origin is dict:
        return {"type": "object"}
    if origin in _UNION_ORIGINS:
        return {"anyOf": [annotation_schema(member) for member in get_args(inner)]}
    return {"type": "string"}


def parameters_schema(func: Callable) -> Dict[str, Any]:
    """Object schema describing the keyword arguments *func* accepts."""
    try:
        hints = get_type_hints(func, include_extras=True)
    except (NameError, TypeError):
        hints = {}

    properties: Dict[str, Any] = {}
    required: List[str] = []
    for param in inspect.signature(func).parameters.values():
        if param.kind in _SKIPPED_KINDS:
            continue
        annotation = hints.get(param.name, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = str

        _, description, nullable = _split(annotation)
        prop = annotation_schema(annotation)
        if description:
            prop["description"] = description
        properties[param.name] = prop
        if param.default is inspect.Parameter.empty and not nullable:
            required.append(param.name)

    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def tool(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    registry: Optional[Any] = None,
) -> Any:
    """Build a :class:`ToolDefinition` from *func*.

    Works bare (``@tool``) or with arguments (``@tool(name=...)``). The
    description defaults to the first docstring line, then to the tool name.
    With *registry* the definition is registered as well.
    """

    def wrap(fn: Callable) -> ToolDefinition:
        tool_name = name or fn.__name__
        summary = (inspect.getdoc(fn) or "").strip().splitlines()
        definition = ToolDefinition(
            name=tool_name,
            description=description or (summary[0].strip() if summary else tool_name),
            parameters=parameters_schema(fn),
            executor=fn,
        )
        if registry is not None:
            registry.register(definition)
        return definition

    return wrap(func) if func is not None else wrap
