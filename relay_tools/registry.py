"""Tool Registry.

Holds the tools this machine serves. The registry is mutable only until
the polling agent starts; after that it is read-only so the schema
snapshot sent to the control plane always matches what is served.
"""

import inspect
import re
import typing
from collections.abc import Callable, Iterator
from typing import Any

from pydantic import TypeAdapter

from relay_tools.base import ContextInput, RegisteredTool, Tool
from relay_tools.exceptions import (
    DuplicateNameError,
    FrozenRegistryError,
    ToolValidationError,
)
from relay_tools.schema import extract_schema, is_record_type

# Names are sent comma-joined in the poll query
TOOL_NAME_PATTERN = re.compile(r"[a-zA-Z0-9]+")


def _type_hints(func: Callable[..., Any]) -> dict[str, Any]:
    target = func
    if not (inspect.isfunction(func) or inspect.ismethod(func)):
        target = getattr(func, "__call__", func)
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError):
        return {}


def resolve_input_type(name: str, func: Callable[..., Any]) -> type:
    """Validate the handler signature and return its input type.

    Raises:
        ToolValidationError: handler does not take (input, context) or
            input is not annotated with a record type
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise ToolValidationError(f"Cannot inspect handler for tool '{name}': {e}") from e

    params = list(signature.parameters.values())
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    )
    if len(params) != 2 or any(p.kind not in positional for p in params):
        raise ToolValidationError(
            f"Tool '{name}' must accept exactly two positional arguments (input, context)"
        )

    hints = _type_hints(func)
    input_param, context_param = params

    input_type = hints.get(input_param.name, input_param.annotation)
    if input_type is inspect.Parameter.empty or not is_record_type(input_type):
        raise ToolValidationError(
            f"Tool '{name}' first argument must be annotated with a pydantic model or a dataclass"
        )

    context_type = hints.get(context_param.name, context_param.annotation)
    if context_type is not inspect.Parameter.empty and not (
        isinstance(context_type, type) and issubclass(context_type, ContextInput)
    ):
        raise ToolValidationError(f"Tool '{name}' second argument must be a ContextInput")

    return input_type


class ToolRegistry:
    """Name-keyed registry of tool handlers."""

    def __init__(self):
        self._tools: dict[str, RegisteredTool] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def unfreeze(self) -> None:
        self._frozen = False

    def register(self, tool: Tool) -> RegisteredTool:
        """Register a tool.

        Raises:
            FrozenRegistryError: polling agent already started
            DuplicateNameError: name already registered
            ToolValidationError: bad name, description or handler shape
            UnsupportedSchemaError: input schema needs a $ref
        """
        if self._frozen:
            raise FrozenRegistryError(
                f"Tool '{tool.name}' must be registered before starting the polling agent"
            )

        if tool.name in self._tools:
            raise DuplicateNameError(f"Tool with name '{tool.name}' already registered")

        if not TOOL_NAME_PATTERN.fullmatch(tool.name):
            raise ToolValidationError(
                f"Tool name must only contain letters and numbers. Got: '{tool.name}'"
            )

        if tool.description is not None and not tool.description.strip():
            raise ToolValidationError(f"Description for tool '{tool.name}' must not be empty")

        input_type = resolve_input_type(tool.name, tool.func)
        schema = extract_schema(input_type, tool.name)

        registered = RegisteredTool(
            tool=tool,
            input_type=input_type,
            schema=schema,
            adapter=TypeAdapter(input_type),
        )
        self._tools[tool.name] = registered
        return registered

    def tool(
        self,
        name: str | None = None,
        description: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of register().

        The function name and first docstring line are used when name and
        description are omitted.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            doc = inspect.getdoc(func)
            self.register(
                Tool(
                    name=name or func.__name__,
                    func=func,
                    description=description or (doc.splitlines()[0] if doc else None),
                    config=config,
                )
            )
            return func

        return decorator

    def get(self, name: str) -> RegisteredTool | None:
        """Get tool by name."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[dict[str, Any]]:
        """Tool snapshot sent to the control plane on machine registration."""
        return [tool.definition() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[RegisteredTool]:
        return iter(list(self._tools.values()))
