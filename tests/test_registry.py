"""Tool Registry Tests."""

import json
from dataclasses import dataclass

import pytest

from relay_tools.base import ContextInput, Tool
from relay_tools.exceptions import (
    DuplicateNameError,
    FrozenRegistryError,
    ToolValidationError,
)
from relay_tools.registry import ToolRegistry

from tests.helpers import EchoInput, SumInput


def echo(input: EchoInput, context: ContextInput) -> str:
    return input.text


def add(input: SumInput, context: ContextInput) -> int:
    return input.a + input.b


def test_register_and_retrieve_tool():
    """Test tool registration and retrieval."""
    registry = ToolRegistry()

    registry.register(Tool(name="echo", func=echo, description="Echo text"))
    retrieved = registry.get("echo")

    assert retrieved is not None
    assert retrieved.name == "echo"
    assert retrieved.input_type is EchoInput
    assert retrieved.schema["additionalProperties"] is False
    assert "echo" in registry
    assert len(registry) == 1


def test_duplicate_name_keeps_first_tool():
    registry = ToolRegistry()
    registry.register(Tool(name="calc", func=add, description="Add"))

    with pytest.raises(DuplicateNameError):
        registry.register(Tool(name="calc", func=echo, description="Echo"))

    assert len(registry) == 1
    assert registry.get("calc").func is add


def test_frozen_registry_rejects_any_name():
    registry = ToolRegistry()
    registry.register(Tool(name="echo", func=echo))
    registry.freeze()

    with pytest.raises(FrozenRegistryError):
        registry.register(Tool(name="brandNew", func=add))
    with pytest.raises(FrozenRegistryError):
        registry.register(Tool(name="echo", func=echo))

    assert registry.names() == ["echo"]


@pytest.mark.parametrize(
    "func",
    [
        lambda a, b: a + b,
        lambda input: input,
        lambda input, context, extra: input,
    ],
    ids=["unannotated", "one-argument", "three-arguments"],
)
def test_wrong_arity_or_unannotated_handler_rejected(func):
    registry = ToolRegistry()

    with pytest.raises(ToolValidationError):
        registry.register(Tool(name="bad", func=func))

    assert "bad" not in registry


def test_scalar_input_rejected():
    def scalar(a: int, context: ContextInput) -> int:
        return a

    registry = ToolRegistry()
    with pytest.raises(ToolValidationError):
        registry.register(Tool(name="scalar", func=scalar))
    assert len(registry) == 0


def test_tuple_input_rejected():
    def pair(value: tuple[int, int], context: ContextInput) -> int:
        return sum(value)

    registry = ToolRegistry()
    with pytest.raises(ToolValidationError):
        registry.register(Tool(name="pair", func=pair))
    assert len(registry) == 0


def test_wrong_context_annotation_rejected():
    def handler(input: EchoInput, context: dict) -> str:
        return input.text

    registry = ToolRegistry()
    with pytest.raises(ToolValidationError, match="ContextInput"):
        registry.register(Tool(name="handler", func=handler))


def test_keyword_only_context_rejected():
    def handler(input: EchoInput, *, context: ContextInput) -> str:
        return input.text

    registry = ToolRegistry()
    with pytest.raises(ToolValidationError):
        registry.register(Tool(name="handler", func=handler))


def test_dataclass_input_and_async_handler():
    @dataclass
    class Lookup:
        sku: str
        quantity: int = 1

    async def lookup(input: Lookup, context: ContextInput) -> dict:
        return {"sku": input.sku}

    registry = ToolRegistry()
    registered = registry.register(Tool(name="lookup", func=lookup))

    assert registered.input_type is Lookup
    assert registered.schema["required"] == ["sku"]


def test_bound_method_handler():
    class Inventory:
        def reserve(self, input: SumInput, context: ContextInput) -> int:
            return input.a

    registry = ToolRegistry()
    registry.register(Tool(name="reserve", func=Inventory().reserve))

    assert "reserve" in registry


def test_empty_name_and_description_rejected():
    registry = ToolRegistry()

    with pytest.raises(ToolValidationError):
        registry.register(Tool(name="", func=echo))
    with pytest.raises(ToolValidationError):
        registry.register(Tool(name="echo", func=echo, description=""))


@pytest.mark.parametrize(
    "name",
    ["add,echo", "add echo", "add_numbers", "add-numbers", "svc.add", "add\n"],
)
def test_name_must_be_alphanumeric(name):
    registry = ToolRegistry()

    with pytest.raises(ToolValidationError, match="letters and numbers"):
        registry.register(Tool(name=name, func=add))

    assert len(registry) == 0


def test_decorator_rejects_snake_case_function_name():
    registry = ToolRegistry()

    with pytest.raises(ToolValidationError):

        @registry.tool()
        def add_numbers(input: SumInput, context: ContextInput) -> int:
            return input.a + input.b


def test_decorator_uses_function_name_and_docstring():
    registry = ToolRegistry()

    @registry.tool(config={"cache": {"ttlSeconds": 60}})
    def greet(input: EchoInput, context: ContextInput) -> str:
        """Greet someone by name.

        Longer description is not sent.
        """
        return f"Hello {input.text}"

    tool = registry.get("greet")
    assert tool.description == "Greet someone by name."
    assert tool.config == {"cache": {"ttlSeconds": 60}}
    # Decorated function stays callable
    assert greet(EchoInput(text="Ada"), ContextInput()) == "Hello Ada"


def test_definitions_snapshot():
    registry = ToolRegistry()
    registry.register(Tool(name="echo", func=echo, description="Echo text", config={"retries": 1}))

    [definition] = registry.definitions()

    assert definition["name"] == "echo"
    assert definition["description"] == "Echo text"
    assert definition["config"] == {"retries": 1}
    schema = json.loads(definition["schema"])
    assert schema["properties"]["text"]["type"] == "string"
