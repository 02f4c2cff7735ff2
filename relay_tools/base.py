"""Tool Interface & Invocation Types.

A tool is a local callable ``func(input, context)`` that the control plane
may invoke remotely. ``input`` is a record type (pydantic model or
dataclass) decoded from the job payload; ``context`` is a ContextInput.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class Tool(BaseModel):
    """Tool definition supplied by the caller."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    func: Callable[..., Any]
    description: str | None = None
    config: dict[str, Any] | None = None


class ContextInput(BaseModel):
    """Per-invocation ambient data passed as the handler's second argument."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    auth_context: Any = None
    run_context: Any = None
    approved: bool = False


class Interrupt(BaseModel):
    """Returned by a handler to pause the run until the call is approved.

    When the run is resumed the same job is delivered again with
    ``context.approved`` set to True.
    """

    type: Literal["approval"] = Field(default="approval")

    @classmethod
    def approval(cls) -> "Interrupt":
        return cls(type="approval")


@dataclass(frozen=True)
class RegisteredTool:
    """A validated tool as stored by the registry."""

    tool: Tool
    input_type: type
    schema: dict[str, Any]
    adapter: TypeAdapter

    @property
    def name(self) -> str:
        return self.tool.name

    @property
    def description(self) -> str | None:
        return self.tool.description

    @property
    def config(self) -> dict[str, Any] | None:
        return self.tool.config

    @property
    def func(self) -> Callable[..., Any]:
        return self.tool.func

    def decode(self, payload: Any) -> Any:
        """Encode the untyped payload to JSON and decode it into input_type.

        Raises:
            TypeError / ValueError: payload is not JSON-encodable
            pydantic.ValidationError: payload does not match input_type
        """
        return self.adapter.validate_json(json.dumps(payload))

    def definition(self) -> dict[str, Any]:
        """Tool snapshot entry sent on machine registration."""
        return {
            "name": self.name,
            "description": self.description,
            "schema": json.dumps(self.schema),
            "config": self.config,
        }
