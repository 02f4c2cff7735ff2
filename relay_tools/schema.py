"""Input schema extraction.

Builds the JSON Schema sent to the control plane for a tool's input type.
The control plane does not dereference ``$ref``, so local definitions are
inlined; a type that still needs a reference after inlining (a recursive
model) is rejected at registration time.
"""

import dataclasses
import json
from typing import Any, get_origin

from pydantic import BaseModel, TypeAdapter

from relay_tools.exceptions import ToolValidationError, UnsupportedSchemaError

DEFS_KEY = "$defs"
DEFS_PREFIX = "#/$defs/"


def is_record_type(tp: Any) -> bool:
    """True for pydantic models and dataclasses."""
    # Parametrized generics such as list[int] are not records
    if get_origin(tp) is not None or not isinstance(tp, type):
        return False
    return issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)


def _inline_refs(node: Any, defs: dict[str, Any], seen: frozenset[str]) -> Any:
    if isinstance(node, list):
        return [_inline_refs(item, defs, seen) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith(DEFS_PREFIX):
        name = ref[len(DEFS_PREFIX):]
        # Cycles cannot be inlined; the leftover $ref is reported by the caller
        if name in seen or name not in defs:
            return node
        resolved = _inline_refs(defs[name], defs, seen | {name})
        siblings = {
            key: _inline_refs(value, defs, seen)
            for key, value in node.items()
            if key != "$ref"
        }
        return {**resolved, **siblings}

    return {key: _inline_refs(value, defs, seen) for key, value in node.items()}


def extract_schema(input_type: Any, name: str | None = None) -> dict[str, Any]:
    """Produce a self-contained JSON Schema for a record type.

    Args:
        input_type: pydantic model or dataclass
        name: Tool name, used in error messages

    Returns:
        Schema with all local references inlined and
        ``additionalProperties`` set to False on the top-level object

    Raises:
        ToolValidationError: input_type is not a record type
        UnsupportedSchemaError: schema still contains a $ref after inlining
    """
    label = name or getattr(input_type, "__name__", repr(input_type))

    if not is_record_type(input_type):
        raise ToolValidationError(
            f"Input type for '{label}' must be a pydantic model or a dataclass, "
            f"got {input_type!r}"
        )

    raw = TypeAdapter(input_type).json_schema()
    defs = raw.pop(DEFS_KEY, {})
    schema = _inline_refs(raw, defs, frozenset())

    if '"$ref"' in json.dumps(schema):
        raise UnsupportedSchemaError(
            f"Schema for '{label}' contains a $ref to an external definition. "
            "Recursive input types are not supported"
        )

    schema["additionalProperties"] = False
    return schema
