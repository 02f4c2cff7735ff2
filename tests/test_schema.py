"""Schema Extractor Tests."""

from __future__ import annotations

import json

import pytest
from pydantic import BaseModel

from relay_tools.exceptions import ToolValidationError, UnsupportedSchemaError
from relay_tools.schema import extract_schema


class Address(BaseModel):
    street: str
    city: str


class Customer(BaseModel):
    name: str
    address: Address
    previous_addresses: list[Address] = []


class TreeNode(BaseModel):
    label: str
    children: list[TreeNode] = []


TreeNode.model_rebuild()


def test_flat_model_schema():
    schema = extract_schema(Address)

    assert schema["type"] == "object"
    assert set(schema["properties"]) == {"street", "city"}
    assert schema["required"] == ["street", "city"]
    assert schema["additionalProperties"] is False


def test_nested_models_are_inlined():
    schema = extract_schema(Customer)

    assert "$defs" not in schema
    assert "$ref" not in json.dumps(schema)
    assert schema["properties"]["address"]["properties"]["city"]["type"] == "string"
    assert schema["properties"]["previous_addresses"]["items"]["properties"]["street"]


def test_recursive_model_rejected():
    with pytest.raises(UnsupportedSchemaError, match=r"\$ref"):
        extract_schema(TreeNode, "tree")


@pytest.mark.parametrize("input_type", [int, str, tuple, dict, list[int]])
def test_non_record_types_rejected(input_type):
    with pytest.raises(ToolValidationError):
        extract_schema(input_type)
