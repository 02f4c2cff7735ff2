"""toolrelay Tool System.

Tool definitions, input schema extraction and the tool registry.
"""

from relay_tools.base import ContextInput, Interrupt, RegisteredTool, Tool
from relay_tools.registry import ToolRegistry
from relay_tools.schema import extract_schema

__all__ = [
    "ContextInput",
    "Interrupt",
    "RegisteredTool",
    "Tool",
    "ToolRegistry",
    "extract_schema",
]
