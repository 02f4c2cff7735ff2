"""Tool registration exceptions.

Raised synchronously by the registry and schema extractor; never retried.
"""


class ToolRelayError(Exception):
    """Base exception for toolrelay."""

    pass


class ToolValidationError(ToolRelayError):
    """Tool handler has the wrong shape or invalid metadata."""

    pass


class DuplicateNameError(ToolValidationError):
    """A tool with the same name is already registered."""

    pass


class FrozenRegistryError(ToolValidationError):
    """Registry is read-only once the polling agent has started."""

    pass


class UnsupportedSchemaError(ToolValidationError):
    """Generated input schema cannot be sent to the control plane."""

    pass
