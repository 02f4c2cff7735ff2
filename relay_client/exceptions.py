"""toolrelay client exceptions.

Custom exception hierarchy for control plane, polling and run errors.
"""

from typing import Any

from relay_tools.exceptions import (
    DuplicateNameError,
    FrozenRegistryError,
    ToolRelayError,
    ToolValidationError,
    UnsupportedSchemaError,
)


class ConfigurationError(ToolRelayError):
    """Missing or invalid client configuration (e.g. API secret)."""

    pass


class TransportError(ToolRelayError):
    """Network failure or non-2xx response from the control plane."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StaleRegistrationError(TransportError):
    """Control plane answered 410: the machine registration has expired."""

    pass


class RegistrationError(ToolRelayError):
    """Machine registration failed."""

    pass


class RunCreationError(ToolRelayError):
    """Run could not be created."""

    pass


class PollTimeoutError(ToolRelayError):
    """Run did not reach a terminal status within the max wait time."""

    def __init__(self, run_id: str, max_wait: float):
        super().__init__(
            f"Run '{run_id}' did not reach a terminal status within {max_wait}s"
        )
        self.run_id = run_id
        self.max_wait = max_wait


class InputDecodeError(ToolRelayError):
    """Job input could not be decoded into the tool's input type."""

    pass


class ResultSubmissionError(ToolRelayError):
    """Job result could not be sent to the control plane."""

    pass


class PollCycleError(ToolRelayError):
    """One or more jobs in a poll cycle failed."""

    def __init__(self, errors: list[str]):
        super().__init__(f"Failed to handle jobs: {errors}")
        self.errors = errors


class AgentStateError(ToolRelayError):
    """Polling agent was started while already running."""

    pass


__all__ = [
    "AgentStateError",
    "ConfigurationError",
    "DuplicateNameError",
    "FrozenRegistryError",
    "InputDecodeError",
    "PollCycleError",
    "PollTimeoutError",
    "RegistrationError",
    "ResultSubmissionError",
    "RunCreationError",
    "StaleRegistrationError",
    "ToolRelayError",
    "ToolValidationError",
    "TransportError",
    "UnsupportedSchemaError",
]
