"""toolrelay client.

Serve local tools to a hosted orchestration control plane and create runs.
"""

from relay_client.client import ToolRelay
from relay_client.exceptions import (
    AgentStateError,
    ConfigurationError,
    DuplicateNameError,
    FrozenRegistryError,
    InputDecodeError,
    PollCycleError,
    PollTimeoutError,
    RegistrationError,
    ResultSubmissionError,
    RunCreationError,
    StaleRegistrationError,
    ToolRelayError,
    ToolValidationError,
    TransportError,
    UnsupportedSchemaError,
)
from relay_client.invocation import CallMessage, CallResult
from relay_client.runs import CreateRunInput, RunReference, RunResult, RunTemplate
from relay_client.version import __version__
from relay_tools.base import ContextInput, Interrupt, Tool

__all__ = [
    "AgentStateError",
    "CallMessage",
    "CallResult",
    "ConfigurationError",
    "ContextInput",
    "CreateRunInput",
    "DuplicateNameError",
    "FrozenRegistryError",
    "InputDecodeError",
    "Interrupt",
    "PollCycleError",
    "PollTimeoutError",
    "RegistrationError",
    "ResultSubmissionError",
    "RunCreationError",
    "RunReference",
    "RunResult",
    "RunTemplate",
    "StaleRegistrationError",
    "Tool",
    "ToolRelay",
    "ToolRelayError",
    "ToolValidationError",
    "TransportError",
    "UnsupportedSchemaError",
    "__version__",
]
