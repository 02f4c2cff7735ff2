"""Job invocation.

Decodes a job fetched from the control plane into the target tool's input
type, runs the tool, classifies the outcome and posts the result back.

Outcome classification, in priority order:
- the handler raised, or returned an exception instance -> "rejection"
- the handler returned an Interrupt -> "interrupt"
- anything else -> "resolution" with the (first) returned value

A handler may return a plain tuple to return several values at once, e.g.
``return result, Interrupt.approval()``.
"""

import asyncio
import inspect
import time
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from relay_client.exceptions import (
    InputDecodeError,
    ResultSubmissionError,
    ToolRelayError,
)
from relay_client.machine import MachineRegistrar
from relay_client.transport import ControlPlaneClient
from relay_obs import metrics
from relay_obs.logging import get_logger, job_context
from relay_tools.base import ContextInput, Interrupt, RegisteredTool
from relay_tools.registry import ToolRegistry

logger = get_logger(__name__)

ResultType = Literal["resolution", "rejection", "interrupt"]


class CallMessage(BaseModel):
    """Job fetched from the control plane."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    function: str
    input: Any = None
    auth_context: Any = None
    run_context: Any = None
    approved: bool = False

    def context(self) -> ContextInput:
        return ContextInput(
            auth_context=self.auth_context,
            run_context=self.run_context,
            approved=self.approved,
        )


class CallResultMeta(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    function_execution_time: int = 0


class CallResult(BaseModel):
    """Job outcome posted back to the control plane."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    result: Any = None
    result_type: ResultType
    meta: CallResultMeta = Field(default_factory=CallResultMeta)

    def to_wire(self) -> dict[str, Any]:
        return {
            "result": to_jsonable_python(self.result, fallback=str),
            "resultType": self.result_type,
            "meta": self.meta.model_dump(by_alias=True),
        }


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


def classify_result(returned: Any) -> tuple[ResultType, Any]:
    """Classify a handler's return value(s)."""
    values = list(returned) if type(returned) is tuple else [returned]

    for value in values:
        if isinstance(value, BaseException):
            return "rejection", _error_message(value)

    for value in values:
        if isinstance(value, Interrupt):
            return "interrupt", value

    return "resolution", values[0] if values else None


async def invoke_handler(func: Callable[..., Any], value: Any, context: ContextInput) -> Any:
    """Call a tool handler; synchronous handlers run in a worker thread."""
    if inspect.iscoroutinefunction(func):
        return await func(value, context)

    result = await asyncio.to_thread(func, value, context)
    if inspect.isawaitable(result):
        result = await result
    return result


class InvocationHandler:
    """Runs jobs against the tool registry."""

    def __init__(
        self,
        registry: ToolRegistry,
        client: ControlPlaneClient,
        registrar: MachineRegistrar,
    ):
        self.registry = registry
        self.client = client
        self.registrar = registrar

    def decode_input(self, tool: RegisteredTool, payload: Any) -> Any:
        """Decode an untyped job payload into the tool's input type.

        Raises:
            InputDecodeError: payload is not JSON-encodable or does not match
        """
        try:
            return tool.decode(payload)
        except (TypeError, ValueError) as e:
            raise InputDecodeError(str(e)) from e

    async def execute(
        self,
        tool: RegisteredTool,
        payload: Any,
        context: ContextInput,
    ) -> CallResult:
        """Decode, run and classify one call without reporting it."""
        try:
            value = self.decode_input(tool, payload)
        except InputDecodeError as e:
            logger.warning("job_input_invalid", function=tool.name, error=str(e))
            metrics.tool_executions_total.labels(tool_name=tool.name, result_type="rejection").inc()
            return CallResult(result=str(e), result_type="rejection")

        start = time.perf_counter()
        try:
            returned = await invoke_handler(tool.func, value, context)
        except Exception as e:
            logger.info("tool_raised", function=tool.name, error=_error_message(e))
            result_type, result = "rejection", _error_message(e)
        else:
            result_type, result = classify_result(returned)
        elapsed = time.perf_counter() - start
        elapsed_ms = int(elapsed * 1000)

        metrics.tool_executions_total.labels(tool_name=tool.name, result_type=result_type).inc()
        metrics.tool_execution_duration.labels(tool_name=tool.name).observe(elapsed)

        return CallResult(
            result=result,
            result_type=result_type,
            meta=CallResultMeta(function_execution_time=elapsed_ms),
        )

    async def handle(self, message: CallMessage) -> CallResult | None:
        """Handle one job.

        Jobs for tools this machine does not serve are skipped without
        posting a result; machines sharing a cluster may serve different
        tool sets.

        Returns:
            The posted CallResult, or None for an unknown tool

        Raises:
            ResultSubmissionError: result could not be posted
        """
        tool = self.registry.get(message.function)
        metrics.jobs_received_total.labels(known=str(tool is not None).lower()).inc()
        if tool is None:
            logger.warning("unknown_tool_call", job_id=message.id, function=message.function)
            return None

        with job_context(message.id, message.function):
            logger.info("job_executing")
            result = await self.execute(tool, message.input, message.context())
            await self.persist_result(message.id, result)
            logger.info(
                "job_result_persisted",
                result_type=result.result_type,
                function_execution_time=result.meta.function_execution_time,
            )

        return result

    async def persist_result(self, job_id: str, result: CallResult) -> None:
        """POST the job result.

        Raises:
            ResultSubmissionError: cluster lookup, encoding or transport failure
        """
        try:
            cluster_id = await self.registrar.get_cluster_id()
            body = result.to_wire()
            await self.client.request(
                "POST",
                f"/clusters/{cluster_id}/jobs/{job_id}/result",
                json_body=body,
            )
        except (ToolRelayError, TypeError, ValueError) as e:
            raise ResultSubmissionError(f"Failed to persist result for job '{job_id}': {e}") from e
