"""Runs.

Create runs on the control plane and wait for them to finish.
"""

import asyncio
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from relay_client.exceptions import (
    PollTimeoutError,
    RunCreationError,
    ToolRelayError,
    TransportError,
)
from relay_client.machine import MachineRegistrar
from relay_client.transport import ControlPlaneClient
from relay_obs.logging import get_logger
from relay_tools.base import RegisteredTool, Tool
from relay_tools.schema import extract_schema, is_record_type

logger = get_logger(__name__)

NON_TERMINAL_STATUSES = frozenset({"pending", "running", "paused"})
DEFAULT_MAX_WAIT_SECONDS = 60.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.5


class RunTemplate(BaseModel):
    """Reference to a run template stored on the control plane."""

    id: str
    input: dict[str, Any] = {}


class CreateRunInput(BaseModel):
    """Run definition sent to the control plane."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    initial_prompt: str | None = None
    tools: list[str] | None = None
    metadata: dict[str, str] | None = None
    result_schema: dict[str, Any] | None = None
    template: RunTemplate | None = None
    reasoning_traces: bool | None = None
    interactive: bool | None = None
    call_summarization: bool | None = None

    @field_validator("tools", mode="before")
    @classmethod
    def _tool_names(cls, value: Any) -> Any:
        if value is None:
            return value
        return [t.name if isinstance(t, (Tool, RegisteredTool)) else t for t in value]

    @field_validator("result_schema", mode="before")
    @classmethod
    def _result_schema(cls, value: Any) -> Any:
        if is_record_type(value):
            return extract_schema(value)
        return value

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class RunResult(BaseModel):
    """Run status document. Unknown server fields are kept."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    status: str | None = None
    result: Any = None
    tags: dict[str, Any] | None = None

    @property
    def terminal(self) -> bool:
        return self.status not in NON_TERMINAL_STATUSES


class RunReference:
    """Handle to a created run."""

    def __init__(
        self,
        run_id: str,
        runs: "RunsClient",
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.id = run_id
        self.runs = runs
        self.max_wait = max_wait
        self.interval = interval

    def __repr__(self) -> str:
        return f"RunReference(id={self.id!r})"

    async def poll(
        self,
        max_wait: float | None = None,
        interval: float | None = None,
    ) -> RunResult:
        """Poll until the run leaves pending/running/paused.

        Args:
            max_wait: Seconds to wait in total (default 60)
            interval: Seconds between status checks (default 0.5)

        Returns:
            Run document in its terminal state

        Raises:
            PollTimeoutError: still not terminal after max_wait
            TransportError: status fetch failed
        """
        max_wait = self.max_wait if max_wait is None else max_wait
        interval = self.interval if interval is None else interval

        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait

        while loop.time() < deadline:
            run = await self.runs.get_run(self.id)

            if run.terminal:
                logger.info("run_completed", run_id=self.id, status=run.status)
                return run

            await asyncio.sleep(interval)

        raise PollTimeoutError(self.id, max_wait)

    async def messages(self) -> list[Any]:
        """Retrieve the messages of this run."""
        return await self.runs.list_messages(self.id)


class RunsClient:
    """Run creation and status lookups."""

    def __init__(
        self,
        client: ControlPlaneClient,
        registrar: MachineRegistrar,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.client = client
        self.registrar = registrar
        self.max_wait = max_wait
        self.interval = interval

    async def create_run(self, run_input: CreateRunInput) -> RunReference:
        """Create a run.

        Raises:
            RunCreationError: cluster lookup, encoding or transport failure
        """
        try:
            cluster_id = await self.registrar.get_cluster_id()
        except ToolRelayError as e:
            raise RunCreationError(f"Failed to resolve cluster id: {e}") from e

        try:
            body = run_input.to_wire()
        except (TypeError, ValueError) as e:
            raise RunCreationError(f"Failed to encode run input: {e}") from e

        try:
            response = await self.client.request(
                "POST",
                f"/clusters/{cluster_id}/runs",
                json_body=body,
            )
            run_id = response.json().get("id")
        except TransportError as e:
            raise RunCreationError(f"Failed to create run: {e}") from e
        except (ValueError, AttributeError) as e:
            raise RunCreationError(f"Failed to parse run response: {e}") from e

        if not run_id:
            raise RunCreationError("Run response did not include an id")

        logger.info("run_created", run_id=run_id, cluster_id=cluster_id)
        return RunReference(run_id, self, max_wait=self.max_wait, interval=self.interval)

    async def get_run(self, run_id: str) -> RunResult:
        """Fetch a run's status document.

        Raises:
            TransportError: fetch failed or response was not a run document
        """
        cluster_id = await self.registrar.get_cluster_id()
        response = await self.client.request("GET", f"/clusters/{cluster_id}/runs/{run_id}")
        try:
            return RunResult.model_validate(response.json())
        except ValueError as e:
            raise TransportError(f"Failed to parse run '{run_id}': {e}") from e

    async def list_messages(self, run_id: str) -> list[Any]:
        """Fetch the messages of a run."""
        cluster_id = await self.registrar.get_cluster_id()
        response = await self.client.request(
            "GET", f"/clusters/{cluster_id}/runs/{run_id}/messages"
        )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Failed to parse messages for run '{run_id}': {e}") from e
