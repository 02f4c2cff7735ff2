"""toolrelay client.

Owns the settings, HTTP client, tool registry, machine registration,
polling agent and run facade of one machine. Create one per process and
pass it to the code that needs it.

Example:

    relay = ToolRelay(api_secret="sk_...")

    @relay.tools.tool(description="Greet someone")
    def greet(input: GreetInput, context: ContextInput) -> str:
        return f"Hello {input.name}"

    await relay.start()
    run = await relay.create_run(initial_prompt="Greet Ada", tools=["greet"])
    result = await run.poll()
    await relay.aclose()
"""

import socket
from typing import Any

import httpx

from relay_client.exceptions import ConfigurationError, ToolRelayError, TransportError
from relay_client.invocation import CallResult, InvocationHandler
from relay_client.machine import MachineRegistrar, derive_machine_id
from relay_client.polling import PollingAgent
from relay_client.runs import CreateRunInput, RunReference, RunResult, RunsClient
from relay_client.transport import ControlPlaneClient
from relay_config.settings import Settings
from relay_obs.logging import get_logger
from relay_tools.base import ContextInput
from relay_tools.registry import ToolRegistry

logger = get_logger(__name__)

API_SECRET_PREFIX = "sk_"


class ToolRelay:
    """Client for one machine serving tools to the control plane."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        api_secret: str | None = None,
        api_endpoint: str | None = None,
        machine_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            settings: Settings (read from the environment when omitted)
            api_secret: Overrides settings.API_SECRET
            api_endpoint: Overrides settings.API_ENDPOINT
            machine_id: Overrides settings.MACHINE_ID
            transport: Optional httpx transport

        Raises:
            ConfigurationError: API secret missing or malformed
        """
        self.settings = settings or Settings()

        api_secret = api_secret or self.settings.API_SECRET
        if not api_secret:
            raise ConfigurationError(
                "No API secret provided. Pass api_secret or set TOOLRELAY_API_SECRET"
            )
        if not api_secret.startswith(API_SECRET_PREFIX):
            raise ConfigurationError(f"Invalid API secret: expected '{API_SECRET_PREFIX}' prefix")

        self.api_endpoint = api_endpoint or self.settings.API_ENDPOINT
        self.machine_id = (
            machine_id
            or self.settings.MACHINE_ID
            or derive_machine_id(socket.gethostname(), self.api_endpoint, api_secret)
        )

        self.client = ControlPlaneClient(
            endpoint=self.api_endpoint,
            api_secret=api_secret,
            machine_id=self.machine_id,
            timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )
        self.tools = ToolRegistry()
        self.registrar = MachineRegistrar(self.client)
        self.invocations = InvocationHandler(self.tools, self.client, self.registrar)
        self.agent = PollingAgent(
            self.tools,
            self.client,
            self.registrar,
            self.invocations,
            poll_limit=self.settings.POLL_LIMIT,
            max_consecutive_failures=self.settings.MAX_CONSECUTIVE_POLL_FAILURES,
        )
        self.runs = RunsClient(
            self.client,
            self.registrar,
            max_wait=self.settings.RUN_POLL_MAX_WAIT_SECONDS,
            interval=self.settings.RUN_POLL_INTERVAL_SECONDS,
        )

    @property
    def polling(self) -> bool:
        return self.agent.polling

    async def start(self) -> None:
        """Register the machine and start polling for jobs."""
        await self.agent.start()

    def stop(self) -> None:
        """Stop polling. Safe to call from any thread."""
        self.agent.stop()

    async def get_cluster_id(self) -> str:
        return await self.registrar.get_cluster_id()

    async def create_run(
        self,
        run_input: CreateRunInput | None = None,
        **kwargs: Any,
    ) -> RunReference:
        """Create a run from a CreateRunInput or its fields as keywords."""
        if run_input is None:
            run_input = CreateRunInput(**kwargs)
        return await self.runs.create_run(run_input)

    async def get_run(self, run_id: str) -> RunResult:
        return await self.runs.get_run(run_id)

    async def call_tool(
        self,
        name: str,
        payload: Any,
        context: ContextInput | None = None,
    ) -> CallResult:
        """Run a registered tool locally, without the control plane.

        Raises:
            ToolRelayError: no tool with that name
        """
        tool = self.tools.get(name)
        if tool is None:
            raise ToolRelayError(f"Tool '{name}' is not registered")
        return await self.invocations.execute(tool, payload, context or ContextInput())

    async def server_ok(self) -> bool:
        """Check the control plane liveness endpoint.

        Raises:
            TransportError: endpoint unreachable or not reporting ok
        """
        response = await self.client.request("GET", "/live")
        try:
            status = response.json().get("status")
        except (ValueError, AttributeError) as e:
            raise TransportError(f"Unexpected response from /live: {e}") from e

        if status != "ok":
            raise TransportError(f"Unexpected status from /live: {status}")
        return True

    async def aclose(self) -> None:
        """Stop polling and close the HTTP client.

        Waits for the in-flight poll cycle so results of jobs the control
        plane already handed out are still posted.
        """
        self.stop()
        await self.agent.wait()
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
