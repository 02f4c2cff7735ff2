"""
Polling Agent - Background Job Processor.

Long-running loop that:
- Registers the machine's tool snapshot with the control plane
- Polls for pending jobs addressed to the registered tools
- Runs each job and posts its result
- Paces itself with the server's Retry-After header
- Stops itself after too many consecutive failed cycles
"""

import asyncio

from pydantic import TypeAdapter

from relay_client.exceptions import (
    AgentStateError,
    PollCycleError,
    RegistrationError,
    StaleRegistrationError,
    ToolRelayError,
    TransportError,
)
from relay_client.invocation import CallMessage, InvocationHandler
from relay_client.machine import MachineRegistrar
from relay_client.transport import ControlPlaneClient
from relay_obs import metrics
from relay_obs.logging import get_logger
from relay_tools.registry import ToolRegistry

logger = get_logger(__name__)

MAX_CONSECUTIVE_POLL_FAILURES = 50
DEFAULT_POLL_LIMIT = 10

_messages_adapter = TypeAdapter(list[CallMessage])


def parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After header given in whole seconds."""
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class PollingAgent:
    """Background poll loop for one machine."""

    def __init__(
        self,
        registry: ToolRegistry,
        client: ControlPlaneClient,
        registrar: MachineRegistrar,
        handler: InvocationHandler,
        poll_limit: int = DEFAULT_POLL_LIMIT,
        max_consecutive_failures: int = MAX_CONSECUTIVE_POLL_FAILURES,
    ):
        """Initialize polling agent.

        Args:
            registry: Tools served by this machine
            client: Control plane client
            registrar: Machine registrar (owns the cluster id)
            handler: Invocation handler for fetched jobs
            poll_limit: Max jobs fetched per cycle
            max_consecutive_failures: Agent stops once failures exceed this
        """
        self.registry = registry
        self.client = client
        self.registrar = registrar
        self.handler = handler
        self.poll_limit = poll_limit
        self.max_consecutive_failures = max_consecutive_failures

        # Seconds to sleep before the next cycle; written only by the loop
        self.retry_after: int = 0
        self.failure_count = 0

        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def polling(self) -> bool:
        """True while the background loop is alive."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Register the machine and start polling in the background.

        Returns once registration succeeds; the loop keeps running until
        stop() is called or the failure limit is exceeded.

        Raises:
            AgentStateError: agent already running
            RegistrationError: initial machine registration failed
        """
        if self.polling:
            raise AgentStateError("Polling agent is already running")

        # Freeze first so the registered snapshot matches what is served
        self.registry.freeze()
        try:
            await self.registrar.register_machine(self.registry, require_tools=True)
        except RegistrationError:
            self.registry.unfreeze()
            raise

        self.retry_after = 0
        self.failure_count = 0
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name="toolrelay-polling-agent")

        logger.info(
            "polling_agent_started",
            machine_id=self.client.machine_id,
            tools=self.registry.names(),
        )

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle.

        Idempotent and safe to call from any thread. Does not wait for the
        loop to exit; await wait() for that.
        """
        event, loop = self._stop_event, self._loop
        if event is None or loop is None or loop.is_closed() or event.is_set():
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            event.set()
        else:
            loop.call_soon_threadsafe(event.set)

        logger.info("polling_agent_stopping")

    async def wait(self) -> None:
        """Wait for the background loop to exit."""
        if self._task is not None:
            await self._task

    async def _sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run_loop(self) -> None:
        while True:
            await self._sleep(self.retry_after)

            if self._stop_event.is_set():
                break

            try:
                await self.poll_once()
            except Exception as e:
                metrics.poll_cycles_total.labels(outcome="failure").inc()
                self.failure_count += 1
                logger.warning(
                    "poll_cycle_failed",
                    error=str(e),
                    failure_count=self.failure_count,
                )

                if self.failure_count > self.max_consecutive_failures:
                    logger.error(
                        "polling_agent_failure_limit_exceeded",
                        failure_count=self.failure_count,
                        max_consecutive_failures=self.max_consecutive_failures,
                    )
                    self._stop_event.set()
            else:
                metrics.poll_cycles_total.labels(outcome="success").inc()
                if self.failure_count:
                    logger.info("poll_cycle_recovered", failure_count=self.failure_count)
                self.failure_count = 0

        logger.info("polling_agent_stopped", machine_id=self.client.machine_id)

    async def poll_once(self) -> None:
        """Run one poll cycle.

        Raises:
            TransportError: fetch failed or response could not be parsed
            PollCycleError: one or more jobs failed to post results
        """
        cluster_id = await self.registrar.get_cluster_id()

        try:
            response = await self.client.request(
                "GET",
                f"/clusters/{cluster_id}/jobs",
                params={
                    "acknowledge": "true",
                    "tools": ",".join(self.registry.names()),
                    "status": "pending",
                    "limit": self.poll_limit,
                },
            )
        except StaleRegistrationError:
            logger.warning("machine_registration_stale", cluster_id=cluster_id)
            try:
                await self.registrar.register_machine(self.registry, require_tools=True)
            except ToolRelayError as e:
                logger.warning("machine_reregistration_failed", error=str(e))
            raise

        retry_after = parse_retry_after(response.headers.get("retry-after"))
        if retry_after is not None:
            self.retry_after = retry_after

        try:
            messages = _messages_adapter.validate_python(response.json())
        except ValueError as e:
            raise TransportError(f"Failed to parse poll response: {e}") from e

        errors: list[str] = []
        for message in messages:
            try:
                await self.handler.handle(message)
            except Exception as e:
                logger.error("job_failed", job_id=message.id, error=str(e))
                errors.append(str(e))

        if errors:
            raise PollCycleError(errors)
