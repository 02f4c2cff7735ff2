"""Machine identity and registration.

A machine registers its tool snapshot with the control plane and receives
the id of the cluster it belongs to. The cluster id is cached and shared by
the polling agent and run creation, so access goes through a lock.
"""

import asyncio
import hashlib
import json

from relay_client.exceptions import RegistrationError, TransportError
from relay_client.transport import ControlPlaneClient
from relay_obs.logging import get_logger
from relay_tools.registry import ToolRegistry

logger = get_logger(__name__)

MACHINE_ID_LENGTH = 16


def derive_machine_id(*seed: str, length: int = MACHINE_ID_LENGTH) -> str:
    """Derive a stable machine id from seed strings.

    The same seed always yields the same id, so restarting a process with
    the same configuration keeps its identity.
    """
    digest = hashlib.sha256("\x00".join(seed).encode("utf-8")).hexdigest()
    return digest[:length]


class MachineRegistrar:
    """Registers this machine and caches the resolved cluster id."""

    def __init__(self, client: ControlPlaneClient):
        self.client = client
        self._cluster_id: str | None = None
        self._lock = asyncio.Lock()

    @property
    def cluster_id(self) -> str | None:
        """Cached cluster id, None until the first registration."""
        return self._cluster_id

    def invalidate(self) -> None:
        """Drop the cached cluster id; the next lookup re-registers."""
        self._cluster_id = None

    async def register_machine(
        self,
        registry: ToolRegistry | None = None,
        require_tools: bool = False,
    ) -> str:
        """Register the machine with the current tool snapshot.

        Args:
            registry: Tools to declare. None sends an empty declaration
            require_tools: Fail when the snapshot has no tools

        Returns:
            Cluster id

        Raises:
            RegistrationError: empty snapshot, encoding or transport failure
        """
        async with self._lock:
            return await self._register(registry, require_tools)

    async def get_cluster_id(self) -> str:
        """Return the cached cluster id, registering on first use."""
        async with self._lock:
            if self._cluster_id is None:
                await self._register(None, require_tools=False)
            return self._cluster_id

    async def _register(self, registry: ToolRegistry | None, require_tools: bool) -> str:
        tools = registry.definitions() if registry is not None else []

        if require_tools and not tools:
            raise RegistrationError("Cannot register machine: no tools registered")

        payload = {"tools": tools}
        try:
            json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise RegistrationError(f"Failed to encode tool snapshot: {e}") from e

        logger.info(
            "machine_registering",
            machine_id=self.client.machine_id,
            tools=[tool["name"] for tool in tools],
        )

        try:
            response = await self.client.request("POST", "/machines", json_body=payload)
            cluster_id = response.json().get("clusterId")
        except TransportError as e:
            raise RegistrationError(f"Failed to register machine: {e}") from e
        except (ValueError, AttributeError) as e:
            raise RegistrationError(f"Failed to parse registration response: {e}") from e

        if not cluster_id:
            raise RegistrationError("Registration response did not include a clusterId")

        self._cluster_id = cluster_id
        logger.info("machine_registered", machine_id=self.client.machine_id, cluster_id=cluster_id)
        return cluster_id
