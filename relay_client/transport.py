"""Control plane HTTP client.

Thin wrapper over httpx.AsyncClient that attaches machine headers to every
request and maps failures to TransportError.
"""

from typing import Any

import httpx

from relay_client.exceptions import StaleRegistrationError, TransportError
from relay_client.version import __version__
from relay_obs.logging import get_logger

logger = get_logger(__name__)

SDK_LANGUAGE = "python"


class ControlPlaneClient:
    """HTTP client for the control plane API.

    Provides:
    - Bearer authentication and machine identity headers
    - Exception mapping (410 -> StaleRegistrationError, other errors -> TransportError)
    """

    def __init__(
        self,
        endpoint: str,
        api_secret: str,
        machine_id: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize control plane client.

        Args:
            endpoint: API base URL
            api_secret: Cluster API secret
            machine_id: Stable id of this machine
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.endpoint = endpoint.rstrip("/")
        self.api_secret = api_secret
        self.machine_id = machine_id
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=self.endpoint,
            timeout=timeout,
            headers=self._get_headers(),
            transport=transport,
        )

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with authentication."""
        return {
            "Authorization": f"Bearer {self.api_secret}",
            "X-Machine-ID": self.machine_id,
            "X-Machine-SDK-Version": __version__,
            "X-Machine-SDK-Language": SDK_LANGUAGE,
        }

    def _handle_error(self, method: str, path: str, response: httpx.Response) -> None:
        """Map error responses to exceptions."""
        status = response.status_code

        try:
            body = response.json()
        except ValueError:
            body = response.text

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            error = error.get("message")
        message = error if isinstance(error, str) and error else response.text

        if status == 410:
            raise StaleRegistrationError(
                f"{method} {path} returned 410: machine registration is stale",
                status_code=status,
                body=body,
            )

        raise TransportError(
            f"{method} {path} failed with HTTP {status}: {message}",
            status_code=status,
            body=body,
        )

    async def request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request and return the successful response.

        Args:
            method: HTTP method
            path: Path relative to the endpoint
            json_body: JSON payload (sent with Content-Type: application/json)
            params: Query parameters

        Returns:
            httpx.Response with a 2xx status

        Raises:
            StaleRegistrationError: 410 response
            TransportError: network/timeout errors and other non-2xx responses
        """
        try:
            response = await self.client.request(
                method,
                path,
                json=json_body,
                params=params,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {path} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            self._handle_error(method, path, response)

        logger.debug(
            "control_plane_request",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
