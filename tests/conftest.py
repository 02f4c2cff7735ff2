"""Pytest fixtures.

The control plane is faked with httpx.MockTransport; every request the
client sends is recorded on the FakeControlPlane.
"""

import httpx
import pytest
import pytest_asyncio

from relay_client import ToolRelay
from relay_config.settings import Settings

from tests.helpers import FakeControlPlane


@pytest.fixture
def settings():
    """Test settings (ignores .env files)."""
    return Settings(
        _env_file=None,
        API_SECRET="sk_test_secret",
        API_ENDPOINT="https://control-plane.test",
    )


@pytest.fixture
def control_plane():
    """Fake control plane."""
    return FakeControlPlane()


@pytest_asyncio.fixture
async def relay(settings, control_plane):
    """Client wired to the fake control plane."""
    client = ToolRelay(settings, transport=httpx.MockTransport(control_plane))
    yield client
    client.stop()
    await client.agent.wait()
    await client.aclose()
