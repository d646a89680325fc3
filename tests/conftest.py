"""Shared test fixtures for settings, the progress channel, the API client, and the job service."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from outreach_crm.core.config import Settings
from outreach_crm.lib.api_client import CrmApiClient
from outreach_crm.lib.channel import ProgressChannel
from outreach_crm.services.job_service import ImportExportService

API_BASE = "http://api.test/api"


@pytest.fixture
def settings() -> Settings:
    """Test client settings."""
    return Settings(
        api_base_url=API_BASE,
        socket_url="http://socket.test",
        api_token="test-token",
        manager_id="mgr-1",
        reconnection_delay=0.01,
        _env_file=None,
    )  # type: ignore[call-arg]


@pytest.fixture
def sio_client() -> MagicMock:
    """Stand-in for socketio.AsyncClient."""
    client = MagicMock()
    client.connected = False
    client.sid = "sid-123"
    client.connect = AsyncMock()
    client.emit = AsyncMock()
    client.disconnect = AsyncMock()
    client.shutdown = AsyncMock()
    return client


@pytest.fixture
def channel(sio_client: MagicMock) -> ProgressChannel:
    """Progress channel backed by a mocked Socket.IO client."""
    return ProgressChannel(
        "http://socket.test",
        manager_id="mgr-1",
        reconnection_delay=0.01,
        client=sio_client,
    )


@pytest.fixture
async def api() -> AsyncGenerator[CrmApiClient]:
    """CRM API client pointed at the mocked test host."""
    client = CrmApiClient(API_BASE, token="test-token")
    yield client
    await client.aclose()


@pytest.fixture
def service(api: CrmApiClient, channel: ProgressChannel, tmp_path: Path) -> ImportExportService:
    """Job service wired to the mocked channel."""
    return ImportExportService(api, lambda: channel, download_dir=tmp_path / "downloads")
