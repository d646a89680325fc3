"""Fixtures for CLI command tests."""

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def _cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CRM_API_BASE_URL", "http://api.test/api")
    monkeypatch.setenv("CRM_SOCKET_URL", "http://socket.test")
    monkeypatch.setenv("CRM_DOWNLOAD_DIR", str(tmp_path / "downloads"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_service() -> MagicMock:
    """Job service stand-in with async operations."""
    service = MagicMock()
    for name in (
        "submit_import",
        "submit_export",
        "get_import_job",
        "get_export_job",
        "cancel_import",
        "wait_for_import",
        "wait_for_export",
        "download_export",
    ):
        setattr(service, name, AsyncMock())
    return service


@pytest.fixture
def session_calls(fake_service: MagicMock) -> Iterator[list[dict[str, Any]]]:
    """Patch job_session to yield ``fake_service`` and record its keyword arguments."""
    calls: list[dict[str, Any]] = []

    @asynccontextmanager
    async def fake_session(settings: Any, **kwargs: Any) -> AsyncIterator[MagicMock]:
        calls.append(kwargs)
        yield fake_service

    with patch("outreach_crm.cli.session.job_session", fake_session):
        yield calls
