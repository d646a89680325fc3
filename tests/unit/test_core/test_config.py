"""Unit tests for core configuration module."""

import pytest
from pydantic import ValidationError

from outreach_crm.core.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRM_API_BASE_URL", "https://crm.example.com/api")
    monkeypatch.setenv("CRM_SOCKET_URL", "https://crm.example.com")


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings load from CRM_-prefixed environment variables."""
        monkeypatch.setenv("CRM_API_TOKEN", "secret")
        monkeypatch.setenv("CRM_MANAGER_ID", "mgr-7")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.api_base_url == "https://crm.example.com/api"
        assert settings.socket_url == "https://crm.example.com"
        assert settings.api_token == "secret"
        assert settings.manager_id == "mgr-7"

    def test_settings_defaults(self) -> None:
        """Default values are applied correctly."""
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.api_token is None
        assert settings.manager_id is None
        assert settings.request_timeout == 30.0
        assert settings.socket_path == "/socket.io"
        assert settings.socket_connect_timeout == 20.0
        assert settings.reconnection_delay == 1.5
        assert settings.download_dir == "./downloads"
        assert settings.log_level == "INFO"
        assert settings.log_dir is None

    @pytest.mark.parametrize("variable", ["CRM_API_BASE_URL", "CRM_SOCKET_URL"])
    def test_urls_are_required(self, monkeypatch: pytest.MonkeyPatch, variable: str) -> None:
        """Both the REST and channel URLs must be configured."""
        monkeypatch.delenv(variable)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_trailing_slash_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRM_API_BASE_URL", "https://crm.example.com/api/")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.api_base_url == "https://crm.example.com/api"

    def test_socket_path_suffix_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A socket URL pasted with its /socket.io path is reduced to the host."""
        monkeypatch.setenv("CRM_SOCKET_URL", "https://crm.example.com/socket.io/")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.socket_url == "https://crm.example.com"

    @pytest.mark.parametrize("variable", ["CRM_API_BASE_URL", "CRM_SOCKET_URL"])
    def test_url_scheme_validated(self, monkeypatch: pytest.MonkeyPatch, variable: str) -> None:
        monkeypatch.setenv(variable, "ftp://crm.example.com")
        with pytest.raises(ValidationError, match="must use http:// or https://"):
            Settings(_env_file=None)  # type: ignore[call-arg]

    @pytest.mark.parametrize("variable", ["CRM_REQUEST_TIMEOUT", "CRM_RECONNECTION_DELAY", "CRM_SOCKET_CONNECT_TIMEOUT"])
    def test_positive_durations(self, monkeypatch: pytest.MonkeyPatch, variable: str) -> None:
        """Duration fields reject zero."""
        monkeypatch.setenv(variable, "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_get_settings(self) -> None:
        assert isinstance(get_settings(), Settings)
