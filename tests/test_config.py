"""Tests for clickup_mcp.config module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from clickup_mcp.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "CLICKUP_API_KEY",
        "CLICKUP_TEAM_ID",
        "CLICKUP_API_BASE_URL",
        "ENABLED_TOOLS",
        "DISABLED_TOOLS",
        "DOCUMENT_SUPPORT",
        "HIERARCHY_CACHE_TTL",
        "TASK_CACHE_TTL",
        "LOG_LEVEL",
        "TRANSPORT",
        "SERVER_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.unit
class TestSettings:
    def test_defaults(self, settings: Settings) -> None:
        assert settings.clickup_api_base_url == "https://api.clickup.com/api"
        assert settings.enabled_tools == []
        assert settings.disabled_tools == []
        assert settings.document_support is False
        assert settings.hierarchy_cache_ttl == 300.0
        assert settings.task_cache_ttl == 60.0
        assert settings.transport == "stdio"
        assert settings.server_port == 3231

    def test_missing_credentials(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_tool_lists_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLICKUP_API_KEY", "pk_env")
        monkeypatch.setenv("CLICKUP_TEAM_ID", "123")
        monkeypatch.setenv("ENABLED_TOOLS", " get_task, create_task ,,get_task")
        monkeypatch.setenv("DISABLED_TOOLS", "delete_task")
        monkeypatch.setenv("DOCUMENT_SUPPORT", "true")

        settings = Settings(_env_file=None)

        assert settings.enabled_tools == ["get_task", "create_task"]
        assert settings.disabled_tools == ["delete_task"]
        assert settings.document_support is True

    def test_empty_tool_list_is_empty(self, make_settings) -> None:
        assert make_settings(enabled_tools="").enabled_tools == []
        assert make_settings(disabled_tools=" , ").disabled_tools == []

    def test_tool_list_accepts_sequence(self, make_settings) -> None:
        assert make_settings(disabled_tools=["a", " b "]).disabled_tools == ["a", "b"]

    def test_transport_normalized(self, make_settings) -> None:
        assert make_settings(transport="HTTP").transport == "http"

    def test_transport_rejected(self, make_settings) -> None:
        with pytest.raises(ValidationError, match="Unsupported transport"):
            make_settings(transport="websocket")

    def test_base_url_trailing_slash_stripped(self, make_settings) -> None:
        settings = make_settings(clickup_api_base_url="https://example.test/api/")
        assert settings.clickup_api_base_url == "https://example.test/api"

    def test_get_settings_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLICKUP_API_KEY", "pk_env")
        monkeypatch.setenv("CLICKUP_TEAM_ID", "123")
        assert get_settings() is get_settings()
        assert get_settings().clickup_team_id == "123"
