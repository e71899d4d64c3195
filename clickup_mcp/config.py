from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the ClickUp MCP server.

    Values are read once per process from environment variables (no prefix),
    falling back to a `.env` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ClickUp credentials
    clickup_api_key: str
    clickup_team_id: str
    clickup_api_base_url: str = "https://api.clickup.com/api"
    request_timeout: float = 30.0

    # Tool exposure
    enabled_tools: Annotated[List[str], NoDecode] = Field(default_factory=list)
    disabled_tools: Annotated[List[str], NoDecode] = Field(default_factory=list)
    document_support: bool = False

    # Workspace hierarchy and task-name caches
    hierarchy_cache_ttl: float = 300.0
    task_cache_ttl: float = 60.0

    # Server
    log_level: str = "INFO"
    transport: str = "stdio"  # "stdio" or "http"
    server_host: str = "0.0.0.0"
    server_port: int = 3231

    @field_validator("enabled_tools", "disabled_tools", mode="before")
    @classmethod
    def _split_tool_names(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        names: List[str] = []
        for item in value:
            name = str(item).strip()
            if name and name not in names:
                names.append(name)
        return names

    @field_validator("transport")
    @classmethod
    def _check_transport(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ("stdio", "http"):
            raise ValueError(f"Unsupported transport '{value}'. Use 'stdio' or 'http'.")
        return normalized

    @field_validator("clickup_api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings from environment."""
    return Settings()  # type: ignore[call-arg]
