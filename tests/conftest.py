from __future__ import annotations

from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest

from clickup_mcp.cache import HierarchyNode, WorkspaceHierarchyCache
from clickup_mcp.clickup_client import ClickUpClient
from clickup_mcp.config import Settings


def _make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "clickup_api_key": "pk_test",
        "clickup_team_id": "9000",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_settings():
    """Build Settings without reading the environment's .env file."""
    return _make_settings


@pytest.fixture
def settings() -> Settings:
    return _make_settings()


@pytest.fixture
def client() -> AsyncMock:
    """ClickUp client double; async methods are AsyncMocks."""
    mock = AsyncMock(spec=ClickUpClient)
    mock.team_id = "9000"
    return mock


@pytest.fixture
def cache() -> AsyncMock:
    """Hierarchy cache double that resolves any list name to list 'L1'."""
    mock = AsyncMock(spec=WorkspaceHierarchyCache)

    async def lookup(kind, name, parent_id=None):
        ids = {"space": "S1", "folder": "F1", "list": "L1"}
        return HierarchyNode(id=ids[kind], name=name, type=kind, parent_id=parent_id)

    mock.lookup.side_effect = lookup
    mock.lookup_task.return_value = []
    return mock
