"""Tests for clickup_mcp.cache module."""

from __future__ import annotations

import asyncio
from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest

from clickup_mcp.cache import WorkspaceHierarchyCache, WorkspaceTaskCache
from clickup_mcp.clickup_client import ClickUpClient

RESPONSES: Dict[str, Any] = {
    "/team/9000/space": {"spaces": [{"id": "S1", "name": "Engineering"}]},
    "/space/S1/folder": {
        "folders": [
            {"id": "F1", "name": "Backend", "lists": [{"id": "L1", "name": "Sprint"}]},
        ]
    },
    "/space/S1/list": {"lists": [{"id": "L2", "name": "Inbox"}]},
    "/team/9000/task": {
        "tasks": [{"id": "t1", "name": "Write docs", "list": {"id": "L1", "name": "Sprint"}}],
        "last_page": True,
    },
}


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def api() -> AsyncMock:
    mock = AsyncMock(spec=ClickUpClient)
    mock.team_id = "9000"

    async def get(path, params=None):
        return RESPONSES[path]

    mock.get.side_effect = get
    return mock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hierarchy_cache(api, clock) -> WorkspaceHierarchyCache:
    return WorkspaceHierarchyCache(api, ttl_seconds=60.0, clock=clock)


@pytest.mark.unit
class TestGetHierarchy:
    @pytest.mark.asyncio
    async def test_builds_tree(self, hierarchy_cache: WorkspaceHierarchyCache) -> None:
        hierarchy = await hierarchy_cache.get_hierarchy()

        [space] = hierarchy.spaces
        assert hierarchy.team_id == "9000"
        assert [child.id for child in space.children] == ["F1", "L2"]
        folder, folderless = space.children
        assert folder.parent_id == "S1"
        assert folder.children[0].parent_id == "F1"
        assert folderless.parent_id == "S1"
        assert [node.id for node in hierarchy.walk()] == ["S1", "F1", "L1", "L2"]

    @pytest.mark.asyncio
    async def test_fresh_within_ttl(self, hierarchy_cache, api, clock) -> None:
        await hierarchy_cache.get_hierarchy()
        clock.now += 30
        await hierarchy_cache.get_hierarchy()

        assert api.get.await_count == 3
        assert hierarchy_cache.is_fresh

    @pytest.mark.asyncio
    async def test_refetch_after_ttl(self, hierarchy_cache, api, clock) -> None:
        await hierarchy_cache.get_hierarchy()
        clock.now += 61
        assert not hierarchy_cache.is_fresh
        await hierarchy_cache.get_hierarchy()

        assert api.get.await_count == 6

    @pytest.mark.asyncio
    async def test_invalidate(self, hierarchy_cache, api) -> None:
        await hierarchy_cache.get_hierarchy()
        hierarchy_cache.invalidate()
        assert not hierarchy_cache.is_fresh
        await hierarchy_cache.get_hierarchy()

        assert api.get.await_count == 6

    @pytest.mark.asyncio
    async def test_invalidate_during_refresh_is_not_lost(self, clock) -> None:
        release = asyncio.Event()
        names = ["Old", "New"]
        api = AsyncMock(spec=ClickUpClient)
        api.team_id = "9000"

        async def get(path, params=None):
            if path == "/team/9000/space":
                await release.wait()
                return {"spaces": [{"id": "S1", "name": names.pop(0)}]}
            return {"folders": [], "lists": []}

        api.get.side_effect = get
        cache = WorkspaceHierarchyCache(api, ttl_seconds=60.0, clock=clock)

        pending = asyncio.create_task(cache.get_hierarchy())
        await asyncio.sleep(0)
        cache.invalidate()
        release.set()
        stale = await pending

        assert [space.name for space in stale.spaces] == ["Old"]
        assert not cache.is_fresh
        fresh = await cache.get_hierarchy()
        assert [space.name for space in fresh.spaces] == ["New"]


@pytest.mark.unit
class TestLookup:
    @pytest.mark.asyncio
    async def test_case_insensitive(self, hierarchy_cache) -> None:
        node = await hierarchy_cache.lookup("list", "  sprint ")
        assert node is not None and node.id == "L1"

    @pytest.mark.asyncio
    async def test_parent_filter(self, hierarchy_cache) -> None:
        assert await hierarchy_cache.lookup("folder", "Backend", parent_id="S1") is not None
        assert await hierarchy_cache.lookup("folder", "Backend", parent_id="S9") is None

    @pytest.mark.asyncio
    async def test_kind_must_match(self, hierarchy_cache) -> None:
        assert await hierarchy_cache.lookup("space", "Sprint") is None

    @pytest.mark.asyncio
    async def test_miss_refreshes_once_when_stale_enough(self, hierarchy_cache, api, clock) -> None:
        await hierarchy_cache.get_hierarchy()
        clock.now += 5
        RESPONSES["/space/S1/list"] = {"lists": [{"id": "L2", "name": "Inbox"}, {"id": "L3", "name": "New"}]}
        try:
            node = await hierarchy_cache.lookup("list", "New")
        finally:
            RESPONSES["/space/S1/list"] = {"lists": [{"id": "L2", "name": "Inbox"}]}

        assert node is not None and node.id == "L3"
        assert api.get.await_count == 6

    @pytest.mark.asyncio
    async def test_miss_right_after_fetch_does_not_refetch(self, hierarchy_cache, api) -> None:
        assert await hierarchy_cache.lookup("list", "Missing") is None
        assert api.get.await_count == 3


@pytest.mark.unit
class TestPrewarm:
    @pytest.mark.asyncio
    async def test_prewarm_fills_both_caches(self, hierarchy_cache, api) -> None:
        await hierarchy_cache.prewarm()

        assert hierarchy_cache.is_fresh
        [task] = await hierarchy_cache.lookup_task("write docs")
        assert task["id"] == "t1"
        assert api.get.await_count == 4

    @pytest.mark.asyncio
    async def test_invalidate_tasks_leaves_hierarchy(self, api, clock) -> None:
        tasks = WorkspaceTaskCache(api, clock=clock)
        cache = WorkspaceHierarchyCache(api, clock=clock, task_cache=tasks)
        await cache.prewarm()

        cache.invalidate_tasks()

        assert not tasks.is_fresh
        assert cache.is_fresh

    @pytest.mark.asyncio
    async def test_prewarm_failure_is_logged(self, hierarchy_cache, api, caplog) -> None:
        api.get.side_effect = RuntimeError("network down")

        with caplog.at_level("WARNING", logger="clickup_mcp.cache"):
            await hierarchy_cache.prewarm()

        assert not hierarchy_cache.is_fresh
        assert "Workspace hierarchy prewarm failed: network down" in caplog.text
        assert "Workspace task cache prewarm failed: network down" in caplog.text


@pytest.fixture
def task_cache(api, clock) -> WorkspaceTaskCache:
    return WorkspaceTaskCache(api, ttl_seconds=60.0, clock=clock)


def _page(*tasks, last_page=True):
    return {"tasks": list(tasks), "last_page": last_page}


@pytest.mark.unit
class TestWorkspaceTaskCache:
    @pytest.mark.asyncio
    async def test_pages_until_last_page(self, task_cache, api) -> None:
        api.get.side_effect = [
            _page({"id": 1, "name": "Plan", "list": {"id": "L1", "name": "Sprint"}, "status": {}}, last_page=False),
            _page({"id": "2", "name": "Ship"}),
        ]

        tasks = await task_cache.get_tasks()

        assert tasks == [
            {"id": "1", "name": "Plan", "list": {"id": "L1", "name": "Sprint"}},
            {"id": "2", "name": "Ship", "list": {"id": None, "name": None}},
        ]
        assert [call.args[0] for call in api.get.await_args_list] == ["/team/9000/task"] * 2
        params = api.get.await_args_list[1].kwargs["params"]
        assert params == {"page": 1, "include_closed": True, "subtasks": True}

    @pytest.mark.asyncio
    async def test_stops_at_page_limit(self, api, clock, caplog) -> None:
        api.get.side_effect = None
        api.get.return_value = _page({"id": "x", "name": "Loop"}, last_page=False)
        cache = WorkspaceTaskCache(api, clock=clock, max_pages=2)

        with caplog.at_level("WARNING", logger="clickup_mcp.cache"):
            tasks = await cache.get_tasks()

        assert len(tasks) == 2
        assert api.get.await_count == 2
        assert "Workspace task cache stopped after 2 pages" in caplog.text

    @pytest.mark.asyncio
    async def test_fresh_within_ttl(self, task_cache, api, clock) -> None:
        await task_cache.get_tasks()
        clock.now += 30
        await task_cache.get_tasks()
        assert api.get.await_count == 1

        clock.now += 31
        await task_cache.get_tasks()
        assert api.get.await_count == 2

    @pytest.mark.asyncio
    async def test_lookup_case_insensitive(self, task_cache) -> None:
        [task] = await task_cache.lookup("  WRITE docs ")
        assert task == {"id": "t1", "name": "Write docs", "list": {"id": "L1", "name": "Sprint"}}

    @pytest.mark.asyncio
    async def test_lookup_returns_every_match(self, task_cache, api) -> None:
        api.get.side_effect = [
            _page({"id": "a", "name": "Retro"}, {"id": "b", "name": "Plan"}, {"id": "c", "name": "retro"}),
        ]

        matches = await task_cache.lookup("Retro")

        assert [task["id"] for task in matches] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_miss_refreshes_once_when_stale_enough(self, task_cache, api, clock) -> None:
        api.get.side_effect = [
            _page({"id": "a", "name": "Plan"}),
            _page({"id": "a", "name": "Plan"}, {"id": "b", "name": "Fresh task"}),
        ]
        await task_cache.get_tasks()
        clock.now += 5

        [task] = await task_cache.lookup("Fresh task")

        assert task["id"] == "b"
        assert api.get.await_count == 2

    @pytest.mark.asyncio
    async def test_miss_right_after_fetch_does_not_refetch(self, task_cache, api) -> None:
        assert await task_cache.lookup("Missing") == []
        assert api.get.await_count == 1

    @pytest.mark.asyncio
    async def test_invalidate_during_refresh_is_not_lost(self, task_cache, api) -> None:
        release = asyncio.Event()
        names = ["Old", "New"]

        async def get(path, params=None):
            await release.wait()
            return _page({"id": "t1", "name": names.pop(0)})

        api.get.side_effect = get

        pending = asyncio.create_task(task_cache.get_tasks())
        await asyncio.sleep(0)
        task_cache.invalidate()
        release.set()
        stale = await pending

        assert [task["name"] for task in stale] == ["Old"]
        assert not task_cache.is_fresh
        assert [task["name"] for task in await task_cache.get_tasks()] == ["New"]

    @pytest.mark.asyncio
    async def test_prewarm_failure_is_logged(self, task_cache, api, caplog) -> None:
        api.get.side_effect = RuntimeError("rate limited")

        with caplog.at_level("WARNING", logger="clickup_mcp.cache"):
            await task_cache.prewarm()

        assert not task_cache.is_fresh
        assert "Workspace task cache prewarm failed: rate limited" in caplog.text
