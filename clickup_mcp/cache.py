from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional

from pydantic import BaseModel, Field

from .clickup_client import ClickUpClient

logger = logging.getLogger(__name__)

NodeKind = Literal["space", "folder", "list"]

# 100 tasks per page.
MAX_TASK_PAGES = 10


class HierarchyNode(BaseModel):
    id: str
    name: str
    type: NodeKind
    parent_id: Optional[str] = None
    children: List["HierarchyNode"] = Field(default_factory=list)


class WorkspaceHierarchy(BaseModel):
    team_id: str
    spaces: List[HierarchyNode] = Field(default_factory=list)

    def walk(self) -> Iterator[HierarchyNode]:
        stack = list(reversed(self.spaces))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class WorkspaceTaskCache:
    """
    Short-lived cache of every task in the workspace, keyed for name lookups.

    Lets tools find a task by name when the caller does not say which list
    it lives in. Only `id`, `name` and the home list are kept per task.
    """

    def __init__(
        self,
        client: ClickUpClient,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        max_pages: int = MAX_TASK_PAGES,
    ) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_pages = max_pages
        self._tasks: Optional[List[Dict[str, Any]]] = None
        self._fetched_at: float = 0.0
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        return self._tasks is not None and (self._clock() - self._fetched_at) < self._ttl

    def invalidate(self) -> None:
        self._generation += 1
        self._tasks = None
        self._fetched_at = 0.0

    async def get_tasks(self, force_refresh: bool = False) -> List[Dict[str, Any]]:
        if not force_refresh and self.is_fresh:
            return self._tasks  # type: ignore[return-value]
        async with self._lock:
            if not force_refresh and self.is_fresh:
                return self._tasks  # type: ignore[return-value]
            generation = self._generation
            tasks = await self._fetch()
            # An invalidate() during the fetch means the result may predate a write.
            if generation == self._generation:
                self._tasks = tasks
                self._fetched_at = self._clock()
            return tasks

    async def prewarm(self) -> None:
        try:
            tasks = await self.get_tasks(force_refresh=True)
        except Exception as e:
            logger.warning(f"Workspace task cache prewarm failed: {e}")
            return
        logger.info(f"Completed workspace task cache prewarm ({len(tasks)} tasks)")

    async def lookup(self, name: str) -> List[Dict[str, Any]]:
        """
        All tasks whose name matches `name` case-insensitively, in API order.

        A miss triggers one forced refresh before giving up.
        """
        matches = self._find(await self.get_tasks(), name)
        if not matches and not _recently(self._clock, self._fetched_at):
            matches = self._find(await self.get_tasks(force_refresh=True), name)
        return matches

    @staticmethod
    def _find(tasks: List[Dict[str, Any]], name: str) -> List[Dict[str, Any]]:
        wanted = name.strip().lower()
        return [task for task in tasks if task["name"].strip().lower() == wanted]

    async def _fetch(self) -> List[Dict[str, Any]]:
        path = f"/team/{self._client.team_id}/task"
        tasks: List[Dict[str, Any]] = []
        for page in range(self._max_pages):
            payload = await self._client.get(
                path,
                params={"page": page, "include_closed": True, "subtasks": True},
            )
            batch = payload.get("tasks", [])
            for task in batch:
                task_list = task.get("list") or {}
                tasks.append(
                    {
                        "id": str(task["id"]),
                        "name": str(task.get("name") or ""),
                        "list": {"id": task_list.get("id"), "name": task_list.get("name")},
                    }
                )
            if payload.get("last_page", True) or not batch:
                break
        else:
            logger.warning(f"Workspace task cache stopped after {self._max_pages} pages")
        return tasks


class WorkspaceHierarchyCache:
    """
    TTL cache of the spaces -> folders -> lists tree of the configured workspace.

    Owned by the ClickUp collaborator layer. Tool handlers use `lookup()` to
    turn names into IDs and `lookup_task()` for workspace-wide task names;
    the server only ever calls `prewarm()`, which warms both.
    """

    def __init__(
        self,
        client: ClickUpClient,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        task_cache: Optional[WorkspaceTaskCache] = None,
    ) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._clock = clock
        self._tasks = task_cache if task_cache is not None else WorkspaceTaskCache(client, clock=clock)
        self._hierarchy: Optional[WorkspaceHierarchy] = None
        self._fetched_at: float = 0.0
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        return self._hierarchy is not None and (self._clock() - self._fetched_at) < self._ttl

    def invalidate(self) -> None:
        self._generation += 1
        self._hierarchy = None
        self._fetched_at = 0.0

    def invalidate_tasks(self) -> None:
        self._tasks.invalidate()

    async def get_hierarchy(self, force_refresh: bool = False) -> WorkspaceHierarchy:
        if not force_refresh and self.is_fresh:
            return self._hierarchy  # type: ignore[return-value]
        async with self._lock:
            # Another task may have refreshed while we waited.
            if not force_refresh and self.is_fresh:
                return self._hierarchy  # type: ignore[return-value]
            generation = self._generation
            hierarchy = await self._fetch()
            # An invalidate() during the fetch means the tree may predate a write.
            if generation == self._generation:
                self._hierarchy = hierarchy
                self._fetched_at = self._clock()
            return hierarchy

    async def prewarm(self) -> None:
        """
        Populate the hierarchy and task caches ahead of the first tool call.

        Best effort: failures are logged and swallowed, one cache failing
        does not stop the other.
        """
        logger.info("Starting background workspace cache prewarm")
        await asyncio.gather(self._prewarm_hierarchy(), self._tasks.prewarm())
        logger.info("Completed workspace cache prewarm")

    async def _prewarm_hierarchy(self) -> None:
        try:
            hierarchy = await self.get_hierarchy(force_refresh=True)
        except Exception as e:
            logger.warning(f"Workspace hierarchy prewarm failed: {e}")
            return
        logger.info(f"Completed workspace hierarchy prewarm ({len(hierarchy.spaces)} spaces)")

    async def lookup_task(self, name: str) -> List[Dict[str, Any]]:
        return await self._tasks.lookup(name)

    async def lookup(
        self,
        kind: NodeKind,
        name: str,
        parent_id: Optional[str] = None,
    ) -> Optional[HierarchyNode]:
        """
        Find a space, folder or list by case-insensitive name.

        `parent_id` restricts the search to direct children of that node.
        A miss triggers one forced refresh before giving up.
        """
        node = self._find(await self.get_hierarchy(), kind, name, parent_id)
        if node is None and not _recently(self._clock, self._fetched_at):
            node = self._find(await self.get_hierarchy(force_refresh=True), kind, name, parent_id)
        return node

    @staticmethod
    def _find(
        hierarchy: WorkspaceHierarchy,
        kind: NodeKind,
        name: str,
        parent_id: Optional[str],
    ) -> Optional[HierarchyNode]:
        wanted = name.strip().lower()
        for node in hierarchy.walk():
            if node.type != kind or node.name.strip().lower() != wanted:
                continue
            if parent_id is not None and node.parent_id != parent_id:
                continue
            return node
        return None

    async def _fetch(self) -> WorkspaceHierarchy:
        team_id = self._client.team_id
        payload = await self._client.get(f"/team/{team_id}/space", params={"archived": False})
        spaces = payload.get("spaces", [])
        nodes = await asyncio.gather(*(self._fetch_space(space) for space in spaces))
        return WorkspaceHierarchy(team_id=team_id, spaces=list(nodes))

    async def _fetch_space(self, space: Dict[str, Any]) -> HierarchyNode:
        space_id = str(space["id"])
        folders_payload, lists_payload = await asyncio.gather(
            self._client.get(f"/space/{space_id}/folder", params={"archived": False}),
            self._client.get(f"/space/{space_id}/list", params={"archived": False}),
        )

        children: List[HierarchyNode] = []
        for folder in folders_payload.get("folders", []):
            folder_id = str(folder["id"])
            lists = [
                HierarchyNode(id=str(lst["id"]), name=lst["name"], type="list", parent_id=folder_id)
                for lst in folder.get("lists", [])
            ]
            children.append(
                HierarchyNode(
                    id=folder_id,
                    name=folder["name"],
                    type="folder",
                    parent_id=space_id,
                    children=lists,
                )
            )
        for lst in lists_payload.get("lists", []):
            children.append(
                HierarchyNode(id=str(lst["id"]), name=lst["name"], type="list", parent_id=space_id)
            )

        return HierarchyNode(id=space_id, name=space["name"], type="space", children=children)


def _recently(clock: Callable[[], float], fetched_at: float) -> bool:
    """Fetched less than a second ago."""
    return (clock() - fetched_at) < 1.0
