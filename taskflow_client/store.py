"""
Entity store: the canonical local copy of tasks and categories.

The store is the only component that mutates the two collections.  Every
mutation follows the same pessimistic recipe:

1. issue the remote call;
2. on success, reconcile the local cache with the server;
3. only then publish the new collections and notify listeners.

Reconciliation is explicit per mutation type:

=====================  =================================================
Mutation               Reconciliation after a successful remote call
=====================  =================================================
``create_task``        refetch all tasks
``update_task``        refetch all tasks
``toggle_task``        refetch all tasks
``create_category``    refetch all categories
``delete_task``        remove the task locally
``delete_category``    remove the category and every task in it locally
=====================  =================================================

Mutation responses are never merged; server-computed fields always come
from a refetch.  Deletions leave no server-derived state behind.

If any awaited call fails, the error propagates unchanged and the published
collections are left exactly as they were. Nothing is applied
optimistically, so there is nothing to roll back.

There are no locks: the client runs on one event loop, and keeping at most
one mutation per collection in flight is the caller's job (controls are
disabled while an operation is in flight).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from .errors import RemoteError, ValidationError
from .gateway import RemoteGateway
from .models import Category, Task, TaskDraft, unwrap_collection

logger = logging.getLogger(__name__)

TASKS_PATH = "/api/tasks"
LISTS_PATH = "/api/lists"

StoreListener = Callable[["EntityStore"], None]


class EntityStore:
    """
    Locally cached tasks and categories reconciled against the remote API.

    Args:
        gateway: The remote gateway used for every call.
    """

    def __init__(self, gateway: RemoteGateway):
        self._gateway = gateway
        self._tasks: tuple[Task, ...] = ()
        self._categories: tuple[Category, ...] = ()
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    def get_task(self, task_id: str) -> Task | None:
        return next((task for task in self._tasks if task.id == task_id), None)

    def get_category(self, category_id: str) -> Category | None:
        return next((cat for cat in self._categories if cat.id == category_id), None)

    def category_name(self, category_id: str) -> str | None:
        category = self.get_category(category_id)
        return category.name if category else None

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _publish(
        self,
        *,
        tasks: tuple[Task, ...] | None = None,
        categories: tuple[Category, ...] | None = None,
    ) -> None:
        if tasks is not None:
            self._tasks = tasks
        if categories is not None:
            self._categories = categories
        for listener in list(self._listeners):
            listener(self)

    @staticmethod
    def _ingest_tasks(payload: Any) -> tuple[Task, ...]:
        try:
            return tuple(Task.from_remote(doc) for doc in unwrap_collection(payload, "tasks"))
        except (ValueError, TypeError, AttributeError) as exc:
            raise RemoteError(502, f"Malformed tasks response: {exc}") from exc

    @staticmethod
    def _ingest_categories(payload: Any) -> tuple[Category, ...]:
        try:
            return tuple(Category.from_remote(doc) for doc in unwrap_collection(payload, "lists"))
        except (ValueError, TypeError, AttributeError) as exc:
            raise RemoteError(502, f"Malformed lists response: {exc}") from exc

    async def _fetch_tasks(self) -> tuple[Task, ...]:
        return self._ingest_tasks(await self._gateway.request("GET", TASKS_PATH))

    async def _fetch_categories(self) -> tuple[Category, ...]:
        return self._ingest_categories(await self._gateway.request("GET", LISTS_PATH))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_all(self) -> tuple[tuple[Task, ...], tuple[Category, ...]]:
        """
        Replace both collections with a fresh copy from the remote API.

        Tasks and categories are fetched concurrently.  Both fetches are
        allowed to finish; if either failed, the first failure is raised
        and the cache is left untouched.

        Returns:
            The new ``(tasks, categories)`` pair.
        """
        results = await asyncio.gather(
            self._fetch_tasks(),
            self._fetch_categories(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        tasks, categories = results
        self._publish(tasks=tasks, categories=categories)
        logger.info("Loaded %d tasks in %d categories", len(tasks), len(categories))
        return tasks, categories

    # ------------------------------------------------------------------
    # Task mutations
    # ------------------------------------------------------------------

    async def create_task(self, draft: TaskDraft) -> tuple[Task, ...]:
        """Create a task remotely, then refetch every task."""
        await self._gateway.request("POST", TASKS_PATH, draft.to_remote())
        tasks = await self._fetch_tasks()
        self._publish(tasks=tasks)
        return tasks

    async def update_task(self, task: Task) -> tuple[Task, ...]:
        """Replace a task remotely with *task*, then refetch every task."""
        await self._gateway.request("PUT", f"{TASKS_PATH}/{task.id}", task.to_remote())
        tasks = await self._fetch_tasks()
        self._publish(tasks=tasks)
        return tasks

    async def toggle_task(self, task_id: str) -> tuple[Task, ...]:
        """
        Flip a task's completion flag remotely, then refetch every task.

        Raises:
            ValidationError: If *task_id* is not in the local cache.  No
                request is made in that case.
        """
        task = self.get_task(task_id)
        if task is None:
            raise ValidationError({"task_id": "Task does not exist"})
        return await self.update_task(task.toggled())

    async def delete_task(self, task_id: str) -> tuple[Task, ...]:
        """Delete a task remotely, then drop it from the local cache."""
        await self._gateway.request("DELETE", f"{TASKS_PATH}/{task_id}")
        tasks = tuple(task for task in self._tasks if task.id != task_id)
        self._publish(tasks=tasks)
        return tasks

    # ------------------------------------------------------------------
    # Category mutations
    # ------------------------------------------------------------------

    async def create_category(self, name: str) -> tuple[Category, ...]:
        """Create a category remotely, then refetch every category."""
        await self._gateway.request("POST", LISTS_PATH, {"name": name})
        categories = await self._fetch_categories()
        self._publish(categories=categories)
        return categories

    async def delete_category(self, category_id: str) -> tuple[Category, ...]:
        """
        Delete a category remotely, then cascade the removal locally.

        The server deletes the category's tasks with it; the same cascade is
        applied to the local cache so the two agree without a refetch.
        """
        await self._gateway.request("DELETE", f"{LISTS_PATH}/{category_id}")
        categories = tuple(cat for cat in self._categories if cat.id != category_id)
        tasks = tuple(task for task in self._tasks if task.category_id != category_id)
        removed = len(self._tasks) - len(tasks)
        self._publish(tasks=tasks, categories=categories)
        logger.info("Deleted category %s and %d of its tasks", category_id, removed)
        return categories
