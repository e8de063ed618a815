"""
Controller layer for the task view and the authentication forms.

:class:`TaskBoard` owns the per-view state that is never persisted (the
active filters, the search term and the category scope) and one
:class:`OperationLifecycle` per form.  Rendering code reads
:meth:`TaskBoard.visible_tasks` and the lifecycles' phases; it never touches
the store's collections directly.

:class:`AuthForms` does the same for the login and signup forms.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any

from .auth import AuthService
from .lifecycle import (
    DEFAULT_CLOSE_RESET_SECONDS,
    DEFAULT_SUCCESS_DISPLAY_SECONDS,
    OperationLifecycle,
)
from .models import Category, Task, TaskPriority, TaskStatus
from .store import EntityStore
from .validation import (
    validate_category_name,
    validate_login,
    validate_new_task,
    validate_password_change,
    validate_signup,
    validate_task_edit,
)
from .view import (
    ALL_CATEGORIES,
    FilterState,
    TaskGroups,
    category_label,
    derive,
    scope_title,
    split_by_completion,
)

logger = logging.getLogger(__name__)


class TaskBoard:
    """
    State and form controllers for one signed-in task view.

    Args:
        store: The entity store holding tasks and categories.
        auth: Auth service used by the change-password form.
        success_display: Seconds a succeeded form stays visible.
        reset_delay: Seconds between closing a form and clearing it.
        today: Fixed reference date for due-date validation (tests).
    """

    def __init__(
        self,
        store: EntityStore,
        auth: AuthService,
        *,
        success_display: float = DEFAULT_SUCCESS_DISPLAY_SECONDS,
        reset_delay: float = DEFAULT_CLOSE_RESET_SECONDS,
        today: date | None = None,
    ):
        self.store = store
        self.auth = auth
        self.today = today

        self.filters = FilterState()
        self.search_term = ""
        self.category_scope = ALL_CATEGORIES

        timing = {"success_display": success_display, "reset_delay": reset_delay}
        self.add_task = OperationLifecycle(
            "add_task", self._create_task, validator=self._validate_new_task, **timing
        )
        self.edit_task = OperationLifecycle(
            "edit_task", self._update_task, validator=self._validate_edit, **timing
        )
        self.delete_task = OperationLifecycle("delete_task", self._delete_task, **timing)
        self.add_category = OperationLifecycle(
            "add_category",
            self._create_category,
            validator=lambda fields, _: validate_category_name(fields.get("name")),
            **timing,
        )
        self.delete_category = OperationLifecycle(
            "delete_category", self._delete_category, **timing
        )
        self.change_password = OperationLifecycle(
            "change_password",
            self._change_password,
            validator=lambda fields, _: validate_password_change(
                fields.get("old_password"),
                fields.get("new_password"),
                fields.get("confirm_password"),
            ),
            **timing,
        )

    # ------------------------------------------------------------------
    # Derived view
    # ------------------------------------------------------------------

    def visible_tasks(self) -> list[Task]:
        """Tasks to render, excluding any whose category is not loaded."""
        known = {category.id for category in self.store.categories}
        tasks = [task for task in self.store.tasks if task.category_id in known]
        if len(tasks) != len(self.store.tasks):
            logger.debug("Hiding %d task(s) with no loaded category", len(self.store.tasks) - len(tasks))
        return derive(tasks, self.filters, self.search_term, self.category_scope)

    def groups(self) -> TaskGroups:
        return split_by_completion(self.visible_tasks())

    def title(self) -> str:
        return scope_title(self.category_scope, self.store.categories)

    def category_label(self, task: Task) -> str | None:
        return category_label(task, self.store.categories, self.category_scope)

    # ------------------------------------------------------------------
    # Filter state
    # ------------------------------------------------------------------

    def select_category(self, category_scope: str) -> None:
        self.category_scope = category_scope or ALL_CATEGORIES

    def search(self, term: str) -> None:
        self.search_term = term

    def clear_search(self) -> None:
        self.search_term = ""

    def apply_filters(self, filters: FilterState) -> None:
        self.filters = filters

    def toggle_filter(self, value: TaskStatus | TaskPriority) -> None:
        self.filters = self.filters.toggled(value)

    def clear_filters(self) -> None:
        self.filters = self.filters.cleared()

    # ------------------------------------------------------------------
    # Store access outside the form lifecycles
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        await self.store.load_all()
        if self.category_scope != ALL_CATEGORIES and self.store.get_category(self.category_scope) is None:
            self.category_scope = ALL_CATEGORIES

    async def toggle_task(self, task_id: str) -> None:
        await self.store.toggle_task(task_id)

    # ------------------------------------------------------------------
    # Opening forms
    # ------------------------------------------------------------------

    def begin_add_task(self) -> None:
        """Open the add-task form, preselecting the scoped (or first) category."""
        if self.category_scope != ALL_CATEGORIES:
            category_id = self.category_scope
        elif self.store.categories:
            category_id = self.store.categories[0].id
        else:
            category_id = ""
        self.add_task.open(
            title="",
            priority=TaskPriority.MEDIUM,
            due_date="",
            category_id=category_id,
        )

    def begin_edit(self, task: Task) -> None:
        self.edit_task.open(
            task,
            title=task.title,
            priority=task.priority,
            category_id=task.category_id,
        )

    def begin_delete(self, task: Task) -> None:
        self.delete_task.open(task)

    def begin_add_category(self) -> None:
        self.add_category.open(name="")

    def begin_delete_category(self, category: Category) -> None:
        self.delete_category.open(category)

    def begin_change_password(self) -> None:
        self.change_password.open(old_password="", new_password="", confirm_password="")

    # ------------------------------------------------------------------
    # Validators and actions wrapped by the lifecycles
    # ------------------------------------------------------------------

    def _validate_new_task(self, fields: dict[str, Any], _target: Any):
        return validate_new_task(
            fields.get("title"),
            fields.get("due_date"),
            fields.get("category_id"),
            fields.get("priority", TaskPriority.MEDIUM),
            categories=self.store.categories,
            today=self.today,
        )

    def _validate_edit(self, fields: dict[str, Any], _target: Any):
        return validate_task_edit(
            fields.get("title"),
            fields.get("category_id"),
            fields.get("priority", TaskPriority.MEDIUM),
            categories=self.store.categories,
        )

    async def _create_task(self, draft, _target):
        return await self.store.create_task(draft)

    async def _update_task(self, cleaned: dict[str, Any], task: Task):
        return await self.store.update_task(replace(task, **cleaned))

    async def _delete_task(self, _payload, task: Task):
        return await self.store.delete_task(task.id)

    async def _create_category(self, name: str, _target):
        return await self.store.create_category(name)

    async def _delete_category(self, _payload, category: Category):
        result = await self.store.delete_category(category.id)
        if self.category_scope == category.id:
            self.category_scope = ALL_CATEGORIES
        return result

    async def _change_password(self, payload: dict[str, str], _target):
        await self.auth.change_password(payload["old_password"], payload["new_password"])


class AuthForms:
    """
    Login and signup form controllers.

    Server messages (e.g. "Invalid credentials") are shown verbatim on
    these two forms, unlike the generic notice used elsewhere.
    """

    def __init__(
        self,
        auth: AuthService,
        *,
        success_display: float = 0.0,
        reset_delay: float = DEFAULT_CLOSE_RESET_SECONDS,
    ):
        self.auth = auth
        timing = {
            "success_display": success_display,
            "reset_delay": reset_delay,
            "show_server_messages": True,
        }
        self.login = OperationLifecycle(
            "login",
            lambda payload, _: self.auth.login(payload["email"], payload["password"]),
            validator=lambda fields, _: validate_login(fields.get("email"), fields.get("password")),
            **timing,
        )
        self.signup = OperationLifecycle(
            "signup",
            lambda payload, _: self.auth.signup(
                payload["name"], payload["email"], payload["password"]
            ),
            validator=lambda fields, _: validate_signup(
                fields.get("name"),
                fields.get("email"),
                fields.get("password"),
                fields.get("confirm_password"),
            ),
            **timing,
        )

    def begin_login(self) -> None:
        self.login.open(email="", password="")

    def begin_signup(self) -> None:
        self.signup.open(name="", email="", password="", confirm_password="")
