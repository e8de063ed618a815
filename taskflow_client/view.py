"""
View engine: derive the displayable task list from store state.

:func:`derive` is a pure function re-run in full whenever any of its inputs
change.  The pipeline order is fixed:

1. category scope
2. status filter
3. priority filter
4. case-insensitive title search
5. stable sort by priority (High, Medium, Low)

An empty status or priority set means "no constraint" on that dimension.
Sorting relies on :func:`sorted` being stable, so tasks of equal priority
never swap places between renders.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .models import Category, Task, TaskPriority, TaskStatus

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class FilterState:
    """
    Active status and priority filters.

    Attributes:
        status: Statuses to keep; empty keeps every task.
        priority: Priorities to keep; empty keeps every task.
    """

    status: frozenset[TaskStatus] = field(default_factory=frozenset)
    priority: frozenset[TaskPriority] = field(default_factory=frozenset)

    @classmethod
    def of(
        cls,
        status: Iterable[TaskStatus | str] = (),
        priority: Iterable[TaskPriority | str] = (),
    ) -> FilterState:
        """Build a filter state from enum members or their string values."""
        return cls(
            status=frozenset(TaskStatus(value) for value in status),
            priority=frozenset(TaskPriority(value) for value in priority),
        )

    @property
    def is_active(self) -> bool:
        return bool(self.status or self.priority)

    def toggled(self, value: TaskStatus | TaskPriority) -> FilterState:
        """Return a copy with *value* added to, or removed from, its set."""
        if isinstance(value, TaskStatus):
            return FilterState(status=self.status ^ {value}, priority=self.priority)
        if isinstance(value, TaskPriority):
            return FilterState(status=self.status, priority=self.priority ^ {value})
        raise TypeError(f"Cannot filter on {value!r}")

    def cleared(self) -> FilterState:
        return FilterState()


def _in_scope(task: Task, category_scope: str) -> bool:
    return category_scope == ALL_CATEGORIES or task.category_id == category_scope


def derive(
    tasks: Iterable[Task],
    filters: FilterState,
    search_term: str = "",
    category_scope: str = ALL_CATEGORIES,
) -> list[Task]:
    """
    Compute the ordered list of tasks to display.

    Args:
        tasks: Tasks in store order.
        filters: Active status and priority filters.
        search_term: Substring matched case-insensitively against titles;
            empty matches everything.
        category_scope: :data:`ALL_CATEGORIES` or a category identifier.

    Returns:
        A new list; the input is never modified.
    """
    needle = search_term.casefold()
    visible = [
        task
        for task in tasks
        if _in_scope(task, category_scope)
        and (not filters.status or task.status in filters.status)
        and (not filters.priority or task.priority in filters.priority)
        and needle in task.title.casefold()
    ]
    return sorted(visible, key=lambda task: task.priority.rank)


@dataclass(frozen=True)
class TaskGroups:
    """Derived tasks split for display; completed starts collapsed."""

    pending: tuple[Task, ...]
    completed: tuple[Task, ...]
    completed_collapsed: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.pending and not self.completed


def split_by_completion(tasks: Sequence[Task], *, completed_collapsed: bool = True) -> TaskGroups:
    """Split derived tasks into pending and completed, keeping their order."""
    return TaskGroups(
        pending=tuple(task for task in tasks if not task.completed),
        completed=tuple(task for task in tasks if task.completed),
        completed_collapsed=completed_collapsed,
    )


def scope_title(category_scope: str, categories: Iterable[Category]) -> str:
    """Heading for the current scope."""
    if category_scope == ALL_CATEGORIES:
        return "All Tasks"
    for category in categories:
        if category.id == category_scope:
            return category.name
    return "Tasks"


def category_label(task: Task, categories: Iterable[Category], category_scope: str) -> str | None:
    """Category name to show next to a task; only the all-scope shows one."""
    if category_scope != ALL_CATEGORIES:
        return None
    for category in categories:
        if category.id == task.category_id:
            return category.name
    return None
