"""
Client-side data models for tasks and categories.

Defines immutable value objects for the two entity collections the engine
caches, the enumerations used for filtering, and the wire codec that turns
remote JSON payloads into canonical models (and back).

The remote API names categories "lists" and identifies every document with
a native ``_id`` field.  Ingest maps that field onto the canonical ``id`` so
nothing above the codec ever sees the remote naming.

Both enums inherit from ``str`` as well as ``Enum`` so that their values
serialise naturally to JSON strings and compare directly against the plain
strings returned by the remote API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class TaskPriority(str, Enum):
    """
    Task priority levels.

    Attributes:
        HIGH: Most urgent; sorts first.
        MEDIUM: Normal urgency (default for new tasks).
        LOW: Least urgent; sorts last.
    """

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Sort rank: High=0, Medium=1, Low=2."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {TaskPriority.HIGH: 0, TaskPriority.MEDIUM: 1, TaskPriority.LOW: 2}


class TaskStatus(str, Enum):
    """Completion status as offered by the status filter."""

    COMPLETED = "Completed"
    PENDING = "Pending"


def _remote_id(payload: dict[str, Any]) -> str:
    """Return the canonical identifier for a remote document."""
    raw_id = payload.get("_id", payload.get("id"))
    if raw_id is None or raw_id == "":
        raise ValueError(f"Remote payload has no identifier: {payload!r}")
    return str(raw_id)


def parse_due_date(value: Any) -> date | None:
    """
    Parse a due date as sent by the remote API.

    Accepts a plain ``YYYY-MM-DD`` string or a full ISO-8601 timestamp
    (a trailing ``Z`` is understood); only the calendar date is kept.

    Args:
        value: The raw ``dueDate`` value, a ``date``, or ``None``.

    Returns:
        A :class:`date`, or ``None`` if the input was empty or could not be
        parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_priority(value: Any) -> TaskPriority:
    """Map a remote priority string onto :class:`TaskPriority`."""
    if isinstance(value, TaskPriority):
        return value
    if isinstance(value, str):
        for priority in TaskPriority:
            if priority.value.lower() == value.strip().lower():
                return priority
    logger.warning("Unknown task priority %r; defaulting to Medium", value)
    return TaskPriority.MEDIUM


@dataclass(frozen=True)
class Category:
    """
    A user-defined category ("list" on the wire).

    Attributes:
        id: Remote-assigned identifier.
        name: Display name; not required to be unique.
    """

    id: str
    name: str

    @classmethod
    def from_remote(cls, payload: dict[str, Any]) -> Category:
        """Build a category from a remote ``list`` document."""
        return cls(id=_remote_id(payload), name=str(payload.get("name", "")))


@dataclass(frozen=True)
class Task:
    """
    A single task owned by the signed-in user.

    Attributes:
        id: Remote-assigned identifier.
        title: Short summary; never empty.
        priority: Importance level (see :class:`TaskPriority`).
        category_id: Identifier of the owning :class:`Category`.
        due_date: Calendar due date; mandatory on create, but tolerated as
            ``None`` on ingest.
        completed: Completion flag.
    """

    id: str
    title: str
    priority: TaskPriority
    category_id: str
    due_date: date | None = None
    completed: bool = False

    @property
    def status(self) -> TaskStatus:
        return TaskStatus.COMPLETED if self.completed else TaskStatus.PENDING

    def toggled(self) -> Task:
        """Return a copy with the completion flag flipped."""
        return replace(self, completed=not self.completed)

    @classmethod
    def from_remote(cls, payload: dict[str, Any]) -> Task:
        """
        Build a task from a remote task document.

        Args:
            payload: Raw task dictionary returned by the remote API.

        Returns:
            The normalised :class:`Task`.
        """
        raw_due_date = payload.get("dueDate")
        due_date = parse_due_date(raw_due_date)
        if due_date is None and raw_due_date:
            logger.warning("Unparseable dueDate %r on task %s", raw_due_date, payload.get("_id"))
        raw_list_id = payload.get("listId")
        return cls(
            id=_remote_id(payload),
            title=str(payload.get("title", "")),
            priority=parse_priority(payload.get("priority")),
            category_id="" if raw_list_id is None else str(raw_list_id),
            due_date=due_date,
            completed=bool(payload.get("isCompleted", False)),
        )

    def to_remote(self) -> dict[str, Any]:
        """Serialise the full task for a ``PUT /api/tasks/:id`` body."""
        return {
            "_id": self.id,
            "title": self.title,
            "priority": self.priority.value,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "listId": self.category_id,
            "isCompleted": self.completed,
        }


@dataclass(frozen=True)
class TaskDraft:
    """
    Payload for creating a task; the remote API assigns the identifier.

    Attributes:
        title: Task title.
        due_date: Mandatory due date.
        category_id: Owning category identifier.
        priority: Defaults to Medium.
    """

    title: str
    due_date: date
    category_id: str
    priority: TaskPriority = field(default=TaskPriority.MEDIUM)

    def to_remote(self) -> dict[str, Any]:
        """Serialise for a ``POST /api/tasks`` body."""
        return {
            "title": self.title,
            "priority": self.priority.value,
            "dueDate": self.due_date.isoformat(),
            "listId": self.category_id,
        }


def unwrap_collection(payload: Any, key: str) -> list[dict[str, Any]]:
    """
    Return the list of documents from a collection response.

    The remote API may answer with a bare JSON array or with an object that
    wraps the array under *key* (``"tasks"`` or ``"lists"``).

    Raises:
        ValueError: If the payload has neither shape.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    raise ValueError(f"Unexpected {key} collection payload: {type(payload).__name__}")
