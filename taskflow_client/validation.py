"""
Pre-submission validation for every form the client drives.

Each ``validate_*`` function checks raw form values, collects every field
problem at once and raises a single :class:`ValidationError` mapping field
names to messages.  Validation runs before an operation goes in flight, so a
failing form never produces a network call.

Successful validation returns the cleaned values (stripped strings, parsed
dates, enum members) ready to hand to the store or auth service.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from .errors import ValidationError
from .models import Category, TaskDraft, TaskPriority, parse_due_date

TITLE_MAX_LENGTH = 200
PASSWORD_MIN_LENGTH = 8
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORDS_DO_NOT_MATCH = "Passwords do not match"


def _clean_title(errors: dict[str, str], title: Any) -> str:
    cleaned = title.strip() if isinstance(title, str) else ""
    if not cleaned:
        errors["title"] = "Title is required"
    elif len(cleaned) > TITLE_MAX_LENGTH:
        errors["title"] = f"Title must be {TITLE_MAX_LENGTH} characters or less"
    return cleaned


def _clean_category(
    errors: dict[str, str],
    category_id: Any,
    categories: Iterable[Category] | None,
) -> str:
    cleaned = "" if category_id is None else str(category_id).strip()
    if not cleaned:
        errors["category_id"] = "Category is required"
    elif categories is not None and cleaned not in {cat.id for cat in categories}:
        errors["category_id"] = "Category does not exist"
    return cleaned


def _clean_priority(errors: dict[str, str], priority: Any) -> TaskPriority:
    if priority is None or priority == "":
        return TaskPriority.MEDIUM
    try:
        return TaskPriority(priority)
    except ValueError:
        valid = [p.value for p in TaskPriority]
        errors["priority"] = f"Invalid priority. Must be one of: {valid}"
        return TaskPriority.MEDIUM


def validate_new_task(
    title: Any = None,
    due_date: Any = None,
    category_id: Any = None,
    priority: Any = TaskPriority.MEDIUM,
    *,
    categories: Iterable[Category] | None = None,
    today: date | None = None,
) -> TaskDraft:
    """
    Validate the add-task form.

    The due date is mandatory and must fall on tomorrow or later.

    Args:
        title: Raw title input.
        due_date: ``YYYY-MM-DD`` string or :class:`date`.
        category_id: Selected category identifier.
        priority: Priority value; defaults to Medium.
        categories: Known categories; when given, the selection must be one.
        today: Reference date, defaults to :meth:`date.today`.

    Returns:
        A :class:`TaskDraft` ready for :meth:`EntityStore.create_task`.
    """
    errors: dict[str, str] = {}
    cleaned_title = _clean_title(errors, title)
    cleaned_category = _clean_category(errors, category_id, categories)
    cleaned_priority = _clean_priority(errors, priority)

    parsed_due_date = None
    if due_date is None or due_date == "":
        errors["due_date"] = "Due date is required"
    else:
        parsed_due_date = parse_due_date(due_date)
        if parsed_due_date is None:
            errors["due_date"] = "Invalid date format"
        else:
            tomorrow = (today or date.today()) + timedelta(days=1)
            if parsed_due_date < tomorrow:
                errors["due_date"] = "Due date must be tomorrow or later"

    if errors:
        raise ValidationError(errors)
    return TaskDraft(
        title=cleaned_title,
        due_date=parsed_due_date,
        category_id=cleaned_category,
        priority=cleaned_priority,
    )


def validate_task_edit(
    title: Any = None,
    category_id: Any = None,
    priority: Any = TaskPriority.MEDIUM,
    *,
    categories: Iterable[Category] | None = None,
) -> dict[str, Any]:
    """
    Validate the edit-task form (title, priority and category).

    Returns:
        The cleaned ``title``, ``priority`` and ``category_id`` values.
    """
    errors: dict[str, str] = {}
    cleaned = {
        "title": _clean_title(errors, title),
        "priority": _clean_priority(errors, priority),
        "category_id": _clean_category(errors, category_id, categories),
    }
    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_category_name(name: Any = None) -> str:
    """Validate the add-category form and return the stripped name."""
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise ValidationError({"name": "Category name is required"})
    return cleaned


def _check_new_password(errors: dict[str, str], password: Any, confirm: Any, field: str) -> None:
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        errors[field] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
    if password != (confirm or ""):
        errors["confirm_password"] = PASSWORDS_DO_NOT_MATCH


def validate_password_change(
    old_password: Any = None,
    new_password: Any = None,
    confirm_password: Any = None,
) -> dict[str, str]:
    """
    Validate the change-password form.

    Returns:
        ``{"old_password": ..., "new_password": ...}`` for the auth service.
    """
    errors: dict[str, str] = {}
    if not old_password:
        errors["old_password"] = "Current password is required"
    _check_new_password(errors, new_password, confirm_password, "new_password")
    if errors:
        raise ValidationError(errors)
    return {"old_password": old_password, "new_password": new_password}


def _check_email(errors: dict[str, str], email: Any) -> str:
    cleaned = email.strip() if isinstance(email, str) else ""
    if not EMAIL_PATTERN.match(cleaned):
        errors["email"] = "Please enter a valid email address."
    return cleaned


def validate_login(email: Any = None, password: Any = None) -> dict[str, str]:
    """Validate the login form."""
    errors: dict[str, str] = {}
    cleaned_email = _check_email(errors, email)
    if len(password or "") < PASSWORD_MIN_LENGTH:
        errors["password"] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
    if errors:
        raise ValidationError(errors)
    return {"email": cleaned_email, "password": password}


def validate_signup(
    name: Any = None,
    email: Any = None,
    password: Any = None,
    confirm_password: Any = None,
) -> dict[str, str]:
    """Validate the signup form."""
    errors: dict[str, str] = {}
    cleaned_name = name.strip() if isinstance(name, str) else ""
    if not cleaned_name:
        errors["name"] = "Name is required."
    cleaned_email = _check_email(errors, email)
    _check_new_password(errors, password, confirm_password, "password")
    if errors:
        raise ValidationError(errors)
    return {"name": cleaned_name, "email": cleaned_email, "password": password}


@dataclass(frozen=True)
class PasswordStrength:
    """Strength meter reading: ``score`` 0-4 and its label."""

    score: int
    label: str


_STRENGTH_LABELS = ("", "Weak", "Mild", "Strong", "Very Strong")


def password_strength(password: str) -> PasswordStrength:
    """
    Score a password for the strength meter.

    One point each for: at least 8 characters, mixed case, a digit, and a
    character that is neither letter nor digit.
    """
    if not password:
        return PasswordStrength(0, "")
    score = 0
    if len(password) >= PASSWORD_MIN_LENGTH:
        score += 1
    if re.search(r"[a-z]", password) and re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"[0-9]", password):
        score += 1
    if re.search(r"[^A-Za-z0-9]", password):
        score += 1
    return PasswordStrength(score, _STRENGTH_LABELS[score])
