"""
Command-line front end for the taskflow client.

A thin text renderer over :class:`TaskBoard` and :class:`AuthForms`: every
mutating command goes through the same operation lifecycle the graphical
front end uses, so validation messages and failure notices are identical.

Exit codes follow a three-state convention:

- ``0``: the command succeeded
- ``1``: validation failed or the remote API reported a failure
- ``2``: not signed in (or the session expired)
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from collections.abc import Sequence

from . import create_client
from .board import AuthForms, TaskBoard
from .client import TaskflowClient
from .errors import AuthExpired, NetworkError, RemoteError
from .lifecycle import GENERIC_FAILURE_MESSAGE, SESSION_EXPIRED_MESSAGE, OperationLifecycle
from .models import Task, TaskPriority, TaskStatus
from .view import ALL_CATEGORIES, FilterState

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NOT_SIGNED_IN = 2

PRIORITY_CHOICES = [priority.value for priority in TaskPriority]
STATUS_CHOICES = [status.value for status in TaskStatus]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for every ``taskflow`` sub-command."""
    parser = argparse.ArgumentParser(prog="taskflow", description="Manage your tasks from the terminal.")
    parser.add_argument("--env", default=None, help="Configuration name (development, testing, production)")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="Prompted for when omitted")

    signup = commands.add_parser("signup", help="Create an account")
    signup.add_argument("--name", required=True)
    signup.add_argument("--email", required=True)
    signup.add_argument("--password", help="Prompted for when omitted")

    commands.add_parser("logout", help="Forget the stored session")
    commands.add_parser("whoami", help="Show the signed-in user")

    tasks = commands.add_parser("tasks", help="List tasks")
    tasks.add_argument("--status", action="append", choices=STATUS_CHOICES, default=[])
    tasks.add_argument("--priority", action="append", choices=PRIORITY_CHOICES, default=[])
    tasks.add_argument("--search", default="")
    tasks.add_argument("--category", default=ALL_CATEGORIES, help="Category id, or 'all'")
    tasks.add_argument("--show-completed", action="store_true", help="Expand the completed group")

    add = commands.add_parser("add", help="Add a task")
    add.add_argument("title")
    add.add_argument("--due", required=True, help="Due date, YYYY-MM-DD")
    add.add_argument("--category", help="Category id; defaults to the first category")
    add.add_argument("--priority", choices=PRIORITY_CHOICES, default=TaskPriority.MEDIUM.value)

    edit = commands.add_parser("edit", help="Edit a task")
    edit.add_argument("task_id")
    edit.add_argument("--title")
    edit.add_argument("--priority", choices=PRIORITY_CHOICES)
    edit.add_argument("--category")

    toggle = commands.add_parser("toggle", help="Mark a task done or not done")
    toggle.add_argument("task_id")

    remove = commands.add_parser("rm", help="Delete a task")
    remove.add_argument("task_id")

    commands.add_parser("lists", help="List categories")

    add_list = commands.add_parser("add-list", help="Add a category")
    add_list.add_argument("name")

    remove_list = commands.add_parser("rm-list", help="Delete a category and its tasks")
    remove_list.add_argument("list_id")

    commands.add_parser("passwd", help="Change your password")
    return parser


def format_task(task: Task, label: str | None = None) -> str:
    """Render one task as a single line."""
    box = "[x]" if task.completed else "[ ]"
    due = task.due_date.isoformat() if task.due_date else "----------"
    line = f"{box} {task.id:<12} {task.priority.value:<6}  {due}  {task.title}"
    return f"{line}  ({label})" if label else line


def _report(lifecycle: OperationLifecycle, success_message: str) -> int:
    """Print the outcome of a submitted lifecycle and pick the exit code."""
    if lifecycle.field_errors:
        for field_name, message in lifecycle.field_errors.items():
            print(f"{field_name}: {message}", file=sys.stderr)
        return EXIT_FAILED
    if lifecycle.error:
        print(lifecycle.error, file=sys.stderr)
        return EXIT_NOT_SIGNED_IN if lifecycle.error == SESSION_EXPIRED_MESSAGE else EXIT_FAILED
    print(success_message)
    return EXIT_OK


async def _submit(lifecycle: OperationLifecycle, success_message: str) -> int:
    await lifecycle.submit()
    code = _report(lifecycle, success_message)
    if lifecycle.is_open:
        lifecycle.close()
    await lifecycle.settle()
    return code


async def _auth_command(args: argparse.Namespace, forms: AuthForms) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    if args.command == "login":
        forms.login.open(email=args.email, password=password)
        return await _submit(forms.login, f"Logged in as {args.email}.")
    confirm = password if args.password is not None else getpass.getpass("Confirm password: ")
    forms.signup.open(name=args.name, email=args.email, password=password, confirm_password=confirm)
    return await _submit(forms.signup, f"Signed up as {args.email}.")


def _find_task(board: TaskBoard, task_id: str) -> Task | None:
    task = board.store.get_task(task_id)
    if task is None:
        print(f"No task with id {task_id}", file=sys.stderr)
    return task


async def _board_command(args: argparse.Namespace, board: TaskBoard) -> int:
    await board.refresh()
    store = board.store

    if args.command == "tasks":
        board.select_category(args.category)
        board.apply_filters(FilterState.of(args.status, args.priority))
        board.search(args.search)
        groups = board.groups()
        print(board.title())
        if groups.is_empty:
            print("No tasks found!")
            return EXIT_OK
        for task in groups.pending:
            print(format_task(task, board.category_label(task)))
        if groups.completed:
            print(f"Completed ({len(groups.completed)})")
            if args.show_completed:
                for task in groups.completed:
                    print(format_task(task, board.category_label(task)))
        return EXIT_OK

    if args.command == "lists":
        if not store.categories:
            print("No categories yet. Create one with 'taskflow add-list NAME'.")
        for category in store.categories:
            count = sum(1 for task in store.tasks if task.category_id == category.id)
            print(f"{category.id:<12} {category.name} ({count})")
        return EXIT_OK

    if args.command == "toggle":
        if _find_task(board, args.task_id) is None:
            return EXIT_FAILED
        await board.toggle_task(args.task_id)
        print("Task updated.")
        return EXIT_OK

    if args.command == "add":
        board.begin_add_task()
        board.add_task.set_field("title", args.title)
        board.add_task.set_field("due_date", args.due)
        board.add_task.set_field("priority", args.priority)
        if args.category:
            board.add_task.set_field("category_id", args.category)
        return await _submit(board.add_task, "Task created successfully.")

    if args.command == "edit":
        task = _find_task(board, args.task_id)
        if task is None:
            return EXIT_FAILED
        board.begin_edit(task)
        for field_name, value in (("title", args.title), ("priority", args.priority), ("category_id", args.category)):
            if value is not None:
                board.edit_task.set_field(field_name, value)
        return await _submit(board.edit_task, "Task updated successfully.")

    if args.command == "rm":
        task = _find_task(board, args.task_id)
        if task is None:
            return EXIT_FAILED
        board.begin_delete(task)
        return await _submit(board.delete_task, "Task deleted successfully.")

    if args.command == "add-list":
        board.begin_add_category()
        board.add_category.set_field("name", args.name)
        return await _submit(board.add_category, "Category created successfully.")

    if args.command == "rm-list":
        category = store.get_category(args.list_id)
        if category is None:
            print(f"No category with id {args.list_id}", file=sys.stderr)
            return EXIT_FAILED
        board.begin_delete_category(category)
        return await _submit(board.delete_category, f"Category '{category.name}' deleted.")

    if args.command == "passwd":
        board.begin_change_password()
        board.change_password.set_field("old_password", getpass.getpass("Current password: "))
        board.change_password.set_field("new_password", getpass.getpass("New password: "))
        board.change_password.set_field("confirm_password", getpass.getpass("Confirm new password: "))
        return await _submit(board.change_password, "Password updated.")

    raise ValueError(f"Unhandled command: {args.command}")


async def run(args: argparse.Namespace, client: TaskflowClient) -> int:
    """Dispatch a parsed command against *client*."""
    if args.command in ("login", "signup"):
        return await _auth_command(args, AuthForms(client.auth, reset_delay=0))

    if args.command == "logout":
        client.auth.logout()
        print("Logged out. Session cleared.")
        return EXIT_OK

    if not client.session.is_authenticated:
        print("Not signed in. Run 'taskflow login' first.", file=sys.stderr)
        return EXIT_NOT_SIGNED_IN

    if args.command == "whoami":
        user = client.session.user or {}
        print(f"{user.get('name', '?')} <{user.get('email', '?')}>")
        return EXIT_OK

    board = TaskBoard(client.store, client.auth, success_display=0, reset_delay=0)
    return await _board_command(args, board)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``taskflow`` console script."""
    args = build_parser().parse_args(argv)
    client = create_client(args.env)
    try:
        return asyncio.run(run(args, client))
    except AuthExpired:
        print(SESSION_EXPIRED_MESSAGE, file=sys.stderr)
        return EXIT_NOT_SIGNED_IN
    except (RemoteError, NetworkError):
        print(GENERIC_FAILURE_MESSAGE, file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
