"""
Shared pytest fixtures for the taskflow client test suite.

Unit tests replace ``requests.request`` inside the gateway with a
:class:`ScriptedRequests` double, so they never open a socket.  Integration
tests run the in-memory Flask fake of the remote API on an ephemeral port
and talk to it over real HTTP.

Async client code is driven from ordinary synchronous tests with
``asyncio.run``; each test owns its event loop.

Key Concepts Demonstrated:
- Fixture dependencies (session -> gateway -> store)
- Test data factories backed by Faker
- Monkeypatching the HTTP boundary
- A live fake server started once per test and torn down afterwards
"""

from __future__ import annotations

import os
from datetime import date, timedelta
from typing import Any

import pytest
from faker import Faker

# Set testing environment before importing the client
os.environ["TASKFLOW_ENV"] = "testing"

from shared.test_helpers import create_test_token, make_user_profile
from taskflow_client.auth import AuthService
from taskflow_client.client import TaskflowClient
from taskflow_client.config import TestingConfig
from taskflow_client.gateway import RemoteGateway
from taskflow_client.models import Category, Task, TaskPriority
from taskflow_client.session import SessionProvider
from taskflow_client.store import EntityStore
from tests.fakes.documents import TODAY
from tests.fakes.http import ScriptedRequests
from tests.fakes.remote_api import FakeRemoteApi

fake = Faker()

BASE_URL = "http://remote-api.test"


# -----------------------------------------------------------------------------
# Engine Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def token() -> str:
    return create_test_token()


@pytest.fixture
def session(token) -> SessionProvider:
    """A signed-in in-memory session."""
    provider = SessionProvider()
    provider.set(token, make_user_profile())
    return provider


@pytest.fixture
def scripted(monkeypatch) -> ScriptedRequests:
    """
    Replace the gateway's ``requests.request`` with a scripted double.

    Any request without a queued response fails the test with an
    AssertionError naming the unexpected route.
    """
    double = ScriptedRequests()
    monkeypatch.setattr("taskflow_client.gateway.requests.request", double)
    return double


@pytest.fixture
def gateway(session, scripted) -> RemoteGateway:
    return RemoteGateway(BASE_URL, session, timeout=1)


@pytest.fixture
def store(gateway) -> EntityStore:
    return EntityStore(gateway)


@pytest.fixture
def auth_service(gateway, session) -> AuthService:
    return AuthService(gateway, session)


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def category_factory():
    """
    Factory for :class:`Category` values.

    Example:
        def test_something(category_factory):
            work = category_factory(name="Work")
    """
    counter = {"next": 0}

    def _create(name: str | None = None, category_id: str | None = None) -> Category:
        counter["next"] += 1
        return Category(
            id=category_id or f"list-{counter['next']}",
            name=name or fake.word().capitalize(),
        )

    return _create


@pytest.fixture
def task_factory():
    """
    Factory for :class:`Task` values with unique ids.

    Example:
        def test_something(task_factory):
            task = task_factory(title="Pay rent", priority=TaskPriority.HIGH)
    """
    counter = {"next": 0}

    def _create(
        title: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        category_id: str = "list-1",
        completed: bool = False,
        due_date: date | None = None,
        task_id: str | None = None,
    ) -> Task:
        counter["next"] += 1
        return Task(
            id=task_id or f"task-{counter['next']}",
            title=title or fake.sentence(nb_words=3).rstrip("."),
            priority=priority,
            category_id=category_id,
            due_date=due_date or TODAY + timedelta(days=counter["next"]),
            completed=completed,
        )

    return _create


# -----------------------------------------------------------------------------
# Live Fake Remote API Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def remote_api() -> FakeRemoteApi:
    return FakeRemoteApi()


@pytest.fixture
def live_api(remote_api):
    """Serve :func:`remote_api` over HTTP for the duration of one test."""
    server = remote_api.serve()
    yield server
    server.stop()


@pytest.fixture
def live_client(live_api) -> TaskflowClient:
    """A client configured against the live fake API, not yet signed in."""
    config_class = type("LiveTestingConfig", (TestingConfig,), {"REMOTE_API_URL": live_api.url})
    return TaskflowClient(config_class)


@pytest.fixture
def signed_up_user(remote_api) -> dict[str, Any]:
    """An account that exists on the fake API, with its plain password."""
    password = "Str0ng!pass"
    user = remote_api.add_user(fake.unique.email(), password, fake.name())
    return {**user, "password": password}
