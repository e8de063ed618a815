"""
Integration tests for the fake remote API itself.

The server-side cascade is one of two independent halves of the
category-delete invariant (the client applies its own local cascade), so
it is checked here without the client in the loop.
"""

from __future__ import annotations

import pytest

from shared.test_helpers import auth_headers, create_test_token

pytestmark = pytest.mark.integration


@pytest.fixture
def api_client(remote_api):
    with remote_api.app.test_client() as test_client:
        yield test_client


@pytest.fixture
def owner(remote_api):
    user = remote_api.add_user("owner@example.com", "Passw0rd!", "Owner")
    return user, auth_headers(remote_api.issue_token(user))


def test_deleting_list_deletes_exactly_its_tasks(remote_api, api_client, owner):
    # Arrange
    user, headers = owner
    home = remote_api.add_list(user, "Home")
    work = remote_api.add_list(user, "Work")
    remote_api.add_task(user, home, "Dishes")
    remote_api.add_task(user, home, "Laundry")
    deploy = remote_api.add_task(user, work, "Deploy")

    # Act
    response = api_client.delete(f"/api/lists/{home['_id']}", headers=headers)

    # Assert
    assert response.status_code == 204
    assert response.data == b""
    remaining = api_client.get("/api/tasks", headers=headers).get_json()["tasks"]
    assert [task["_id"] for task in remaining] == [deploy["_id"]]


def test_requests_without_valid_token_are_rejected(remote_api, api_client, owner):
    assert api_client.get("/api/tasks").status_code == 401
    expired = auth_headers(create_test_token(email="owner@example.com", expired=True))
    assert api_client.get("/api/tasks", headers=expired).status_code == 401


def test_users_only_see_their_own_documents(remote_api, api_client, owner):
    user, headers = owner
    other = remote_api.add_user("other@example.com", "Passw0rd!")
    remote_api.add_list(other, "Private")
    remote_api.add_list(user, "Mine")

    lists = api_client.get("/api/lists", headers=headers).get_json()

    assert [doc["name"] for doc in lists] == ["Mine"]


def test_task_validation_rejects_foreign_list(remote_api, api_client, owner):
    _, headers = owner
    other = remote_api.add_user("other@example.com", "Passw0rd!")
    foreign = remote_api.add_list(other, "Private")

    response = api_client.post(
        "/api/tasks",
        json={"title": "x", "priority": "High", "dueDate": "2030-01-01", "listId": foreign["_id"]},
        headers=headers,
    )

    assert response.status_code == 400


def test_fail_next_injects_one_failure(remote_api, api_client, owner):
    _, headers = owner
    remote_api.fail_next("GET", "/api/lists", 503)

    assert api_client.get("/api/lists", headers=headers).status_code == 503
    assert api_client.get("/api/lists", headers=headers).status_code == 200
