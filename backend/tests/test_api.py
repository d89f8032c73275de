# tests/test_api.py

from __future__ import annotations

import uuid
from datetime import date, timedelta

from httpx import AsyncClient

from .conftest import TEST_PASSWORD, auth_headers

API = "/api/v1"


async def create_task(client: AsyncClient, user, **fields) -> dict:
    payload = {"title": "Plan sprint", "due_date": "2024-06-01", **fields}
    response = await client.post(f"{API}/tasks/", json=payload, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def share(client: AsyncClient, owner, task_id: str, username: str, role: str | None = "viewer"):
    body = {"username": username} if role is None else {"username": username, "role": role}
    return await client.post(
        f"{API}/tasks/{task_id}/collaborators", json=body, headers=auth_headers(owner)
    )


# --- auth -----------------------------------------------------------------


async def test_register_login_and_me(client: AsyncClient) -> None:
    response = await client.post(
        f"{API}/auth/register",
        json={"username": "carol", "email": "carol@example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    assert response.json()["username"] == "carol"
    assert "password_hash" not in response.json()

    duplicate = await client.post(
        f"{API}/auth/register",
        json={"username": "carol", "email": "other@example.com", "password": "s3cret-pass"},
    )
    assert duplicate.status_code == 400

    bad_login = await client.post(
        f"{API}/auth/login", json={"username": "carol", "password": "wrong-pass"}
    )
    assert bad_login.status_code == 401

    login = await client.post(
        f"{API}/auth/login", json={"username": "carol", "password": "s3cret-pass"}
    )
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


async def test_login_with_fixture_user(client: AsyncClient, owner) -> None:
    response = await client.post(
        f"{API}/auth/login", json={"username": owner.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200


async def test_requests_without_valid_token_are_unauthorized(client: AsyncClient) -> None:
    assert (await client.get(f"{API}/tasks/")).status_code == 401
    response = await client.get(f"{API}/tasks/", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


async def test_health(client: AsyncClient) -> None:
    response = await client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


async def test_readiness_checks_database_and_uploads(client: AsyncClient) -> None:
    response = await client.get(f"{API}/health/ready", headers={"X-Request-ID": "probe-1"})
    assert response.status_code == 200
    assert response.json()["checks"] == {"database": "healthy", "upload_dir": "healthy"}
    assert response.headers["X-Request-ID"] == "probe-1"


# --- tasks ----------------------------------------------------------------


async def test_task_crud_for_owner(client: AsyncClient, owner) -> None:
    task = await create_task(client, owner, priority="high")
    assert task["status"] == "todo"
    assert task["owner_id"] == str(owner.id)

    listed = await client.get(f"{API}/tasks/", headers=auth_headers(owner))
    assert [t["id"] for t in listed.json()] == [task["id"]]

    updated = await client.put(
        f"{API}/tasks/{task['id']}",
        json={"title": "Plan next sprint", "status": "in_progress"},
        headers=auth_headers(owner),
    )
    assert updated.status_code == 200
    assert updated.json()["title"] == "Plan next sprint"
    assert updated.json()["priority"] == "high"

    deleted = await client.delete(f"{API}/tasks/{task['id']}", headers=auth_headers(owner))
    assert deleted.status_code == 204
    missing = await client.get(f"{API}/tasks/{task['id']}", headers=auth_headers(owner))
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Task not found", "code": "NOT_FOUND"}


async def test_task_list_only_shows_own_tasks(client: AsyncClient, owner, other_user) -> None:
    await create_task(client, owner, title="Mine")
    await create_task(client, other_user, title="Theirs")

    response = await client.get(f"{API}/tasks/", headers=auth_headers(owner))
    assert [t["title"] for t in response.json()] == ["Mine"]


async def test_foreign_categories_are_ignored(client: AsyncClient, owner, other_user) -> None:
    mine = await client.post(
        f"{API}/categories/", json={"name": "Work"}, headers=auth_headers(owner)
    )
    theirs = await client.post(
        f"{API}/categories/", json={"name": "Private"}, headers=auth_headers(other_user)
    )

    task = await create_task(
        client, owner, category_ids=[mine.json()["id"], theirs.json()["id"]]
    )
    assert [c["name"] for c in task["categories"]] == ["Work"]


async def test_non_recurring_create_clears_recurrence_fields(client: AsyncClient, owner) -> None:
    task = await create_task(
        client, owner, is_recurring=False, recurrence_pattern="weekly", recurrence_interval=2
    )
    assert task["recurrence_pattern"] is None
    assert task["recurrence_interval"] is None


async def test_stranger_is_forbidden(client: AsyncClient, owner, other_user) -> None:
    task = await create_task(client, owner)
    response = await client.get(f"{API}/tasks/{task['id']}", headers=auth_headers(other_user))
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


# --- sharing --------------------------------------------------------------


async def test_sharing_flow(client: AsyncClient, owner, other_user) -> None:
    task = await create_task(client, owner)
    task_url = f"{API}/tasks/{task['id']}"

    added = await share(client, owner, task["id"], other_user.username, role=None)
    assert added.status_code == 201
    assert added.json()["role"] == "viewer"
    assert added.json()["username"] == other_user.username
    collaborator_id = added.json()["id"]

    assert (await client.get(task_url, headers=auth_headers(other_user))).status_code == 200
    edit = await client.put(task_url, json={"title": "Hijack"}, headers=auth_headers(other_user))
    assert edit.status_code == 403
    assert edit.json()["detail"] == "You don't have permission to edit this task"

    shared = await client.get(f"{API}/shared-tasks/", headers=auth_headers(other_user))
    assert [t["id"] for t in shared.json()] == [task["id"]]

    promoted = await client.put(
        f"{task_url}/collaborators/{collaborator_id}",
        json={"role": "EDITOR"},
        headers=auth_headers(owner),
    )
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "editor"

    edit = await client.put(task_url, json={"title": "Edited"}, headers=auth_headers(other_user))
    assert edit.status_code == 200
    assert (await client.delete(task_url, headers=auth_headers(other_user))).status_code == 403

    removed = await client.delete(
        f"{task_url}/collaborators/{collaborator_id}", headers=auth_headers(owner)
    )
    assert removed.status_code == 204
    assert (await client.get(task_url, headers=auth_headers(other_user))).status_code == 403


async def test_sharing_errors(client: AsyncClient, owner, other_user, make_user) -> None:
    task = await create_task(client, owner)

    assert (await share(client, owner, task["id"], other_user.username)).status_code == 201

    duplicate = await share(client, owner, task["id"], other_user.username, "admin")
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "DUPLICATE_COLLABORATOR"

    self_share = await share(client, owner, task["id"], owner.username)
    assert self_share.status_code == 400
    assert self_share.json()["code"] == "INVALID_COLLABORATOR"

    bad_role = await share(client, owner, task["id"], (await make_user("dave")).username, "boss")
    assert bad_role.status_code == 400

    unknown_user = await share(client, owner, task["id"], "nobody")
    assert unknown_user.status_code == 400

    # A viewer cannot share onward
    erin = await make_user("erin")
    onward = await share(client, other_user, task["id"], erin.username)
    assert onward.status_code == 403


async def test_admin_collaborator_can_share_and_delete(
    client: AsyncClient, owner, other_user, make_user
) -> None:
    task = await create_task(client, owner)
    await share(client, owner, task["id"], other_user.username, "admin")
    frank = await make_user("frank")

    assert (await share(client, other_user, task["id"], frank.username)).status_code == 201
    deleted = await client.delete(f"{API}/tasks/{task['id']}", headers=auth_headers(other_user))
    assert deleted.status_code == 204


# --- recurrence -----------------------------------------------------------


async def test_create_instance_endpoint(client: AsyncClient, owner, other_user) -> None:
    plain = await create_task(client, owner)
    response = await client.post(
        f"{API}/tasks/{plain['id']}/create-instance", headers=auth_headers(owner)
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "This is not a recurring task"

    recurring = await create_task(
        client,
        owner,
        due_date="2024-06-01",
        reminder_date="2024-05-29",
        is_recurring=True,
        recurrence_pattern="daily",
        recurrence_interval=2,
    )
    url = f"{API}/tasks/{recurring['id']}"

    created = await client.post(f"{url}/create-instance", headers=auth_headers(owner))
    assert created.status_code == 201
    instance = created.json()
    assert instance["due_date"] == "2024-06-03"
    assert instance["reminder_date"] == "2024-05-31"
    assert instance["parent_task_id"] == recurring["id"]
    assert instance["completed"] is False

    instances = await client.get(f"{url}/instances", headers=auth_headers(owner))
    assert [i["id"] for i in instances.json()] == [instance["id"]]

    # Only the owner may trigger an instance
    await share(client, owner, recurring["id"], other_user.username, "admin")
    forbidden = await client.post(f"{url}/create-instance", headers=auth_headers(other_user))
    assert forbidden.status_code == 403


# --- subtasks, comments, attachments -------------------------------------


async def test_subtasks_require_editor(client: AsyncClient, owner, other_user) -> None:
    task = await create_task(client, owner)
    url = f"{API}/tasks/{task['id']}/subtasks"
    await share(client, owner, task["id"], other_user.username, "viewer")

    denied = await client.post(url, json={"title": "Step"}, headers=auth_headers(other_user))
    assert denied.status_code == 403

    first = await client.post(url, json={"title": "Step 1"}, headers=auth_headers(owner))
    second = await client.post(url, json={"title": "Step 2"}, headers=auth_headers(owner))
    assert [first.json()["position"], second.json()["position"]] == [1, 2]

    reordered = await client.put(
        f"{url}/reorder",
        json={"subtask_ids": [second.json()["id"], first.json()["id"]]},
        headers=auth_headers(owner),
    )
    assert [s["title"] for s in reordered.json()] == ["Step 2", "Step 1"]

    for subtask in (first.json(), second.json()):
        done = await client.put(
            f"{url}/{subtask['id']}", json={"completed": True}, headers=auth_headers(owner)
        )
        assert done.status_code == 200

    refreshed = await client.get(f"{API}/tasks/{task['id']}", headers=auth_headers(owner))
    assert refreshed.json()["completed"] is True


async def test_subtask_from_another_task_is_rejected(client: AsyncClient, owner) -> None:
    task = await create_task(client, owner)
    other = await create_task(client, owner, title="Other")
    subtask = await client.post(
        f"{API}/tasks/{other['id']}/subtasks", json={"title": "Elsewhere"}, headers=auth_headers(owner)
    )

    response = await client.put(
        f"{API}/tasks/{task['id']}/subtasks/{subtask.json()['id']}",
        json={"title": "Moved"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 400


async def test_comment_permissions(client: AsyncClient, owner, other_user) -> None:
    task = await create_task(client, owner)
    url = f"{API}/tasks/{task['id']}/comments"
    await share(client, owner, task["id"], other_user.username, "viewer")

    owner_comment = await client.post(url, json={"content": "Kickoff"}, headers=auth_headers(owner))
    viewer_reply = await client.post(
        url,
        json={"content": "Sounds good", "parent_comment_id": owner_comment.json()["id"]},
        headers=auth_headers(other_user),
    )
    assert viewer_reply.status_code == 201

    threads = await client.get(url, headers=auth_headers(other_user))
    assert len(threads.json()) == 1
    assert [r["content"] for r in threads.json()[0]["replies"]] == ["Sounds good"]

    foreign_edit = await client.put(
        f"{url}/{owner_comment.json()['id']}",
        json={"content": "Changed"},
        headers=auth_headers(other_user),
    )
    assert foreign_edit.status_code == 403

    own_edit = await client.put(
        f"{url}/{viewer_reply.json()['id']}",
        json={"content": "Sounds great"},
        headers=auth_headers(other_user),
    )
    assert own_edit.status_code == 200
    assert own_edit.json()["edited_at"] is not None

    # The task owner may delete anyone's comment
    deleted = await client.delete(
        f"{url}/{viewer_reply.json()['id']}", headers=auth_headers(owner)
    )
    assert deleted.status_code == 204


async def test_attachment_upload_download_delete(client: AsyncClient, owner) -> None:
    task = await create_task(client, owner)
    url = f"{API}/tasks/{task['id']}/attachments"

    uploaded = await client.post(
        url,
        files={"file": ("notes.txt", b"meeting notes", "text/plain")},
        headers=auth_headers(owner),
    )
    assert uploaded.status_code == 201
    attachment = uploaded.json()
    assert attachment["file_name"] == "notes.txt"
    assert attachment["file_size"] == len(b"meeting notes")

    downloaded = await client.get(f"{url}/{attachment['id']}", headers=auth_headers(owner))
    assert downloaded.status_code == 200
    assert downloaded.content == b"meeting notes"

    deleted = await client.delete(f"{url}/{attachment['id']}", headers=auth_headers(owner))
    assert deleted.status_code == 204
    assert (await client.get(url, headers=auth_headers(owner))).json() == []


async def test_empty_upload_is_rejected(client: AsyncClient, owner) -> None:
    task = await create_task(client, owner)
    response = await client.post(
        f"{API}/tasks/{task['id']}/attachments",
        files={"file": ("empty.txt", b"", "text/plain")},
        headers=auth_headers(owner),
    )
    assert response.status_code == 400


# --- templates and dashboard ---------------------------------------------


async def test_template_create_task_endpoint(client: AsyncClient, owner, other_user) -> None:
    created = await client.post(
        f"{API}/templates/",
        json={"name": "Onboarding", "default_priority": "low", "default_due_date_days": 2},
        headers=auth_headers(owner),
    )
    assert created.status_code == 201
    template_id = created.json()["id"]

    subtask = await client.post(
        f"{API}/templates/{template_id}/subtasks",
        json={"title": "Create accounts"},
        headers=auth_headers(owner),
    )
    assert subtask.json()["position"] == 1

    forbidden = await client.post(
        f"{API}/templates/{template_id}/create-task", headers=auth_headers(other_user)
    )
    assert forbidden.status_code == 403

    task = await client.post(
        f"{API}/templates/{template_id}/create-task", headers=auth_headers(owner)
    )
    assert task.status_code == 201
    assert task.json()["title"] == "Onboarding"
    assert task.json()["priority"] == "low"
    assert task.json()["due_date"] == (date.today() + timedelta(days=2)).isoformat()

    subtasks = await client.get(
        f"{API}/tasks/{task.json()['id']}/subtasks", headers=auth_headers(owner)
    )
    assert [s["title"] for s in subtasks.json()] == ["Create accounts"]


async def test_dashboard_stats(client: AsyncClient, owner, other_user) -> None:
    today = date.today()
    await create_task(client, owner, due_date=(today - timedelta(days=1)).isoformat())
    await create_task(client, owner, due_date=today.isoformat())
    await create_task(client, owner, due_date=(today + timedelta(days=3)).isoformat())
    await create_task(client, owner, due_date=(today + timedelta(days=7)).isoformat())
    await create_task(
        client, owner, due_date=(today - timedelta(days=2)).isoformat(), status="completed"
    )
    await create_task(client, other_user, due_date=today.isoformat())

    response = await client.get(f"{API}/dashboard/stats", headers=auth_headers(owner))
    assert response.status_code == 200
    assert response.json() == {
        "total_tasks": 5,
        "tasks_by_status": {"todo": 4, "completed": 1},
        "overdue_tasks": 1,
        "tasks_due_today": 1,
        "tasks_due_this_week": 1,
    }


async def test_unknown_task_returns_not_found(client: AsyncClient, owner) -> None:
    response = await client.get(f"{API}/tasks/{uuid.uuid4()}", headers=auth_headers(owner))
    assert response.status_code == 404
