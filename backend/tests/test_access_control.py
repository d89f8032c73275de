# tests/test_access_control.py

from __future__ import annotations

import uuid

import pytest

from taskhub.exceptions import (
    DuplicateCollaboratorError,
    ForbiddenError,
    InvalidCollaboratorError,
    NotFoundError,
    ValidationError,
)
from taskhub.models import CollaboratorRole
from taskhub.services.access_control import (
    AccessControlService,
    TaskAction,
    has_sufficient_role,
    parse_role,
    role_rank,
)

ROLES = [CollaboratorRole.VIEWER, CollaboratorRole.EDITOR, CollaboratorRole.ADMIN]


@pytest.mark.parametrize("held", ROLES)
@pytest.mark.parametrize("required", ROLES)
def test_role_lattice_is_monotonic(held: CollaboratorRole, required: CollaboratorRole) -> None:
    assert has_sufficient_role(held, required) == (ROLES.index(held) >= ROLES.index(required))


def test_unknown_role_ranks_below_everything() -> None:
    assert role_rank("owner") == 0
    assert not has_sufficient_role("owner", CollaboratorRole.VIEWER)


def test_parse_role_is_case_insensitive_and_strict() -> None:
    assert parse_role("EDITOR") is CollaboratorRole.EDITOR
    assert parse_role(" admin ") is CollaboratorRole.ADMIN
    assert parse_role(None, default=CollaboratorRole.VIEWER) is CollaboratorRole.VIEWER

    with pytest.raises(ValidationError, match="Invalid role"):
        parse_role("superuser")
    with pytest.raises(ValidationError, match="Role is required"):
        parse_role(None)


async def test_has_access_ignores_ownership(db, owner, other_user, make_task) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)

    assert not await access.has_access(task.id, owner.id)
    assert not await access.has_access(task.id, other_user.id)

    await access.add_collaborator(task, other_user, CollaboratorRole.VIEWER, owner)
    assert await access.has_access(task.id, other_user.id)


@pytest.mark.parametrize("held", ROLES)
async def test_has_role_exact_or_higher(db, owner, other_user, make_task, held) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)
    await access.add_collaborator(task, other_user, held, owner)

    for required in ROLES:
        expected = ROLES.index(held) >= ROLES.index(required)
        assert await access.has_role(task.id, other_user.id, required) is expected


async def test_has_role_false_without_row(db, owner, other_user, make_task) -> None:
    task = await make_task(owner)
    assert not await AccessControlService(db).has_role(
        task.id, other_user.id, CollaboratorRole.VIEWER
    )


async def test_add_collaborator_records_grantor(db, owner, other_user, make_task) -> None:
    task = await make_task(owner)
    collaborator = await AccessControlService(db).add_collaborator(
        task, other_user, CollaboratorRole.EDITOR, owner
    )

    assert collaborator.task_id == task.id
    assert collaborator.user_id == other_user.id
    assert collaborator.role == "editor"
    assert collaborator.added_by_id == owner.id
    assert collaborator.added_at is not None


async def test_second_grant_for_same_pair_is_rejected(db, owner, other_user, make_task) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)
    await access.add_collaborator(task, other_user, CollaboratorRole.VIEWER, owner)

    with pytest.raises(DuplicateCollaboratorError):
        await access.add_collaborator(task, other_user, CollaboratorRole.ADMIN, owner)

    collaborators = await access.get_task_collaborators(task.id)
    assert [c.role for c in collaborators] == ["viewer"]


async def test_owner_cannot_be_collaborator(db, owner, make_task) -> None:
    task = await make_task(owner)
    with pytest.raises(InvalidCollaboratorError):
        await AccessControlService(db).add_collaborator(
            task, owner, CollaboratorRole.ADMIN, owner
        )


async def test_update_and_remove_collaborator(db, owner, other_user, make_task) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)
    collaborator = await access.add_collaborator(task, other_user, CollaboratorRole.VIEWER, owner)

    updated = await access.update_role(collaborator.id, CollaboratorRole.ADMIN)
    assert updated.role == "admin"
    assert await access.has_role(task.id, other_user.id, CollaboratorRole.ADMIN)

    await access.remove_collaborator(collaborator.id)
    assert not await access.has_access(task.id, other_user.id)


async def test_missing_collaborator_raises_not_found(db) -> None:
    access = AccessControlService(db)
    with pytest.raises(NotFoundError):
        await access.update_role(uuid.uuid4(), CollaboratorRole.EDITOR)
    with pytest.raises(NotFoundError):
        await access.remove_collaborator(uuid.uuid4())


async def test_shared_tasks_lists_collaborations(db, owner, other_user, make_task) -> None:
    shared = await make_task(owner, title="Shared")
    await make_task(owner, title="Private")
    access = AccessControlService(db)
    await access.add_collaborator(shared, other_user, CollaboratorRole.VIEWER, owner)

    tasks = await access.get_shared_tasks(other_user.id)
    assert [t.title for t in tasks] == ["Shared"]
    assert len(await access.get_user_collaborations(other_user.id)) == 1


# --- authorize_task -------------------------------------------------------


EXPECTED_PERMISSIONS = {
    CollaboratorRole.VIEWER: {TaskAction.VIEW},
    CollaboratorRole.EDITOR: {TaskAction.VIEW, TaskAction.EDIT},
    CollaboratorRole.ADMIN: {TaskAction.VIEW, TaskAction.EDIT, TaskAction.DELETE, TaskAction.SHARE},
}


@pytest.mark.parametrize("role", ROLES)
async def test_collaborator_permissions(db, owner, other_user, make_task, role) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)
    await access.add_collaborator(task, other_user, role, owner)

    for action in TaskAction:
        allowed = await access.can_perform(task, other_user.id, action)
        assert allowed is (action in EXPECTED_PERMISSIONS[role]), (role, action)


async def test_owner_may_do_anything(db, owner, make_task) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)
    for action in TaskAction:
        assert await access.authorize_task(task.id, owner.id, action) is not None


async def test_authorize_task_errors(db, owner, other_user, make_task) -> None:
    task = await make_task(owner)
    access = AccessControlService(db)

    with pytest.raises(ForbiddenError, match="permission to view"):
        await access.authorize_task(task.id, other_user.id, TaskAction.VIEW)

    with pytest.raises(NotFoundError):
        await access.authorize_task(uuid.uuid4(), owner.id)
