# tests/test_subtasks.py

from __future__ import annotations

from taskhub.services.subtask import SubtaskService


async def test_subtasks_are_appended_in_order(db, owner, make_task) -> None:
    task = await make_task(owner)
    service = SubtaskService(db)

    first = await service.create_subtask(task.id, "Outline")
    second = await service.create_subtask(task.id, "Draft")
    third = await service.create_subtask(task.id, "Edit")

    assert [first.position, second.position, third.position] == [1, 2, 3]
    assert [s.title for s in await service.get_task_subtasks(task.id)] == ["Outline", "Draft", "Edit"]


async def test_explicit_position_is_kept(db, owner, make_task) -> None:
    task = await make_task(owner)
    subtask = await SubtaskService(db).create_subtask(task.id, "Urgent", position=7)
    assert subtask.position == 7


async def test_reorder_assigns_one_based_positions(db, owner, make_task) -> None:
    task = await make_task(owner)
    other_task = await make_task(owner, title="Other")
    service = SubtaskService(db)
    a = await service.create_subtask(task.id, "A")
    b = await service.create_subtask(task.id, "B")
    c = await service.create_subtask(task.id, "C")
    foreign = await service.create_subtask(other_task.id, "Foreign")

    reordered = await service.reorder_subtasks(task.id, [c.id, foreign.id, a.id, b.id])

    assert [(s.title, s.position) for s in reordered] == [("C", 1), ("A", 3), ("B", 4)]
    assert foreign.position == 1


async def test_completed_at_tracks_completion(db, owner, make_task) -> None:
    task = await make_task(owner)
    service = SubtaskService(db)
    subtask = await service.create_subtask(task.id, "Check")
    assert subtask.completed_at is None

    subtask = await service.update_subtask(subtask, completed=True)
    assert subtask.completed is True
    assert subtask.completed_at is not None

    subtask = await service.update_subtask(subtask, completed=False)
    assert subtask.completed_at is None


async def test_task_completion_follows_subtasks(db, owner, make_task) -> None:
    task = await make_task(owner)
    service = SubtaskService(db)
    a = await service.create_subtask(task.id, "A")
    b = await service.create_subtask(task.id, "B")

    await service.update_subtask(a, completed=True)
    assert await service.sync_task_completion(task) is False
    assert task.completed is False

    await service.update_subtask(b, completed=True)
    assert await service.sync_task_completion(task) is True
    assert task.completed is True

    await service.update_subtask(b, completed=False)
    await service.sync_task_completion(task)
    assert task.completed is False


async def test_task_without_subtasks_is_left_alone(db, owner, make_task) -> None:
    task = await make_task(owner, completed=True)
    assert await SubtaskService(db).sync_task_completion(task) is False
    assert task.completed is True
