# tests/test_templates.py

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import select

from taskhub.exceptions import NotFoundError
from taskhub.models import Category, Subtask
from taskhub.services.template import TemplateService


async def test_create_task_from_template_uses_defaults(db, owner) -> None:
    category = Category(name="Work", user_id=owner.id)
    db.add(category)
    await db.commit()

    service = TemplateService(db)
    template = await service.create_template(
        user_id=owner.id,
        name="Weekly report",
        description="Summary for the team",
        task_title_template="Report: week",
        default_priority="high",
        default_due_date_days=3,
        categories=[category],
    )
    await service.add_template_subtask(template.id, "Collect numbers")
    await service.add_template_subtask(template.id, "Write summary")

    task = await service.create_task_from_template(template.id, owner.id, today=date(2024, 6, 1))

    assert task.title == "Report: week"
    assert task.description == "Summary for the team"
    assert task.status == "todo"
    assert task.priority == "high"
    assert task.due_date == date(2024, 6, 4)
    assert task.completed is False
    assert task.owner_id == owner.id
    assert [c.name for c in task.categories] == ["Work"]

    result = await db.execute(
        select(Subtask).where(Subtask.task_id == task.id).order_by(Subtask.position)
    )
    assert [(s.title, s.position, s.completed) for s in result.scalars()] == [
        ("Collect numbers", 1, False),
        ("Write summary", 2, False),
    ]


async def test_create_task_from_bare_template_falls_back(db, owner) -> None:
    service = TemplateService(db)
    template = await service.create_template(user_id=owner.id, name="Chore")

    task = await service.create_task_from_template(template.id, owner.id, today=date(2024, 6, 1))

    assert task.title == "Chore"
    assert task.description == ""
    assert task.priority == "medium"
    assert task.due_date == date(2024, 6, 8)


async def test_zero_due_days_means_today(db, owner) -> None:
    service = TemplateService(db)
    template = await service.create_template(
        user_id=owner.id, name="Standup", default_due_date_days=0
    )
    task = await service.create_task_from_template(template.id, owner.id, today=date(2024, 6, 1))
    assert task.due_date == date(2024, 6, 1)


async def test_missing_template(db, owner) -> None:
    with pytest.raises(NotFoundError):
        await TemplateService(db).create_task_from_template(uuid.uuid4(), owner.id)


async def test_reorder_template_subtasks(db, owner) -> None:
    service = TemplateService(db)
    template = await service.create_template(user_id=owner.id, name="Launch")
    a = await service.add_template_subtask(template.id, "A")
    b = await service.add_template_subtask(template.id, "B")

    reordered = await service.reorder_template_subtasks(template.id, [b.id, a.id])

    assert [(s.title, s.position) for s in reordered] == [("B", 1), ("A", 2)]
