from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from organizer.models import (
    Project,
    TaskCreate,
    TaskOrderItem,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    utcnow,
)
from organizer.query import MAX_UPCOMING_DAYS
from organizer.results import AccessDenied, Err, NotFound, Ok, ReferentialConflict, ValidationFailure
from organizer.services import TaskService
from organizer.services.common import completion_time

from .helpers import add_task


async def add_project(session, user, title: str = "Home") -> Project:
    project = Project(user_id=user.id, title=title)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


def test_completion_time_stamps_keeps_and_clears() -> None:
    now = datetime(2024, 5, 1, 12, 0)
    earlier = datetime(2024, 4, 1)

    assert completion_time("todo", "done", None, done="done", now=now) == now
    assert completion_time("done", "done", earlier, done="done", now=now) == earlier
    assert completion_time("done", "done", None, done="done", now=now) == now
    assert completion_time("done", "todo", earlier, done="done", now=now) is None
    assert completion_time(None, "todo", None, done="done", now=now) is None


@pytest.mark.asyncio
async def test_create_applies_defaults(session, alice) -> None:
    result = await TaskService(session).create(alice.id, TaskCreate(title="Pay rent"))

    assert isinstance(result, Ok)
    task = result.value
    assert task.id is not None
    assert task.user_id == alice.id
    assert task.status == TaskStatus.TODO
    assert task.priority == TaskPriority.MEDIUM
    assert task.order == 0
    assert task.tags == []
    assert task.completed_at is None


@pytest.mark.asyncio
async def test_create_completed_task_is_stamped(session, alice) -> None:
    result = await TaskService(session).create(
        alice.id, TaskCreate(title="Already done", status=TaskStatus.COMPLETED)
    )

    assert isinstance(result, Ok)
    assert result.value.completed_at is not None


@pytest.mark.asyncio
async def test_create_rejects_blank_title(session, alice) -> None:
    result = await TaskService(session).create(alice.id, TaskCreate(title="   "))

    assert isinstance(result, Err)
    assert isinstance(result.error, ValidationFailure)


@pytest.mark.asyncio
async def test_create_checks_project_reference(session, alice, bob) -> None:
    service = TaskService(session)
    bobs_project = await add_project(session, bob)

    missing = await service.create(alice.id, TaskCreate(title="x", project_id=9999))
    foreign = await service.create(alice.id, TaskCreate(title="x", project_id=bobs_project.id))

    assert isinstance(missing, Err) and isinstance(missing.error, NotFound)
    assert missing.error.message == "Project not found"
    assert isinstance(foreign, Err) and isinstance(foreign.error, AccessDenied)
    assert foreign.error.message == "Project access denied"


@pytest.mark.asyncio
async def test_create_checks_parent_reference(session, alice, bob) -> None:
    service = TaskService(session)
    bobs_task = await add_task(session, bob, "bob's")

    missing = await service.create(alice.id, TaskCreate(title="x", parent_task_id=9999))
    foreign = await service.create(alice.id, TaskCreate(title="x", parent_task_id=bobs_task.id))

    assert isinstance(missing, Err) and isinstance(missing.error, NotFound)
    assert missing.error.message == "Parent task not found"
    assert isinstance(foreign, Err) and isinstance(foreign.error, AccessDenied)


@pytest.mark.asyncio
async def test_get_lists_sub_task_ids(session, alice, bob) -> None:
    service = TaskService(session)
    parent = await add_task(session, alice, "parent")
    first = await add_task(session, alice, "first", parent_task_id=parent.id)
    second = await add_task(session, alice, "second", parent_task_id=parent.id)

    result = await service.get(alice.id, parent.id)
    assert isinstance(result, Ok)
    task, sub_ids = result.value
    assert task.title == "parent"
    assert sub_ids == [first.id, second.id]

    hidden = await service.get(bob.id, parent.id)
    assert isinstance(hidden, Err) and isinstance(hidden.error, NotFound)


@pytest.mark.asyncio
async def test_completed_at_follows_status_transitions(session, alice) -> None:
    service = TaskService(session)
    task = (await service.create(alice.id, TaskCreate(title="t"))).value
    assert task.completed_at is None

    done = await service.update(alice.id, task.id, TaskUpdate(status=TaskStatus.COMPLETED))
    assert isinstance(done, Ok)
    stamped = done.value.completed_at
    assert stamped is not None

    # Unrelated edits keep the stamp.
    renamed = await service.update(alice.id, task.id, TaskUpdate(title="renamed"))
    assert renamed.value.completed_at == stamped

    again = await service.update(alice.id, task.id, TaskUpdate(status=TaskStatus.COMPLETED))
    assert again.value.completed_at == stamped

    reopened = await service.update(alice.id, task.id, TaskUpdate(status=TaskStatus.IN_PROGRESS))
    assert reopened.value.completed_at is None


@pytest.mark.asyncio
async def test_update_rejects_null_for_required_field(session, alice) -> None:
    task = await add_task(session, alice, "t")

    result = await TaskService(session).update(alice.id, task.id, TaskUpdate(status=None))

    assert isinstance(result, Err) and isinstance(result.error, ValidationFailure)


@pytest.mark.asyncio
async def test_update_can_clear_nullable_fields(session, alice) -> None:
    task = await add_task(session, alice, "t", due_date=datetime(2024, 1, 1), description="d")

    result = await TaskService(session).update(
        alice.id, task.id, TaskUpdate(due_date=None, description=None)
    )

    assert isinstance(result, Ok)
    assert result.value.due_date is None
    assert result.value.description is None


@pytest.mark.asyncio
async def test_update_refuses_parent_cycle(session, alice) -> None:
    service = TaskService(session)
    a = await add_task(session, alice, "a")
    b = await add_task(session, alice, "b", parent_task_id=a.id)

    self_parent = await service.update(alice.id, a.id, TaskUpdate(parent_task_id=a.id))
    cycle = await service.update(alice.id, a.id, TaskUpdate(parent_task_id=b.id))

    assert isinstance(self_parent, Err) and isinstance(self_parent.error, ValidationFailure)
    assert isinstance(cycle, Err) and isinstance(cycle.error, ValidationFailure)


@pytest.mark.asyncio
async def test_update_of_foreign_task_is_not_found(session, alice, bob) -> None:
    task = await add_task(session, bob, "bob's")

    result = await TaskService(session).update(alice.id, task.id, TaskUpdate(title="mine now"))

    assert isinstance(result, Err) and isinstance(result.error, NotFound)


@pytest.mark.asyncio
async def test_delete_is_blocked_by_sub_tasks(session, alice) -> None:
    service = TaskService(session)
    a = await add_task(session, alice, "a")
    b = await add_task(session, alice, "b", parent_task_id=a.id)

    blocked = await service.delete(alice.id, a.id)
    assert isinstance(blocked, Err) and isinstance(blocked.error, ReferentialConflict)
    assert blocked.error.message == "Cannot delete task with sub-tasks"

    session.expunge_all()
    parent = (await service.get(alice.id, a.id)).value[0]
    child, grandchildren = (await service.get(alice.id, b.id)).value
    assert (parent.title, parent.parent_task_id) == ("a", None)
    assert (child.title, child.parent_task_id, child.status) == ("b", a.id, TaskStatus.TODO)
    assert grandchildren == []

    assert isinstance(await service.delete(alice.id, b.id), Ok)
    assert isinstance(await service.delete(alice.id, a.id), Ok)
    assert isinstance(await service.get(alice.id, a.id), Err)


@pytest.mark.asyncio
async def test_reorder_skips_foreign_and_missing_ids(session, alice, bob) -> None:
    service = TaskService(session)
    t1 = await add_task(session, alice, "t1")
    t2 = await add_task(session, bob, "t2")

    result = await service.reorder(
        alice.id,
        [
            TaskOrderItem(id=t1.id, order=5),
            TaskOrderItem(id=t2.id, order=7),
            TaskOrderItem(id=9999, order=1),
        ],
    )

    assert isinstance(result, Ok)
    assert result.value == 1
    await session.refresh(t1)
    await session.refresh(t2)
    assert t1.order == 5
    assert t2.order == 0


@pytest.mark.asyncio
async def test_list_by_project(session, alice, bob) -> None:
    service = TaskService(session)
    project = await add_project(session, alice)
    await add_task(session, alice, "inside", project_id=project.id)
    await add_task(session, alice, "outside")

    result = await service.list_by_project(alice.id, project.id)
    assert [t.title for t in result.value] == ["inside"]

    foreign = await service.list_by_project(bob.id, project.id)
    assert isinstance(foreign, Err) and isinstance(foreign.error, NotFound)


@pytest.mark.asyncio
async def test_duplicate_resets_progress(session, alice) -> None:
    original = await add_task(
        session,
        alice,
        "Plan trip",
        status=TaskStatus.COMPLETED,
        priority=TaskPriority.URGENT,
        tags=["travel"],
        order=4,
    )

    result = await TaskService(session).duplicate(alice.id, original.id)

    assert isinstance(result, Ok)
    copy = result.value
    assert copy.id != original.id
    assert copy.title == "Plan trip (Copy)"
    assert copy.priority == TaskPriority.URGENT
    assert copy.tags == ["travel"]
    assert copy.status == TaskStatus.TODO
    assert copy.order == 0
    assert copy.completed_at is None


@pytest.mark.asyncio
async def test_stats_counts_by_status_and_urgency(session, alice, bob) -> None:
    now = utcnow()
    project = await add_project(session, alice)
    await add_task(session, alice, "a", status=TaskStatus.TODO, priority=TaskPriority.HIGH)
    await add_task(
        session, alice, "b", status=TaskStatus.IN_PROGRESS, due_date=now - timedelta(days=1)
    )
    await add_task(
        session,
        alice,
        "c",
        status=TaskStatus.COMPLETED,
        priority=TaskPriority.URGENT,
        due_date=now - timedelta(days=1),
        project_id=project.id,
    )
    await add_task(session, alice, "d", status=TaskStatus.CANCELLED, project_id=project.id)
    await add_task(session, bob, "e")
    service = TaskService(session)

    stats = (await service.stats(alice.id)).value
    assert stats.total == 4
    assert (stats.todo, stats.in_progress, stats.completed, stats.cancelled) == (1, 1, 1, 1)
    assert stats.overdue == 1
    assert stats.high_priority == 2

    scoped = (await service.stats(alice.id, project_id=project.id)).value
    assert scoped.total == 2
    assert scoped.overdue == 0


@pytest.mark.asyncio
async def test_upcoming_rejects_negative_window(session, alice) -> None:
    result = await TaskService(session).upcoming(alice.id, days=-1)

    assert isinstance(result, Err) and isinstance(result.error, ValidationFailure)


@pytest.mark.asyncio
async def test_upcoming_rejects_window_beyond_limit(session, alice) -> None:
    service = TaskService(session)

    too_far = await service.upcoming(alice.id, days=MAX_UPCOMING_DAYS + 1)
    huge = await service.upcoming(alice.id, days=1_000_000_000)

    assert isinstance(too_far, Err) and isinstance(too_far.error, ValidationFailure)
    assert isinstance(huge, Err) and isinstance(huge.error, ValidationFailure)
    assert isinstance(await service.upcoming(alice.id, days=MAX_UPCOMING_DAYS), Ok)


@pytest.mark.asyncio
async def test_timestamps_are_stored_as_naive_utc(session, alice) -> None:
    due = datetime(2024, 6, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    service = TaskService(session)
    created = (await service.create(alice.id, TaskCreate(title="t", due_date=due))).value
    reordered = await service.reorder(alice.id, [TaskOrderItem(id=created.id, order=2)])
    assert reordered.value == 1

    session.expunge_all()
    stored, _ = (await service.get(alice.id, created.id)).value

    assert stored.due_date == datetime(2024, 6, 1, 12, 0)
    assert stored.created_at.tzinfo is None
    assert stored.updated_at >= stored.created_at
    assert stored.order == 2
