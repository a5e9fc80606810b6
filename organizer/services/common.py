from datetime import datetime
from typing import Any, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, col, select

from organizer.models import Project, Task, utcnow
from organizer.results import AccessDenied, Err, NotFound, Ok, Result, ValidationFailure

M = TypeVar("M", bound=SQLModel)


def completion_time(
    previous_status: Any,
    status: Any,
    completed_at: Optional[datetime],
    *,
    done: Any,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    ``completed_at`` after moving from ``previous_status`` to ``status``.

    Stamped on the transition into ``done``, cleared on any status other than
    ``done``, left alone while the entity stays ``done``.
    """
    if status != done:
        return None
    if previous_status != done or completed_at is None:
        return now or utcnow()
    return completed_at


async def get_owned(session: AsyncSession, model: type[M], row_id: int, user_id: int) -> Optional[M]:
    """Row ``row_id`` when it belongs to ``user_id``; otherwise None."""
    row = await session.get(model, row_id)
    if row is None or row.user_id != user_id:
        return None
    return row


async def check_reference(
    session: AsyncSession, model: type[M], row_id: int, user_id: int, label: str
) -> Result[M]:
    """Validate a foreign reference such as a task's ``project_id``."""
    row = await session.get(model, row_id)
    if row is None:
        return Err(NotFound(f"{label} not found"))
    if row.user_id != user_id:
        return Err(AccessDenied(f"{label} access denied"))
    return Ok(row)


async def check_parent(
    session: AsyncSession,
    model: type[M],
    parent_field: str,
    parent_id: int,
    user_id: int,
    label: str,
    *,
    child_id: Optional[int] = None,
) -> Result[M]:
    """
    Validate a self reference (sub-task / sub-project).

    The parent must already exist and be owned by ``user_id``. When ``child_id`` is
    given (an update), the parent chain must not lead back to the child.
    """
    checked = await check_reference(session, model, parent_id, user_id, f"Parent {label}")
    if isinstance(checked, Err):
        return checked

    if child_id is None:
        return checked

    seen: set[int] = set()
    current: Optional[int] = parent_id
    while current is not None and current not in seen:
        if current == child_id:
            return Err(ValidationFailure(f"A {label} cannot be its own ancestor"))
        seen.add(current)
        row = await session.get(model, current)
        current = getattr(row, parent_field) if row is not None else None
    return checked


async def count_where(session: AsyncSession, model: type[SQLModel], *where) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*where))
    return int(result.scalar_one())


async def child_ids(session: AsyncSession, model: type[M], parent_field: str, parent_id: int) -> list[int]:
    parent_col = col(getattr(model, parent_field))
    result = await session.execute(
        select(col(getattr(model, "id"))).where(parent_col == parent_id).order_by(col(getattr(model, "id")))
    )
    return list(result.scalars().all())


def missing_required(changes: dict[str, Any], required: tuple[str, ...]) -> Optional[Err]:
    """Explicit nulls for non-nullable fields in a partial update."""
    for name in required:
        if name in changes and changes[name] is None:
            return Err(ValidationFailure(f"{name} cannot be null"))
    return None


async def check_links(
    session: AsyncSession, user_id: int, project_id: Optional[int], task_id: Optional[int]
) -> Optional[Err]:
    """Project / task references of a leaf entity (note or event)."""
    if project_id is not None:
        checked = await check_reference(session, Project, project_id, user_id, "Project")
        if isinstance(checked, Err):
            return checked
    if task_id is not None:
        checked = await check_reference(session, Task, task_id, user_id, "Task")
        if isinstance(checked, Err):
            return checked
    return None
