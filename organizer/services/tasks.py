import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from organizer.models import (
    Project,
    Task,
    TaskCreate,
    TaskOrderItem,
    TaskStats,
    TaskStatus,
    TaskUpdate,
    utcnow,
)
from organizer.query import (
    HIGH_PRIORITIES,
    MAX_UPCOMING_DAYS,
    TaskFilter,
    TaskSort,
    is_overdue,
    order_by,
    overdue_clauses,
    upcoming_clauses,
)
from organizer.results import Err, NotFound, Ok, ReferentialConflict, Result, ValidationFailure
from organizer.services.common import (
    check_parent,
    check_reference,
    child_ids,
    completion_time,
    count_where,
    get_owned,
    missing_required,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "status", "priority", "order", "tags", "meta")


class TaskService:
    """Task queries and mutations, always scoped to one owning user."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _check_links(
        self,
        user_id: int,
        project_id: Optional[int],
        parent_task_id: Optional[int],
        *,
        task_id: Optional[int] = None,
    ) -> Optional[Err]:
        if project_id is not None:
            checked = await check_reference(self.session, Project, project_id, user_id, "Project")
            if isinstance(checked, Err):
                return checked
        if parent_task_id is not None:
            checked = await check_parent(
                self.session, Task, "parent_task_id", parent_task_id, user_id, "task", child_id=task_id
            )
            if isinstance(checked, Err):
                return checked
        return None

    async def create(self, user_id: int, data: TaskCreate) -> Result[Task]:
        if not data.title or not data.title.strip():
            return Err(ValidationFailure("title is required"))

        failed = await self._check_links(user_id, data.project_id, data.parent_task_id)
        if failed is not None:
            return failed

        task = Task.model_validate(data, update={"user_id": user_id})
        task.completed_at = completion_time(None, task.status, None, done=TaskStatus.COMPLETED)
        self.session.add(task)
        await self.session.commit()
        await self.session.refresh(task)
        logger.info("Task created id=%s user=%s project=%s", task.id, user_id, task.project_id)
        return Ok(task)

    async def get(self, user_id: int, task_id: int) -> Result[tuple[Task, list[int]]]:
        task = await get_owned(self.session, Task, task_id, user_id)
        if task is None:
            return Err(NotFound("Task not found"))
        sub_ids = await child_ids(self.session, Task, "parent_task_id", task_id)
        return Ok((task, sub_ids))

    async def list_tasks(
        self, user_id: int, filters: Optional[TaskFilter] = None, sort: TaskSort = TaskSort.ORDER
    ) -> Result[list[Task]]:
        filters = filters or TaskFilter()
        result = await self.session.execute(
            select(Task).where(*filters.clauses(user_id)).order_by(*order_by(sort))
        )
        return Ok(filters.apply_tags(result.scalars().all()))

    async def list_by_project(self, user_id: int, project_id: int) -> Result[list[Task]]:
        project = await get_owned(self.session, Project, project_id, user_id)
        if project is None:
            return Err(NotFound("Project not found"))
        return await self.list_tasks(user_id, TaskFilter(project_id=project_id))

    async def overdue(self, user_id: int) -> Result[list[Task]]:
        result = await self.session.execute(
            select(Task).where(*overdue_clauses(user_id, utcnow())).order_by(*order_by(TaskSort.DUE_DATE))
        )
        return Ok(list(result.scalars().all()))

    async def upcoming(self, user_id: int, days: int = 7) -> Result[list[Task]]:
        if not 0 <= days <= MAX_UPCOMING_DAYS:
            return Err(ValidationFailure(f"days must be between 0 and {MAX_UPCOMING_DAYS}"))
        result = await self.session.execute(
            select(Task)
            .where(*upcoming_clauses(user_id, utcnow(), days))
            .order_by(*order_by(TaskSort.DUE_DATE))
        )
        return Ok(list(result.scalars().all()))

    async def update(self, user_id: int, task_id: int, data: TaskUpdate) -> Result[Task]:
        task = await get_owned(self.session, Task, task_id, user_id)
        if task is None:
            return Err(NotFound("Task not found"))

        changes = data.model_dump(exclude_unset=True)
        failed = missing_required(changes, REQUIRED_FIELDS)
        if failed is not None:
            return failed
        if "title" in changes and not changes["title"].strip():
            return Err(ValidationFailure("title is required"))

        failed = await self._check_links(
            user_id,
            changes.get("project_id"),
            changes.get("parent_task_id"),
            task_id=task_id,
        )
        if failed is not None:
            return failed

        previous_status = task.status
        for key, value in changes.items():
            setattr(task, key, value)
        task.completed_at = completion_time(
            previous_status, task.status, task.completed_at, done=TaskStatus.COMPLETED
        )
        task.updated_at = utcnow()

        await self.session.commit()
        await self.session.refresh(task)
        logger.info("Task updated id=%s user=%s fields=%s", task_id, user_id, sorted(changes))
        return Ok(task)

    async def delete(self, user_id: int, task_id: int) -> Result[str]:
        task = await get_owned(self.session, Task, task_id, user_id)
        if task is None:
            return Err(NotFound("Task not found"))

        sub_tasks = await count_where(self.session, Task, col(Task.parent_task_id) == task_id)
        if sub_tasks > 0:
            logger.warning("Refusing to delete task id=%s: %d sub-task(s)", task_id, sub_tasks)
            return Err(ReferentialConflict("Cannot delete task with sub-tasks"))

        await self.session.delete(task)
        await self.session.commit()
        logger.info("Task deleted id=%s user=%s", task_id, user_id)
        return Ok("Task deleted successfully")

    async def reorder(self, user_id: int, task_orders: list[TaskOrderItem]) -> Result[int]:
        """
        Apply each (id, order) pair as its own single-row update.

        Not a transaction: every pair is committed separately and pairs that match
        no row of ``user_id`` are skipped. Returns the number of rows updated.
        """
        updated = 0
        for item in task_orders:
            result = await self.session.execute(
                update(Task)
                .where(col(Task.id) == item.id, col(Task.user_id) == user_id)
                .values(order=item.order, updated_at=utcnow())
            )
            await self.session.commit()
            if result.rowcount:
                updated += result.rowcount
            else:
                logger.debug("Reorder skipped task id=%s for user=%s", item.id, user_id)
        logger.info("Task order updated user=%s requested=%d updated=%d", user_id, len(task_orders), updated)
        return Ok(updated)

    async def duplicate(self, user_id: int, task_id: int) -> Result[Task]:
        original = await get_owned(self.session, Task, task_id, user_id)
        if original is None:
            return Err(NotFound("Task not found"))

        copy = Task(
            title=f"{original.title} (Copy)",
            description=original.description,
            priority=original.priority,
            estimated_time=original.estimated_time,
            user_id=user_id,
            project_id=original.project_id,
            tags=list(original.tags or []),
            meta=dict(original.meta or {}),
        )
        self.session.add(copy)
        await self.session.commit()
        await self.session.refresh(copy)
        logger.info("Task duplicated id=%s -> id=%s", task_id, copy.id)
        return Ok(copy)

    async def stats(self, user_id: int, project_id: Optional[int] = None) -> Result[TaskStats]:
        where = [col(Task.user_id) == user_id]
        if project_id is not None:
            where.append(col(Task.project_id) == project_id)

        result = await self.session.execute(select(Task).where(*where))
        tasks = result.scalars().all()
        now = utcnow()

        stats = TaskStats(total=len(tasks))
        for task in tasks:
            if task.status == TaskStatus.TODO:
                stats.todo += 1
            elif task.status == TaskStatus.IN_PROGRESS:
                stats.in_progress += 1
            elif task.status == TaskStatus.COMPLETED:
                stats.completed += 1
            elif task.status == TaskStatus.CANCELLED:
                stats.cancelled += 1
            if is_overdue(task, now):
                stats.overdue += 1
            if task.priority in HIGH_PRIORITIES:
                stats.high_priority += 1
        return Ok(stats)
