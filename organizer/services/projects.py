import logging
import math
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from organizer.models import (
    Event,
    Note,
    Priority,
    Project,
    ProjectCreate,
    ProjectStats,
    ProjectStatus,
    ProjectUpdate,
    Task,
    TaskStatus,
    utcnow,
)
from organizer.results import Err, NotFound, Ok, ReferentialConflict, Result, ValidationFailure
from organizer.services.common import (
    check_parent,
    child_ids,
    completion_time,
    count_where,
    get_owned,
    missing_required,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "color", "status", "priority", "settings")


class ProjectService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, user_id: int, data: ProjectCreate) -> Result[Project]:
        if not data.title or not data.title.strip():
            return Err(ValidationFailure("title is required"))

        if data.parent_project_id is not None:
            checked = await check_parent(
                self.session, Project, "parent_project_id", data.parent_project_id, user_id, "project"
            )
            if isinstance(checked, Err):
                return checked

        project = Project.model_validate(data, update={"user_id": user_id})
        project.completed_at = completion_time(None, project.status, None, done=ProjectStatus.COMPLETED)
        self.session.add(project)
        await self.session.commit()
        await self.session.refresh(project)
        logger.info("Project created id=%s user=%s", project.id, user_id)
        return Ok(project)

    async def get(self, user_id: int, project_id: int) -> Result[tuple[Project, list[int]]]:
        project = await get_owned(self.session, Project, project_id, user_id)
        if project is None:
            return Err(NotFound("Project not found"))
        sub_ids = await child_ids(self.session, Project, "parent_project_id", project_id)
        return Ok((project, sub_ids))

    async def list_projects(
        self,
        user_id: int,
        *,
        status: Optional[ProjectStatus] = None,
        priority: Optional[Priority] = None,
        search: Optional[str] = None,
    ) -> Result[list[Project]]:
        where = [col(Project.user_id) == user_id]
        if status is not None:
            where.append(col(Project.status) == status)
        if priority is not None:
            where.append(col(Project.priority) == priority)
        if search is not None:
            term = search.lower()
            where.append(
                or_(
                    func.lower(col(Project.title)).contains(term, autoescape=True),
                    func.lower(col(Project.description)).contains(term, autoescape=True),
                )
            )

        result = await self.session.execute(
            select(Project).where(*where).order_by(col(Project.created_at).desc(), col(Project.id).desc())
        )
        return Ok(list(result.scalars().all()))

    async def update(self, user_id: int, project_id: int, data: ProjectUpdate) -> Result[Project]:
        project = await get_owned(self.session, Project, project_id, user_id)
        if project is None:
            return Err(NotFound("Project not found"))

        changes = data.model_dump(exclude_unset=True)
        failed = missing_required(changes, REQUIRED_FIELDS)
        if failed is not None:
            return failed
        if "title" in changes and not changes["title"].strip():
            return Err(ValidationFailure("title is required"))

        if changes.get("parent_project_id") is not None:
            checked = await check_parent(
                self.session,
                Project,
                "parent_project_id",
                changes["parent_project_id"],
                user_id,
                "project",
                child_id=project_id,
            )
            if isinstance(checked, Err):
                return checked

        previous_status = project.status
        for key, value in changes.items():
            setattr(project, key, value)
        project.completed_at = completion_time(
            previous_status, project.status, project.completed_at, done=ProjectStatus.COMPLETED
        )
        project.updated_at = utcnow()

        await self.session.commit()
        await self.session.refresh(project)
        logger.info("Project updated id=%s user=%s fields=%s", project_id, user_id, sorted(changes))
        return Ok(project)

    async def delete(self, user_id: int, project_id: int) -> Result[str]:
        project = await get_owned(self.session, Project, project_id, user_id)
        if project is None:
            return Err(NotFound("Project not found"))

        sub_projects = await count_where(
            self.session, Project, col(Project.parent_project_id) == project_id
        )
        if sub_projects > 0:
            logger.warning("Refusing to delete project id=%s: %d sub-project(s)", project_id, sub_projects)
            return Err(ReferentialConflict("Cannot delete project with sub-projects"))

        await self.session.delete(project)
        await self.session.commit()
        logger.info("Project deleted id=%s user=%s", project_id, user_id)
        return Ok("Project deleted successfully")

    async def stats(self, user_id: int, project_id: int) -> Result[ProjectStats]:
        project = await get_owned(self.session, Project, project_id, user_id)
        if project is None:
            return Err(NotFound("Project not found"))

        result = await self.session.execute(
            select(Task.status, func.count())
            .where(col(Task.project_id) == project_id)
            .group_by(Task.status)
        )
        by_status = {status: count for status, count in result.all()}
        total = sum(by_status.values())
        completed = by_status.get(TaskStatus.COMPLETED, 0)

        return Ok(
            ProjectStats(
                total_tasks=total,
                completed_tasks=completed,
                pending_tasks=by_status.get(TaskStatus.TODO, 0),
                in_progress_tasks=by_status.get(TaskStatus.IN_PROGRESS, 0),
                total_notes=await count_where(self.session, Note, col(Note.project_id) == project_id),
                total_events=await count_where(self.session, Event, col(Event.project_id) == project_id),
                total_sub_projects=await count_where(
                    self.session, Project, col(Project.parent_project_id) == project_id
                ),
                # Half-up rounding.
                completion_percentage=math.floor(completed * 100 / total + 0.5) if total else 0,
            )
        )

    async def archive(self, user_id: int, project_id: int) -> Result[Project]:
        return await self.update(user_id, project_id, ProjectUpdate(status=ProjectStatus.ARCHIVED))

    async def duplicate(self, user_id: int, project_id: int) -> Result[Project]:
        """Copy a project together with its tasks and notes (statuses reset)."""
        original = await get_owned(self.session, Project, project_id, user_id)
        if original is None:
            return Err(NotFound("Project not found"))

        copy = Project(
            title=f"{original.title} (Copy)",
            description=original.description,
            color=original.color,
            priority=original.priority,
            user_id=user_id,
            settings=dict(original.settings or {}),
        )
        self.session.add(copy)
        await self.session.flush()

        tasks = await self.session.execute(select(Task).where(col(Task.project_id) == project_id))
        for task in tasks.scalars().all():
            self.session.add(
                Task(
                    title=task.title,
                    description=task.description,
                    priority=task.priority,
                    estimated_time=task.estimated_time,
                    user_id=user_id,
                    project_id=copy.id,
                    tags=list(task.tags or []),
                    meta=dict(task.meta or {}),
                )
            )

        notes = await self.session.execute(select(Note).where(col(Note.project_id) == project_id))
        for note in notes.scalars().all():
            self.session.add(
                Note(
                    title=note.title,
                    content=note.content,
                    type=note.type,
                    format=note.format,
                    user_id=user_id,
                    project_id=copy.id,
                    tags=list(note.tags or []),
                    meta=dict(note.meta or {}),
                )
            )

        await self.session.commit()
        await self.session.refresh(copy)
        logger.info("Project duplicated id=%s -> id=%s", project_id, copy.id)
        return Ok(copy)
