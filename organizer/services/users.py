import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from organizer.models import (
    Event,
    Note,
    Project,
    Task,
    TaskStatus,
    User,
    UserCreate,
    UserStats,
    UserUpdate,
    utcnow,
)
from organizer.results import Err, NotFound, Ok, ReferentialConflict, Result
from organizer.services.common import count_where

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def register(self, data: UserCreate) -> Result[User]:
        result = await self.session.execute(
            select(User).where(or_(col(User.email) == data.email, col(User.username) == data.username))
        )
        if result.scalars().first() is not None:
            return Err(ReferentialConflict("User with this email or username already exists"))

        user = User.model_validate(data)
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration.
            await self.session.rollback()
            return Err(ReferentialConflict("User with this email or username already exists"))
        await self.session.refresh(user)
        logger.info("User registered id=%s username=%s", user.id, user.username)
        return Ok(user)

    async def get(self, user_id: int) -> Result[User]:
        user = await self.session.get(User, user_id)
        if user is None:
            return Err(NotFound("User not found"))
        return Ok(user)

    async def update(self, user_id: int, data: UserUpdate) -> Result[User]:
        user = await self.session.get(User, user_id)
        if user is None:
            return Err(NotFound("User not found"))

        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "timezone" and value is None:
                continue
            setattr(user, key, value)
        user.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(user)
        return Ok(user)

    async def update_preferences(self, user_id: int, preferences: dict[str, Any]) -> Result[User]:
        user = await self.session.get(User, user_id)
        if user is None:
            return Err(NotFound("User not found"))

        user.preferences = dict(preferences)
        user.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(user)
        return Ok(user)

    async def delete(self, user_id: int) -> Result[str]:
        user = await self.session.get(User, user_id)
        if user is None:
            return Err(NotFound("User not found"))

        await self.session.delete(user)
        await self.session.commit()
        logger.info("User deleted id=%s", user_id)
        return Ok("User deleted successfully")

    async def stats(self, user_id: int) -> Result[UserStats]:
        user = await self.session.get(User, user_id)
        if user is None:
            return Err(NotFound("User not found"))

        owned_task = col(Task.user_id) == user_id
        return Ok(
            UserStats(
                total_projects=await count_where(self.session, Project, col(Project.user_id) == user_id),
                total_tasks=await count_where(self.session, Task, owned_task),
                total_notes=await count_where(self.session, Note, col(Note.user_id) == user_id),
                total_events=await count_where(self.session, Event, col(Event.user_id) == user_id),
                completed_tasks=await count_where(
                    self.session, Task, owned_task, col(Task.status) == TaskStatus.COMPLETED
                ),
                pending_tasks=await count_where(
                    self.session, Task, owned_task, col(Task.status) == TaskStatus.TODO
                ),
                in_progress_tasks=await count_where(
                    self.session, Task, owned_task, col(Task.status) == TaskStatus.IN_PROGRESS
                ),
            )
        )
