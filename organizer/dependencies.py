from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.config import Settings
from organizer.database import get_session
from organizer.models import User
from organizer.services import EventService, NoteService, ProjectService, TaskService, UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the caller from ``X-User-Id`` (stand-in for token authentication)."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = await session.get(User, x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid user")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


async def get_current_user_id(user: User = Depends(get_current_user)) -> int:
    return user.id


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


def get_project_service(session: AsyncSession = Depends(get_session)) -> ProjectService:
    return ProjectService(session)


def get_task_service(session: AsyncSession = Depends(get_session)) -> TaskService:
    return TaskService(session)


def get_note_service(session: AsyncSession = Depends(get_session)) -> NoteService:
    return NoteService(session)


def get_event_service(session: AsyncSession = Depends(get_session)) -> EventService:
    return EventService(session)
