import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from organizer.models import Event, EventCreate, EventUpdate, utcnow
from organizer.results import Err, NotFound, Ok, Result, ValidationFailure
from organizer.services.common import check_links, get_owned, missing_required

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "title",
    "start_date",
    "end_date",
    "is_all_day",
    "type",
    "status",
    "priority",
    "color",
    "reminders",
    "attendees",
    "meta",
)


def _check_span(start_date: datetime, end_date: datetime) -> Optional[Err]:
    if end_date < start_date:
        return Err(ValidationFailure("end_date must not be before start_date"))
    return None


class EventService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, user_id: int, data: EventCreate) -> Result[Event]:
        if not data.title or not data.title.strip():
            return Err(ValidationFailure("title is required"))
        failed = _check_span(data.start_date, data.end_date)
        if failed is None:
            failed = await check_links(self.session, user_id, data.project_id, data.task_id)
        if failed is not None:
            return failed

        event = Event.model_validate(data, update={"user_id": user_id})
        self.session.add(event)
        await self.session.commit()
        await self.session.refresh(event)
        logger.info("Event created id=%s user=%s", event.id, user_id)
        return Ok(event)

    async def get(self, user_id: int, event_id: int) -> Result[Event]:
        event = await get_owned(self.session, Event, event_id, user_id)
        if event is None:
            return Err(NotFound("Event not found"))
        return Ok(event)

    async def list_events(
        self,
        user_id: int,
        *,
        project_id: Optional[int] = None,
        task_id: Optional[int] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> Result[list[Event]]:
        where = [col(Event.user_id) == user_id]
        if project_id is not None:
            where.append(col(Event.project_id) == project_id)
        if task_id is not None:
            where.append(col(Event.task_id) == task_id)
        if start_from is not None:
            where.append(col(Event.start_date) >= start_from)
        if start_to is not None:
            where.append(col(Event.start_date) <= start_to)

        result = await self.session.execute(
            select(Event).where(*where).order_by(col(Event.start_date).asc(), col(Event.id).asc())
        )
        return Ok(list(result.scalars().all()))

    async def update(self, user_id: int, event_id: int, data: EventUpdate) -> Result[Event]:
        event = await get_owned(self.session, Event, event_id, user_id)
        if event is None:
            return Err(NotFound("Event not found"))

        changes = data.model_dump(exclude_unset=True)
        failed = missing_required(changes, REQUIRED_FIELDS)
        if failed is None and "title" in changes and not changes["title"].strip():
            failed = Err(ValidationFailure("title is required"))
        if failed is None:
            failed = _check_span(
                changes.get("start_date", event.start_date), changes.get("end_date", event.end_date)
            )
        if failed is None:
            failed = await check_links(
                self.session, user_id, changes.get("project_id"), changes.get("task_id")
            )
        if failed is not None:
            return failed

        for key, value in changes.items():
            setattr(event, key, value)
        event.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(event)
        return Ok(event)

    async def delete(self, user_id: int, event_id: int) -> Result[str]:
        event = await get_owned(self.session, Event, event_id, user_id)
        if event is None:
            return Err(NotFound("Event not found"))

        await self.session.delete(event)
        await self.session.commit()
        logger.info("Event deleted id=%s user=%s", event_id, user_id)
        return Ok("Event deleted successfully")
