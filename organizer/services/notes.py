import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from organizer.models import Note, NoteCreate, NoteUpdate, utcnow
from organizer.results import Err, NotFound, Ok, Result, ValidationFailure
from organizer.services.common import check_links, get_owned, missing_required

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "title",
    "type",
    "format",
    "is_archived",
    "is_favorite",
    "tags",
    "attachments",
    "meta",
)


class NoteService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, user_id: int, data: NoteCreate) -> Result[Note]:
        if not data.title or not data.title.strip():
            return Err(ValidationFailure("title is required"))
        failed = await check_links(self.session, user_id, data.project_id, data.task_id)
        if failed is not None:
            return failed

        note = Note.model_validate(data, update={"user_id": user_id})
        self.session.add(note)
        await self.session.commit()
        await self.session.refresh(note)
        logger.info("Note created id=%s user=%s", note.id, user_id)
        return Ok(note)

    async def get(self, user_id: int, note_id: int) -> Result[Note]:
        note = await get_owned(self.session, Note, note_id, user_id)
        if note is None:
            return Err(NotFound("Note not found"))
        return Ok(note)

    async def list_notes(
        self,
        user_id: int,
        *,
        project_id: Optional[int] = None,
        task_id: Optional[int] = None,
        is_archived: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Result[list[Note]]:
        where = [col(Note.user_id) == user_id]
        if project_id is not None:
            where.append(col(Note.project_id) == project_id)
        if task_id is not None:
            where.append(col(Note.task_id) == task_id)
        if is_archived is not None:
            where.append(col(Note.is_archived) == is_archived)
        if search is not None:
            term = search.lower()
            where.append(
                or_(
                    func.lower(col(Note.title)).contains(term, autoescape=True),
                    func.lower(col(Note.content)).contains(term, autoescape=True),
                )
            )

        result = await self.session.execute(
            select(Note).where(*where).order_by(col(Note.updated_at).desc(), col(Note.id).desc())
        )
        return Ok(list(result.scalars().all()))

    async def update(self, user_id: int, note_id: int, data: NoteUpdate) -> Result[Note]:
        note = await get_owned(self.session, Note, note_id, user_id)
        if note is None:
            return Err(NotFound("Note not found"))

        changes = data.model_dump(exclude_unset=True)
        failed = missing_required(changes, REQUIRED_FIELDS)
        if failed is None and "title" in changes and not changes["title"].strip():
            failed = Err(ValidationFailure("title is required"))
        if failed is None:
            failed = await check_links(
                self.session, user_id, changes.get("project_id"), changes.get("task_id")
            )
        if failed is not None:
            return failed

        for key, value in changes.items():
            setattr(note, key, value)
        note.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(note)
        return Ok(note)

    async def delete(self, user_id: int, note_id: int) -> Result[str]:
        note = await get_owned(self.session, Note, note_id, user_id)
        if note is None:
            return Err(NotFound("Note not found"))

        await self.session.delete(note)
        await self.session.commit()
        logger.info("Note deleted id=%s user=%s", note_id, user_id)
        return Ok("Note deleted successfully")
