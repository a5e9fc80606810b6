from typing import Optional

from fastapi import APIRouter, Depends

from organizer.dependencies import get_current_user_id, get_note_service
from organizer.models import NoteCreate, NoteRead, NoteUpdate
from organizer.responses import Envelope, envelope, unwrap
from organizer.services import NoteService

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=Envelope[list[NoteRead]])
async def list_notes(
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    is_archived: Optional[bool] = None,
    search: Optional[str] = None,
    user_id: int = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
):
    notes = await service.list_notes(
        user_id, project_id=project_id, task_id=task_id, is_archived=is_archived, search=search
    )
    return envelope(unwrap(notes))


@router.post("", response_model=Envelope[NoteRead], status_code=201)
async def create_note(
    note: NoteCreate,
    user_id: int = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
):
    return envelope(unwrap(await service.create(user_id, note)), "Note created successfully")


@router.get("/{note_id}", response_model=Envelope[NoteRead])
async def get_note(
    note_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
):
    return envelope(unwrap(await service.get(user_id, note_id)))


@router.put("/{note_id}", response_model=Envelope[NoteRead])
async def update_note(
    note_id: int,
    note: NoteUpdate,
    user_id: int = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
):
    return envelope(unwrap(await service.update(user_id, note_id, note)), "Note updated successfully")


@router.delete("/{note_id}", response_model=Envelope)
async def delete_note(
    note_id: int,
    user_id: int = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
):
    return envelope(message=unwrap(await service.delete(user_id, note_id)))
