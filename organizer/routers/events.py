from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from organizer.dependencies import get_current_user_id, get_event_service
from organizer.models import EventCreate, EventRead, EventUpdate, as_naive_utc
from organizer.responses import Envelope, envelope, unwrap
from organizer.services import EventService

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=Envelope[list[EventRead]])
async def list_events(
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    start_from: Optional[datetime] = None,
    start_to: Optional[datetime] = None,
    user_id: int = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service),
):
    events = await service.list_events(
        user_id,
        project_id=project_id,
        task_id=task_id,
        start_from=as_naive_utc(start_from),
        start_to=as_naive_utc(start_to),
    )
    return envelope(unwrap(events))


@router.post("", response_model=Envelope[EventRead], status_code=201)
async def create_event(
    event: EventCreate,
    user_id: int = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service),
):
    return envelope(unwrap(await service.create(user_id, event)), "Event created successfully")


@router.get("/{event_id}", response_model=Envelope[EventRead])
async def get_event(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service),
):
    return envelope(unwrap(await service.get(user_id, event_id)))


@router.put("/{event_id}", response_model=Envelope[EventRead])
async def update_event(
    event_id: int,
    event: EventUpdate,
    user_id: int = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service),
):
    return envelope(unwrap(await service.update(user_id, event_id, event)), "Event updated successfully")


@router.delete("/{event_id}", response_model=Envelope)
async def delete_event(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service),
):
    return envelope(message=unwrap(await service.delete(user_id, event_id)))
