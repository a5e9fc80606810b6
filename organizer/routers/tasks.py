from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from organizer.dependencies import get_current_user_id, get_task_service
from organizer.models import (
    TaskCreate,
    TaskDetail,
    TaskPriority,
    TaskRead,
    TaskReorder,
    TaskStats,
    TaskStatus,
    TaskUpdate,
    as_naive_utc,
)
from organizer.query import MAX_UPCOMING_DAYS, TaskFilter, TaskSort, parse_tags
from organizer.responses import Envelope, envelope, unwrap
from organizer.services import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


def task_filter(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    project_id: Optional[int] = None,
    search: Optional[str] = None,
    tags: Optional[str] = Query(default=None, description="Comma separated; matches any"),
    due_date_from: Optional[datetime] = None,
    due_date_to: Optional[datetime] = None,
    has_due_date: Optional[bool] = None,
) -> TaskFilter:
    return TaskFilter(
        status=status,
        priority=priority,
        project_id=project_id,
        search=search,
        tags=parse_tags(tags),
        due_date_from=as_naive_utc(due_date_from),
        due_date_to=as_naive_utc(due_date_to),
        has_due_date=has_due_date,
    )


@router.post("", response_model=Envelope[TaskRead], status_code=201)
async def create_task(
    task: TaskCreate,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    created = unwrap(await service.create(user_id, task))
    return envelope(created, "Task created successfully")


@router.get("", response_model=Envelope[list[TaskRead]])
async def list_tasks(
    filters: TaskFilter = Depends(task_filter),
    sort: TaskSort = TaskSort.ORDER,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return envelope(unwrap(await service.list_tasks(user_id, filters, sort)))


@router.put("/reorder", response_model=Envelope[dict])
async def reorder_tasks(
    body: TaskReorder,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    updated = unwrap(await service.reorder(user_id, body.task_orders))
    return envelope({"updated": updated}, "Task order updated successfully")


@router.get("/overdue", response_model=Envelope[list[TaskRead]])
async def overdue_tasks(
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return envelope(unwrap(await service.overdue(user_id)))


@router.get("/upcoming", response_model=Envelope[list[TaskRead]])
async def upcoming_tasks(
    request: Request,
    days: Optional[int] = Query(default=None, ge=0, le=MAX_UPCOMING_DAYS),
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    if days is None:
        days = request.app.state.settings.upcoming_days
    return envelope(unwrap(await service.upcoming(user_id, days)))


@router.get("/stats", response_model=Envelope[TaskStats])
async def task_stats(
    project_id: Optional[int] = None,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return envelope(unwrap(await service.stats(user_id, project_id)))


@router.get("/project/{project_id}", response_model=Envelope[list[TaskRead]])
async def project_tasks(
    project_id: int,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return envelope(unwrap(await service.list_by_project(user_id, project_id)))


@router.get("/{task_id}", response_model=Envelope[TaskDetail])
async def get_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    task, sub_task_ids = unwrap(await service.get(user_id, task_id))
    return envelope(TaskDetail.model_validate(task, update={"sub_task_ids": sub_task_ids}))


@router.put("/{task_id}", response_model=Envelope[TaskRead])
async def update_task(
    task_id: int,
    task: TaskUpdate,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    updated = unwrap(await service.update(user_id, task_id, task))
    return envelope(updated, "Task updated successfully")


@router.delete("/{task_id}", response_model=Envelope)
async def delete_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return envelope(message=unwrap(await service.delete(user_id, task_id)))


@router.post("/{task_id}/duplicate", response_model=Envelope[TaskRead], status_code=201)
async def duplicate_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    copy = unwrap(await service.duplicate(user_id, task_id))
    return envelope(copy, "Task duplicated successfully")
