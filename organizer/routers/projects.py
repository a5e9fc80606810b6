from typing import Optional

from fastapi import APIRouter, Depends

from organizer.dependencies import get_current_user_id, get_project_service
from organizer.models import (
    Priority,
    ProjectCreate,
    ProjectDetail,
    ProjectRead,
    ProjectStats,
    ProjectStatus,
    ProjectUpdate,
)
from organizer.responses import Envelope, envelope, unwrap
from organizer.services import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=Envelope[list[ProjectRead]])
async def list_projects(
    status: Optional[ProjectStatus] = None,
    priority: Optional[Priority] = None,
    search: Optional[str] = None,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    projects = await service.list_projects(user_id, status=status, priority=priority, search=search)
    return envelope(unwrap(projects))


@router.post("", response_model=Envelope[ProjectRead], status_code=201)
async def create_project(
    project: ProjectCreate,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    created = unwrap(await service.create(user_id, project))
    return envelope(created, "Project created successfully")


@router.get("/{project_id}", response_model=Envelope[ProjectDetail])
async def get_project(
    project_id: int,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    project, sub_project_ids = unwrap(await service.get(user_id, project_id))
    return envelope(ProjectDetail.model_validate(project, update={"sub_project_ids": sub_project_ids}))


@router.put("/{project_id}", response_model=Envelope[ProjectRead])
async def update_project(
    project_id: int,
    project: ProjectUpdate,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    updated = unwrap(await service.update(user_id, project_id, project))
    return envelope(updated, "Project updated successfully")


@router.delete("/{project_id}", response_model=Envelope)
async def delete_project(
    project_id: int,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    return envelope(message=unwrap(await service.delete(user_id, project_id)))


@router.get("/{project_id}/stats", response_model=Envelope[ProjectStats])
async def project_stats(
    project_id: int,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    return envelope(unwrap(await service.stats(user_id, project_id)))


@router.put("/{project_id}/archive", response_model=Envelope[ProjectRead])
async def archive_project(
    project_id: int,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    archived = unwrap(await service.archive(user_id, project_id))
    return envelope(archived, "Project archived successfully")


@router.post("/{project_id}/duplicate", response_model=Envelope[ProjectRead], status_code=201)
async def duplicate_project(
    project_id: int,
    user_id: int = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
):
    copy = unwrap(await service.duplicate(user_id, project_id))
    return envelope(copy, "Project duplicated successfully")
