from typing import Any

from fastapi import APIRouter, Body, Depends

from organizer.dependencies import get_current_user_id, get_user_service
from organizer.models import UserCreate, UserRead, UserStats, UserUpdate
from organizer.responses import Envelope, envelope, unwrap
from organizer.services import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=Envelope[UserRead], status_code=201)
async def register(user: UserCreate, service: UserService = Depends(get_user_service)):
    created = unwrap(await service.register(user))
    return envelope(created, "User registered successfully")


@router.get("/profile", response_model=Envelope[UserRead])
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
):
    return envelope(unwrap(await service.get(user_id)))


@router.put("/profile", response_model=Envelope[UserRead])
async def update_profile(
    user: UserUpdate,
    user_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
):
    updated = unwrap(await service.update(user_id, user))
    return envelope(updated, "Profile updated successfully")


@router.put("/preferences", response_model=Envelope[UserRead])
async def update_preferences(
    preferences: dict[str, Any] = Body(..., embed=True),
    user_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
):
    updated = unwrap(await service.update_preferences(user_id, preferences))
    return envelope(updated, "Preferences updated successfully")


@router.get("/stats", response_model=Envelope[UserStats])
async def user_stats(
    user_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
):
    return envelope(unwrap(await service.stats(user_id)))


@router.delete("/account", response_model=Envelope)
async def delete_account(
    user_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
):
    return envelope(message=unwrap(await service.delete(user_id)))
