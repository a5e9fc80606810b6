from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.models import Task, User


async def make_user(session: AsyncSession, username: str) -> User:
    user = User(email=f"{username}@example.com", username=username)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def add_task(
    session: AsyncSession,
    user: User,
    title: str,
    *,
    created_at: Optional[datetime] = None,
    **fields: Any,
) -> Task:
    """Insert a task row directly, bypassing the service (fixed created_at etc.)."""
    task = Task(user_id=user.id, title=title, **fields)
    if created_at is not None:
        task.created_at = created_at
    session.add(task)
    await session.commit()
    await session.refresh(task)
    return task


async def register(client: httpx.AsyncClient, username: str) -> dict[str, str]:
    """Register a user and return the headers that authenticate as them."""
    resp = await client.post(
        "/v1/users/register", json={"email": f"{username}@example.com", "username": username}
    )
    assert resp.status_code == 201, resp.text
    return {"X-User-Id": str(resp.json()["data"]["id"])}
