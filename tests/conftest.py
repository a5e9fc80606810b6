from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.config import Settings
from organizer.database import build_engine, build_sessionmaker, init_db
from organizer.main import create_app
from organizer.models import User

from .helpers import make_user


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Explicit settings with a throwaway SQLite file per test.

    Built directly rather than through the environment to keep tests isolated.
    """
    return Settings(
        app_name="Organizer Test",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        log_to_file=False,
        host="127.0.0.1",
        port=8000,
        api_prefix="/v1",
        cors_origins=["*"],
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'organizer.db'}",
        sql_echo=False,
        upcoming_days=7,
    )


# ---- service-level fixtures ----


@pytest_asyncio.fixture()
async def session(settings: Settings):
    engine = build_engine(settings.database_url)
    await init_db(engine)
    async with build_sessionmaker(engine)() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture()
async def alice(session: AsyncSession) -> User:
    return await make_user(session, "alice")


@pytest_asyncio.fixture()
async def bob(session: AsyncSession) -> User:
    return await make_user(session, "bob")


# ---- HTTP fixtures ----


@pytest_asyncio.fixture()
async def client(settings: Settings):
    """
    httpx client bound to a fresh app.

    ASGITransport does not run the lifespan, so tables are created here.
    """
    app = create_app(settings)
    await init_db(app.state.engine)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    await app.state.engine.dispose()

