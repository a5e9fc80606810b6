import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from organizer import __version__
from organizer.config import Settings, get_settings
from organizer.database import build_engine, build_sessionmaker, init_db
from organizer.logging_setup import setup_logging
from organizer.routers import events, notes, projects, tasks, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db(app.state.engine)
    yield
    await app.state.engine.dispose()


async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url, echo=settings.sql_echo)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(Exception, unexpected_error)

    for module in (users, projects, tasks, notes, events):
        app.include_router(module.router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health():
        return {
            "success": True,
            "message": "API is healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
        }

    @app.get(f"{settings.api_prefix}/info")
    async def info():
        return {
            "success": True,
            "data": {
                "name": settings.app_name,
                "version": __version__,
                "endpoints": {
                    name: f"{settings.api_prefix}/{name}"
                    for name in ("users", "projects", "tasks", "notes", "events")
                },
            },
        }

    return app


def run() -> None:
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        log_dir=settings.log_dir if settings.log_to_file else None,
    )
    uvicorn.run(
        "organizer.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
