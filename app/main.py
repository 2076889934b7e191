from __future__ import annotations
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import register_exception_handlers, router
from app.web import router as web_router
from logging_config import configure_logging
from services.query import build_default_query_service
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_query_service()
    service.reload()
    try:
        yield
    finally:
        service.shutdown()
        build_default_query_service.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="Internet Speed Rankings",
        description="Top tiles by average internet speed, served from a CSV snapshot.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    static_dir = Path(__file__).resolve().parent.parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    register_exception_handlers(app)
    app.include_router(router)
    app.include_router(web_router)
    return app

app = create_app()
