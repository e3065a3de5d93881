from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api import router
from app.ws import router as ws_router
from datastore.reading_store import build_default_store
from logging_config import configure_logging
from services.broadcast import build_default_hub
from services.errors import ValidationError
from services.ingest import build_default_ingest


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    hub = build_default_hub()
    try:
        yield
    finally:
        hub.close_all()
        build_default_ingest.cache_clear()
        build_default_hub.cache_clear()
        build_default_store.cache_clear()


async def _validation_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    message = exc.message if isinstance(exc, ValidationError) else str(exc)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Gas Telemetry Relay",
        description="Collects gas sensor readings and pushes them to live dashboards.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.include_router(router)
    app.include_router(ws_router)
    return app

app = create_app()
