"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.schemas import (
    ErrorResponse,
    HistorySnapshot,
    IngestResponse,
    ReadingPayload,
    ReadingSubmission,
)
from datastore.reading_store import ReadingStore, build_default_store
from services.broadcast import history_event
from services.ingest import IngestService, build_default_ingest

router = APIRouter()

_INGEST_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "ppm is missing."},
}


def get_ingest() -> IngestService:
    return build_default_ingest()


def get_store() -> ReadingStore:
    return build_default_store()


def _client_address(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _accept(ingest: IngestService, submission: Dict[str, Any], request: Request) -> IngestResponse:
    reading = ingest.ingest(submission, source_address=_client_address(request))
    return IngestResponse(
        message="Reading received",
        data=ReadingPayload.model_validate(reading.to_wire()),
    )


@router.get(
    "/api/readings",
    response_model=IngestResponse,
    responses=_INGEST_RESPONSES,
    summary="Submit a reading through query parameters.",
)
async def submit_reading_query(
    request: Request,
    sensor_id: Optional[str] = Query(None, alias="sensorId"),
    ppm: Optional[str] = Query(None, description="Gas concentration; required."),
    raw: Optional[str] = Query(None),
    rs: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    ingest: IngestService = Depends(get_ingest),
) -> IngestResponse:
    submission = {"sensorId": sensor_id, "ppm": ppm, "raw": raw, "rs": rs, "level": level}
    return _accept(ingest, submission, request)


@router.post(
    "/api/readings",
    response_model=IngestResponse,
    responses=_INGEST_RESPONSES,
    summary="Submit a reading as a JSON body.",
)
async def submit_reading_json(
    request: Request,
    body: ReadingSubmission,
    ingest: IngestService = Depends(get_ingest),
) -> IngestResponse:
    return _accept(ingest, body.model_dump(by_alias=True), request)


@router.get(
    "/api/readings/history",
    response_model=HistorySnapshot,
    summary="Current history of every sensor, newest reading first.",
)
async def get_history(store: ReadingStore = Depends(get_store)) -> Dict[str, Any]:
    return history_event(store.snapshot())["payload"]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
