"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

SubmittedValue = Optional[Union[StrictInt, StrictFloat, StrictStr]]


class ReadingPayload(BaseModel):
    """Reading as sent to producers and subscribers; NaN values travel as null."""

    model_config = ConfigDict(populate_by_name=True)

    sensor_id: str = Field(..., alias="sensorId")
    ppm: Optional[float] = None
    raw: Optional[int] = None
    rs: Optional[float] = None
    level: str
    timestamp: str = Field(..., description="ISO-8601 UTC receipt time, e.g. 2024-01-01T00:00:00.000Z.")


class ReadingSubmission(BaseModel):
    """JSON body accepted by ``POST /api/readings``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sensor_id: SubmittedValue = Field(default=None, alias="sensorId")
    ppm: SubmittedValue = None
    raw: SubmittedValue = None
    rs: SubmittedValue = None
    level: SubmittedValue = None


class IngestResponse(BaseModel):
    """Acknowledgement echoing the stored reading."""

    message: str
    data: ReadingPayload


class ErrorResponse(BaseModel):
    error: str


HistorySnapshot = Dict[str, List[ReadingPayload]]
