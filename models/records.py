"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    rendered = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def finite_or_none(value: float) -> Optional[float]:
    # JSON has no NaN/Infinity; dashboards receive null for the sentinel.
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True, slots=True)
class GasReading:
    """A single gas-concentration measurement received from a sensor.

    ``raw`` holds an ``int`` when the producer sent a parseable value and
    ``math.nan`` otherwise; ``ppm`` and ``rs`` are floats that may be NaN.
    """

    sensor_id: str
    ppm: float
    raw: int | float
    rs: float
    level: str
    timestamp: datetime

    def to_wire(self) -> Dict[str, Any]:
        return {
            "sensorId": self.sensor_id,
            "ppm": finite_or_none(self.ppm),
            "raw": finite_or_none(self.raw),
            "rs": finite_or_none(self.rs),
            "level": self.level,
            "timestamp": format_timestamp(self.timestamp),
        }
