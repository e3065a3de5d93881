"""Validation and normalization of inbound sensor submissions."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional

from datastore.reading_store import ReadingStore, build_default_store
from models.records import GasReading
from services.broadcast import BroadcastHub, build_default_hub
from services.errors import ValidationError
from settings import get_settings

logger = logging.getLogger(__name__)

_FLOAT_PREFIX = re.compile(
    r"\s*(?P<sign>[+-]?)"
    r"(?:(?P<infinity>Infinity)|(?P<digits>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?))"
)
_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IngestService:
    """Turns a producer submission into a stored, broadcast reading."""

    def __init__(
        self,
        store: ReadingStore,
        hub: BroadcastHub,
        clock: Clock = _utc_now,
        sensor_id_prefix: str = "sensor-",
        default_level: str = "unknown",
    ) -> None:
        self.store = store
        self.hub = hub
        self.clock = clock
        self.sensor_id_prefix = sensor_id_prefix
        self.default_level = default_level

    def ingest(self, submission: Mapping[str, Any], source_address: Optional[str] = None) -> GasReading:
        """Validate, store and fan out a single submission.

        Only the presence of ``ppm`` is required. Numeric fields that cannot
        be parsed are kept as NaN instead of failing the request.
        """
        ppm_raw = submission.get("ppm")
        if ppm_raw is None:
            logger.info(
                "Rejected submission without ppm",
                extra={"client": source_address, "reason": "missing ppm"},
            )
            raise ValidationError("ppm", "The ppm parameter is required.")

        sensor_id = self.resolve_sensor_id(submission.get("sensorId"), source_address)
        level = submission.get("level")

        reading = GasReading(
            sensor_id=sensor_id,
            ppm=self._parse_float(ppm_raw, "ppm"),
            raw=self._parse_int(submission.get("raw"), "raw"),
            rs=self._parse_float(submission.get("rs"), "rs"),
            level=str(level) if level not in (None, "") else self.default_level,
            timestamp=self.clock(),
        )

        history_length = self.store.append(sensor_id, reading)
        delivered = self.hub.on_new_reading(reading)
        logger.info(
            "Reading received",
            extra={
                "sensor_id": sensor_id,
                "history_length": history_length,
                "subscriber_count": delivered,
            },
        )
        return reading

    def resolve_sensor_id(self, supplied: Any, source_address: Optional[str]) -> str:
        if supplied not in (None, ""):
            return str(supplied)
        return f"{self.sensor_id_prefix}{source_address or 'unknown'}"

    @staticmethod
    def _parse_float(value: Any, field: str) -> float:
        if value is None:
            return math.nan
        if isinstance(value, bool):
            return _unparseable(field, value)
        if isinstance(value, float):
            return value
        if isinstance(value, int):
            try:
                return float(value)
            except OverflowError:
                return math.copysign(math.inf, value)

        # Leading numeric prefix wins, so "120ppm" reads as 120.
        match = _FLOAT_PREFIX.match(str(value))
        if match is None:
            return _unparseable(field, value)
        sign = match.group("sign")
        if match.group("infinity"):
            return -math.inf if sign == "-" else math.inf
        return float(sign + match.group("digits"))

    @staticmethod
    def _parse_int(value: Any, field: str) -> int | float:
        if value is None:
            return math.nan
        if isinstance(value, bool):
            return _unparseable(field, value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if math.isfinite(value) else math.nan

        # Digits before any fraction or suffix, so "7.9" reads as 7 and "512x" as 512.
        match = _INT_PREFIX.match(str(value))
        if match is None:
            return _unparseable(field, value)
        return int(match.group(1))


def _unparseable(field: str, value: Any) -> float:
    logger.debug(
        "Unparseable numeric field stored as NaN",
        extra={"field": field, "invalid_value": value},
    )
    return math.nan


@lru_cache
def build_default_ingest() -> IngestService:
    """Factory that wires the ingest service to the shared store and hub."""
    settings = get_settings()
    return IngestService(
        store=build_default_store(),
        hub=build_default_hub(),
        sensor_id_prefix=settings.sensor_id_prefix,
        default_level=settings.default_level,
    )
