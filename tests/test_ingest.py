"""Unit tests for submission validation and normalization."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest

from datastore.reading_store import ReadingStore
from services.broadcast import BroadcastHub, Subscriber
from services.errors import ValidationError
from services.ingest import IngestService


class StepClock:
    def __init__(self) -> None:
        self._ticks: Iterator[int] = iter(range(10_000))

    def __call__(self) -> datetime:
        return datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=next(self._ticks))


@pytest.fixture
def store() -> ReadingStore:
    return ReadingStore(history_limit=200)


@pytest.fixture
def hub(store: ReadingStore) -> BroadcastHub:
    return BroadcastHub(store=store)


@pytest.fixture
def service(store: ReadingStore, hub: BroadcastHub) -> IngestService:
    return IngestService(store=store, hub=hub, clock=StepClock())


def test_missing_ppm_raises_and_leaves_store_untouched(service: IngestService, store: ReadingStore) -> None:
    service.ingest({"sensorId": "sensor-a", "ppm": "1"})
    before = store.snapshot()

    with pytest.raises(ValidationError) as excinfo:
        service.ingest({"sensorId": "sensor-a", "raw": "12"})

    assert excinfo.value.field == "ppm"
    assert store.snapshot() == before
    assert len(store.history("sensor-a")) == 1


def test_missing_ppm_is_not_broadcast(service: IngestService, hub: BroadcastHub) -> None:
    subscriber = Subscriber()
    hub.on_subscriber_join(subscriber)
    subscriber.drain()

    with pytest.raises(ValidationError):
        service.ingest({"ppm": None})

    assert subscriber.drain() == []


def test_fields_are_parsed_and_defaulted(service: IngestService) -> None:
    reading = service.ingest({"sensorId": "mq-135", "ppm": "120.5", "raw": "512", "rs": "3.25"})

    assert reading.sensor_id == "mq-135"
    assert reading.ppm == 120.5
    assert reading.raw == 512
    assert reading.rs == 3.25
    assert reading.level == "unknown"
    assert reading.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_non_numeric_raw_becomes_nan(service: IngestService, store: ReadingStore) -> None:
    reading = service.ingest({"sensorId": "sensor-a", "ppm": "80", "raw": "abc"})

    stored = store.history("sensor-a")[0]
    assert stored is reading
    assert math.isnan(stored.raw)
    assert stored.ppm == 80.0


def test_unparseable_ppm_is_accepted_as_nan(service: IngestService) -> None:
    reading = service.ingest({"ppm": "not-a-number"}, source_address="10.0.0.9")

    assert math.isnan(reading.ppm)
    assert math.isnan(reading.rs)


def test_fractional_raw_truncates(service: IngestService) -> None:
    assert service.ingest({"ppm": 1, "raw": "7.9"}).raw == 7
    assert service.ingest({"ppm": 1, "raw": -3.5}).raw == -3


def test_missing_sensor_id_derives_from_source_address(service: IngestService, store: ReadingStore) -> None:
    first = service.ingest({"ppm": "120"}, source_address="10.0.0.5")
    second = service.ingest({"ppm": "121", "sensorId": ""}, source_address="10.0.0.5")

    assert first.sensor_id == second.sensor_id == "sensor-10.0.0.5"
    assert len(store.history("sensor-10.0.0.5")) == 2


def test_missing_source_address_uses_placeholder(service: IngestService) -> None:
    assert service.ingest({"ppm": "1"}).sensor_id == "sensor-unknown"


def test_ingest_broadcasts_new_reading(service: IngestService, hub: BroadcastHub) -> None:
    subscriber = Subscriber()
    hub.on_subscriber_join(subscriber)
    subscriber.drain()

    service.ingest({"sensorId": "sensor-a", "ppm": "42", "level": "high"})

    events = subscriber.drain()
    assert len(events) == 1
    assert events[0]["type"] == "new_reading"
    assert events[0]["payload"]["sensorId"] == "sensor-a"
    assert events[0]["payload"]["level"] == "high"
    assert events[0]["payload"]["timestamp"] == "2024-01-01T00:00:00.000Z"


def test_custom_prefix_and_level(store: ReadingStore, hub: BroadcastHub) -> None:
    service = IngestService(
        store=store, hub=hub, clock=StepClock(), sensor_id_prefix="esp-", default_level="n/a"
    )

    reading = service.ingest({"ppm": "5"}, source_address="192.168.1.20")

    assert reading.sensor_id == "esp-192.168.1.20"
    assert reading.level == "n/a"


def test_oversized_integer_ppm_becomes_infinite(service: IngestService) -> None:
    huge = int("9" * 400)

    reading = service.ingest({"ppm": huge, "rs": -huge})

    assert reading.ppm == math.inf
    assert reading.rs == -math.inf


@pytest.mark.parametrize(
    ("ppm", "expected"),
    [
        ("120ppm", 120.0),
        ("  -4.5e1 units", -45.0),
        (".5", 0.5),
        ("1e", 1.0),
        ("-Infinity", -math.inf),
    ],
)
def test_ppm_uses_leading_numeric_prefix(service: IngestService, ppm: str, expected: float) -> None:
    assert service.ingest({"ppm": ppm}).ppm == expected


@pytest.mark.parametrize(("raw", "expected"), [("512x", 512), (" -7.9", -7), ("+3", 3)])
def test_raw_uses_leading_integer_prefix(service: IngestService, raw: str, expected: int) -> None:
    assert service.ingest({"ppm": "1", "raw": raw}).raw == expected


@pytest.mark.parametrize("ppm", ["ppm120", "nan", "inf", ""])
def test_strings_without_numeric_prefix_become_nan(service: IngestService, ppm: str) -> None:
    assert math.isnan(service.ingest({"ppm": ppm}).ppm)
