"""Unit tests for the bounded per-sensor reading store."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from datastore.reading_store import ReadingStore
from models.records import GasReading

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _reading(sensor_id: str, index: int) -> GasReading:
    return GasReading(
        sensor_id=sensor_id,
        ppm=float(index),
        raw=index,
        rs=1.5,
        level="normal",
        timestamp=_BASE_TIME + timedelta(seconds=index),
    )


def test_append_creates_history_lazily() -> None:
    store = ReadingStore()

    assert store.snapshot() == {}
    assert store.history("sensor-a") == []

    length = store.append("sensor-a", _reading("sensor-a", 0))

    assert length == 1
    assert store.sensor_ids() == ["sensor-a"]
    assert len(store) == 1


def test_history_is_most_recent_first() -> None:
    store = ReadingStore()
    for index in range(5):
        store.append("sensor-a", _reading("sensor-a", index))

    timestamps = [reading.timestamp for reading in store.history("sensor-a")]

    assert timestamps == sorted(timestamps, reverse=True)
    assert store.history("sensor-a")[0].ppm == 4.0


def test_two_hundred_and_one_appends_evict_the_first() -> None:
    store = ReadingStore(history_limit=200)
    readings = [_reading("sensor-a", index) for index in range(201)]
    for reading in readings:
        store.append("sensor-a", reading)

    history = store.history("sensor-a")

    assert len(history) == 200
    assert readings[0] not in history
    assert history == list(reversed(readings[1:]))


def test_length_never_exceeds_limit() -> None:
    store = ReadingStore(history_limit=3)
    for index in range(10):
        length = store.append("sensor-a", _reading("sensor-a", index))
        assert length <= 3

    assert [reading.raw for reading in store.history("sensor-a")] == [9, 8, 7]


def test_snapshot_is_isolated_from_later_appends() -> None:
    store = ReadingStore()
    store.append("sensor-a", _reading("sensor-a", 0))

    snapshot = store.snapshot()
    store.append("sensor-a", _reading("sensor-a", 1))
    store.append("sensor-b", _reading("sensor-b", 2))
    snapshot["sensor-a"].clear()

    assert list(snapshot) == ["sensor-a"]
    assert len(store.history("sensor-a")) == 2


def test_invalid_limit_is_rejected() -> None:
    with pytest.raises(ValueError):
        ReadingStore(history_limit=0)


def test_concurrent_appends_keep_sensors_independent() -> None:
    store = ReadingStore(history_limit=50)
    sensors = ["sensor-a", "sensor-b"]
    barrier = threading.Barrier(len(sensors) * 2)

    def worker(sensor_id: str) -> None:
        barrier.wait()
        for index in range(200):
            store.append(sensor_id, _reading(sensor_id, index))

    threads = [
        threading.Thread(target=worker, args=(sensor_id,))
        for sensor_id in sensors
        for _ in range(2)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = store.snapshot()
    assert set(snapshot) == set(sensors)
    for sensor_id, history in snapshot.items():
        assert len(history) == 50
        assert all(reading.sensor_id == sensor_id for reading in history)


def test_snapshots_never_observe_partial_eviction() -> None:
    limit = 20
    store = ReadingStore(history_limit=limit)
    sensors = ["sensor-a", "sensor-b", "sensor-c"]
    writers_done = threading.Event()
    snapshots: list[dict[str, list[GasReading]]] = []

    def writer(sensor_id: str) -> None:
        for index in range(500):
            store.append(sensor_id, _reading(sensor_id, index))

    def reader() -> None:
        while not writers_done.is_set():
            snapshots.append(store.snapshot())
        snapshots.append(store.snapshot())

    reader_thread = threading.Thread(target=reader)
    writer_threads = [threading.Thread(target=writer, args=(sensor_id,)) for sensor_id in sensors]
    reader_thread.start()
    for thread in writer_threads:
        thread.start()
    for thread in writer_threads:
        thread.join()
    writers_done.set()
    reader_thread.join()

    assert snapshots
    for snapshot in snapshots:
        for sensor_id, history in snapshot.items():
            assert len(history) <= limit
            assert all(reading.sensor_id == sensor_id for reading in history)
            timestamps = [reading.timestamp for reading in history]
            assert all(newer > older for newer, older in zip(timestamps, timestamps[1:]))
            if history:
                # Entries are always a contiguous window ending at the newest reading.
                newest = history[0].raw
                assert [reading.raw for reading in history] == list(range(newest, newest - len(history), -1))
    assert all(len(history) == limit for history in snapshots[-1].values())
