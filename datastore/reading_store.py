from __future__ import annotations

from collections import deque
from functools import lru_cache
from threading import Lock
from typing import Deque, Dict, List, Optional

from models.records import GasReading
from settings import get_settings


class ReadingStore:
    """Bounded, most-recent-first reading history per sensor.

    A single lock serializes appends and snapshots, so no reader ever sees a
    history between the insert and the eviction of its oldest entry.
    """

    def __init__(self, history_limit: int = 200) -> None:
        if history_limit <= 0:
            raise ValueError("history_limit must be positive.")
        self.history_limit = history_limit
        self._histories: Dict[str, Deque[GasReading]] = {}
        self._lock = Lock()

    def append(self, sensor_id: str, reading: GasReading) -> int:
        """Insert ``reading`` at the front of the sensor's history.

        Returns the history length after eviction.
        """
        with self._lock:
            history = self._histories.get(sensor_id)
            if history is None:
                history = deque()
                self._histories[sensor_id] = history
            history.appendleft(reading)
            if len(history) > self.history_limit:
                history.pop()
            return len(history)

    def snapshot(self) -> Dict[str, List[GasReading]]:
        """Return a copy of every sensor's history, newest first."""

        with self._lock:
            return {sensor_id: list(history) for sensor_id, history in self._histories.items()}

    def history(self, sensor_id: str) -> List[GasReading]:
        with self._lock:
            history = self._histories.get(sensor_id)
            return list(history) if history is not None else []

    def sensor_ids(self) -> List[str]:
        with self._lock:
            return list(self._histories)

    def __len__(self) -> int:
        with self._lock:
            return len(self._histories)


@lru_cache
def build_default_store(history_limit: Optional[int] = None) -> ReadingStore:
    settings = get_settings()
    limit = settings.history_limit if history_limit is None else history_limit
    return ReadingStore(history_limit=limit)
