"""Bounded in-memory storage for recent readings and raised alerts."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Dict, List, Optional, Sequence

from models.readings import AlertRecord, Reading


def _tail(items: Sequence, limit: int) -> list:
    if limit <= 0:
        return []
    return list(items)[-limit:]


class ReadingStore:
    """Append-only, capacity-bounded reading history with latest pointers.

    Readings are kept twice: once in a global sequence and once in a
    per-device partition. Both evict oldest-first once ``capacity`` is
    exceeded.
    """

    def __init__(self, capacity: int = 200) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._all: Deque[Reading] = deque(maxlen=capacity)
        self._by_device: Dict[str, Deque[Reading]] = {}
        self._latest: Optional[Reading] = None
        self._latest_by_device: Dict[str, Reading] = {}
        self._lock = Lock()

    def record(self, reading: Reading) -> None:
        with self._lock:
            self._all.append(reading)
            partition = self._by_device.get(reading.device_id)
            if partition is None:
                partition = deque(maxlen=self.capacity)
                self._by_device[reading.device_id] = partition
            partition.append(reading)
            self._latest = reading
            self._latest_by_device[reading.device_id] = reading

    def latest(self, device_id: Optional[str] = None) -> Optional[Reading]:
        with self._lock:
            if device_id is None:
                return self._latest
            return self._latest_by_device.get(device_id)

    def history(self, limit: int, device_id: Optional[str] = None) -> List[Reading]:
        """Return up to ``limit`` of the newest readings, oldest first."""

        with self._lock:
            if device_id is None:
                return _tail(self._all, limit)
            partition = self._by_device.get(device_id)
            if partition is None:
                return []
            return _tail(partition, limit)

    def devices(self) -> Dict[str, int]:
        with self._lock:
            return {device_id: len(items) for device_id, items in self._by_device.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._all)

    def clear(self) -> None:
        with self._lock:
            self._all.clear()
            self._by_device.clear()
            self._latest = None
            self._latest_by_device.clear()


class AlertLog:
    """Capacity-bounded log of readings that raised at least one alert."""

    def __init__(self, capacity: int = 200) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: Deque[AlertRecord] = deque(maxlen=capacity)
        self._lock = Lock()

    def record_if_non_empty(
        self, ts: int, alerts: Sequence[str], device_id: str
    ) -> Optional[AlertRecord]:
        if not alerts:
            return None
        entry = AlertRecord(ts=ts, device_id=device_id, alerts=tuple(alerts))
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self, limit: int, device_id: Optional[str] = None) -> List[AlertRecord]:
        """Return up to ``limit`` of the newest entries, newest last."""

        with self._lock:
            entries = list(self._entries)
        if device_id is not None:
            entries = [entry for entry in entries if entry.device_id == device_id]
        return _tail(entries, limit)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
