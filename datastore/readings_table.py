from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from models.readings import Reading
from settings import get_settings

logger = logging.getLogger(__name__)

_reading_adapter = TypeAdapter(Reading)


def reading_to_item(reading: Reading) -> Dict[str, Any]:
    """Serialize a reading; array channels become JSON arrays."""
    return _reading_adapter.dump_python(reading, mode="json")


def item_to_reading(item: Dict[str, Any]) -> Reading:
    return _reading_adapter.validate_python(item)


class ReadingsTable:
    """Append-only durable table of readings keyed by device id and timestamp.

    Each reading is one JSON line in ``persistence_path``; without a path the
    table only lives in memory.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: List[Reading] = []
        self._index: Dict[Tuple[str, int], Reading] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, reading: Reading) -> None:
        with self._lock:
            self._append(reading)
            if self.persistence_path:
                line = json.dumps(reading_to_item(reading), sort_keys=True)
                with self.persistence_path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")

    def get_item(self, device_id: str, ts: int) -> Optional[Reading]:
        """Return the reading stored under ``(device_id, ts)``.

        Duplicate keys keep every line in ``scan()``; lookups return the last one written.
        """
        with self._lock:
            return self._index.get((device_id, ts))

    def scan(self) -> List[Reading]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _append(self, reading: Reading) -> None:
        self._items.append(reading)
        self._index[(reading.device_id, reading.ts)] = reading

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        with self.persistence_path.open("r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    reading = item_to_reading(json.loads(line))
                except (json.JSONDecodeError, ValidationError):
                    logger.warning(
                        "Skipping unreadable persisted reading",
                        extra={
                            "table": self.name,
                            "persistence_path": str(self.persistence_path),
                            "line_number": line_number,
                        },
                    )
                    continue
                self._append(reading)


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> Optional[ReadingsTable]:
    """Return the configured table, or ``None`` when persistence is disabled."""
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    table_path = settings.table_persistence_path if path is None else path
    if not table_path:
        return None
    return ReadingsTable(name=table_name, persistence_path=Path(table_path))
