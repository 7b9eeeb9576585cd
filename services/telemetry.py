"""Ingest orchestration and query facade over the reading store."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict, List, Optional

from app.schemas import ReadingIn
from datastore.readings_table import ReadingsTable, build_default_table
from models.readings import (
    ARRAY_FIELDS,
    SCALAR_FIELDS,
    AlertRecord,
    MissingFieldPolicy,
    Reading,
)
from services.alerts import AlertEvaluator
from services.export import render_csv
from services.store import AlertLog, ReadingStore
from settings import get_settings

logger = logging.getLogger(__name__)


class TimestampRegressionError(ValueError):
    """Raised when a client timestamp predates the device's latest reading."""


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class IngestResult:
    reading: Reading
    alerts: List[str] = field(default_factory=list)


class TelemetryService:
    """Coordinates normalization, alerting, in-memory history and persistence."""

    def __init__(
        self,
        store: ReadingStore,
        alert_log: AlertLog,
        evaluator: AlertEvaluator,
        table: Optional[ReadingsTable] = None,
        default_device_id: str = "demo",
        missing_policy: MissingFieldPolicy = MissingFieldPolicy.null,
        default_limit: int = 100,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.store = store
        self.alert_log = alert_log
        self.evaluator = evaluator
        self.table = table
        self.default_device_id = default_device_id
        self.missing_policy = MissingFieldPolicy(missing_policy)
        self.default_limit = default_limit
        self._clock = clock
        self._ingest_lock = Lock()

    def resolve_device_id(self, device_id: Optional[str]) -> str:
        return (device_id or "").strip() or self.default_device_id

    def _query_device_id(self, device_id: Optional[str]) -> Optional[str]:
        return None if device_id is None else self.resolve_device_id(device_id)

    def normalize(self, payload: ReadingIn, ts: int) -> Reading:
        """Build a reading from a raw payload, applying the missing-field policy."""
        device_id = self.resolve_device_id(payload.device_id)
        fill = 0.0 if self.missing_policy is MissingFieldPolicy.zero else None

        values: Dict[str, object] = {}
        for name in SCALAR_FIELDS:
            raw = getattr(payload, name)
            values[name] = fill if raw is None else float(raw)
        for name in ARRAY_FIELDS:
            raw = getattr(payload, name)
            values[name] = None if raw is None else tuple(float(item) for item in raw)

        return Reading(ts=ts, device_id=device_id, **values)

    def ingest(self, payload: ReadingIn) -> IngestResult:
        """Normalize, evaluate and record one reading."""
        device_id = self.resolve_device_id(payload.device_id)

        with self._ingest_lock:
            previous = self.store.latest(device_id)
            ts = self._assign_timestamp(payload.ts, previous, device_id)
            reading = self.normalize(payload, ts)
            alerts = self.evaluator.evaluate(reading)
            self.store.record(reading)
            self.alert_log.record_if_non_empty(reading.ts, alerts, reading.device_id)
            self._persist(reading)

        logger.debug(
            "Recorded reading",
            extra={"device_id": reading.device_id, "ts": reading.ts},
        )
        if alerts:
            logger.warning(
                "Reading exceeded thresholds",
                extra={
                    "device_id": reading.device_id,
                    "ts": reading.ts,
                    "alert_count": len(alerts),
                    "alerts": alerts,
                },
            )
        return IngestResult(reading=reading, alerts=alerts)

    def latest(self, device_id: Optional[str] = None) -> Optional[IngestResult]:
        reading = self.store.latest(self._query_device_id(device_id))
        if reading is None:
            return None
        return IngestResult(reading=reading, alerts=self.evaluator.evaluate(reading))

    def history(
        self, limit: Optional[int] = None, device_id: Optional[str] = None
    ) -> List[Reading]:
        return self.store.history(
            self._resolve_limit(limit), self._query_device_id(device_id)
        )

    def alerts(
        self, limit: Optional[int] = None, device_id: Optional[str] = None
    ) -> List[AlertRecord]:
        return self.alert_log.recent(
            self._resolve_limit(limit), self._query_device_id(device_id)
        )

    def devices(self) -> Dict[str, int]:
        return self.store.devices()

    def export_csv(
        self, limit: Optional[int] = None, device_id: Optional[str] = None
    ) -> str:
        return render_csv(self.history(limit, device_id), self.evaluator.evaluate)

    def warm_start(self) -> int:
        """Reload the newest persisted readings into memory; returns how many."""
        if self.table is None:
            return 0

        # Persisted order can differ from capture order; replay chronologically.
        ordered = sorted(self.table.scan(), key=lambda reading: reading.ts)
        restored = ordered[-self.store.capacity :]
        for reading in restored:
            self.store.record(reading)
            self.alert_log.record_if_non_empty(
                reading.ts, self.evaluator.evaluate(reading), reading.device_id
            )
        if restored:
            logger.info(
                "Restored persisted readings",
                extra={"history_size": len(restored), "table": self.table.name},
            )
        return len(restored)

    def shutdown(self) -> None:
        """Drop in-memory state during application shutdown."""
        self.store.clear()
        self.alert_log.clear()

    def _resolve_limit(self, limit: Optional[int]) -> int:
        return self.default_limit if limit is None else limit

    def _assign_timestamp(
        self, requested: Optional[int], previous: Optional[Reading], device_id: str
    ) -> int:
        last_ts = previous.ts if previous is not None else None
        if requested is None:
            now = self._clock()
            return now if last_ts is None else max(now, last_ts)
        if last_ts is not None and requested < last_ts:
            logger.info(
                "Rejected out-of-order reading",
                extra={"device_id": device_id, "ts": requested, "reason": "timestamp regression"},
            )
            raise TimestampRegressionError(
                f"Timestamp {requested} precedes latest reading {last_ts} for device {device_id!r}."
            )
        return requested

    def _persist(self, reading: Reading) -> None:
        if self.table is None:
            return
        try:
            self.table.put_item(reading)
        except OSError as exc:
            logger.warning(
                "Failed to persist reading",
                exc_info=True,
                extra={
                    "device_id": reading.device_id,
                    "ts": reading.ts,
                    "table": self.table.name,
                    "reason": str(exc),
                },
            )


@lru_cache
def build_default_service() -> TelemetryService:
    """Factory that wires the service from environment settings."""
    settings = get_settings()
    service = TelemetryService(
        store=ReadingStore(capacity=settings.history_capacity),
        alert_log=AlertLog(capacity=settings.history_capacity),
        evaluator=AlertEvaluator(),
        table=build_default_table(),
        default_device_id=settings.default_device_id,
        missing_policy=MissingFieldPolicy(settings.missing_field_policy),
        default_limit=settings.history_default_limit,
    )
    service.warm_start()
    return service
