from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from itertools import count
from pathlib import Path
from typing import Iterator, Optional

import pytest

from app.schemas import ReadingIn
from datastore.readings_table import ReadingsTable, reading_to_item
from models.readings import MissingFieldPolicy, Reading
from services.alerts import AlertEvaluator
from services.store import AlertLog, ReadingStore
from services.telemetry import TelemetryService, TimestampRegressionError


def _clock(start: int = 1_700_000_000_000) -> Iterator[int]:
    return count(start, 10)


def _service(
    table: Optional[ReadingsTable] = None,
    policy: MissingFieldPolicy = MissingFieldPolicy.null,
    capacity: int = 200,
) -> TelemetryService:
    ticks = _clock()
    return TelemetryService(
        store=ReadingStore(capacity=capacity),
        alert_log=AlertLog(capacity=capacity),
        evaluator=AlertEvaluator(),
        table=table,
        missing_policy=policy,
        clock=lambda: next(ticks),
    )


@pytest.fixture()
def service() -> TelemetryService:
    return _service()


def test_ingest_temperature_scenario(service: TelemetryService) -> None:
    result = service.ingest(ReadingIn(device_id="g1", temp=39.0, gsr=100))

    assert result.alerts == ["Temperature Too High"]
    assert result.reading.temp == 39.0
    assert result.reading.gsr == 100
    assert result.reading.device_id == "g1"
    assert result.reading.flex is None


def test_ingest_hall_scenario(service: TelemetryService) -> None:
    result = service.ingest(ReadingIn(device_id="g1", hall_x=3, hall_y=1, hall_z=1))

    assert result.alerts == ["Hall X Abnormal"]


def test_ingest_201_readings_evicts_first(service: TelemetryService) -> None:
    for index in range(1, 202):
        service.ingest(ReadingIn(device_id="g1", flex=float(index)))

    history = service.history(300, device_id="g1")

    assert len(history) == 200
    assert history[0].flex == 2.0
    assert history[-1].flex == 201.0
    latest = service.latest("g1")
    assert latest is not None
    assert latest.reading == history[-1]


def test_latest_round_trip_matches_ingest(service: TelemetryService) -> None:
    ingested = service.ingest(
        ReadingIn(device_id="g2", temp=37.0, force_right=31.5, accel=[0.1, 0.2, 9.8])
    )

    latest = service.latest()

    assert latest is not None
    assert latest.reading == ingested.reading
    assert latest.alerts == ingested.alerts == ["Right Grip Unsafe"]
    assert latest.reading.accel == (0.1, 0.2, 9.8)


def test_empty_service_returns_no_data(service: TelemetryService) -> None:
    assert service.latest() is None
    assert service.history() == []
    assert service.alerts() == []
    assert service.devices() == {}


def test_blank_device_id_uses_default(service: TelemetryService) -> None:
    assert service.ingest(ReadingIn()).reading.device_id == "demo"
    assert service.ingest(ReadingIn(device_id="   ")).reading.device_id == "demo"


def test_blank_device_id_queries_reach_default_device(service: TelemetryService) -> None:
    ingested = service.ingest(ReadingIn(device_id="", temp=39.0))

    for device_id in ("", "   ", "demo"):
        latest = service.latest(device_id)
        assert latest is not None
        assert latest.reading == ingested.reading
        assert service.history(device_id=device_id) == [ingested.reading]
        assert len(service.alerts(device_id=device_id)) == 1
    assert service.latest(" g1 ") is None
    assert "demo" in service.export_csv(device_id="")


def test_zero_policy_fills_missing_scalars() -> None:
    service = _service(policy=MissingFieldPolicy.zero)

    result = service.ingest(ReadingIn(device_id="g1", temp=36.6))

    assert result.reading.temp == 36.6
    assert result.reading.gsr == 0.0
    assert result.reading.hall_z == 0.0
    assert result.reading.accel is None
    assert result.alerts == []


def test_null_policy_keeps_zero_distinct_from_missing(service: TelemetryService) -> None:
    result = service.ingest(ReadingIn(device_id="g1", gsr=0))

    assert result.reading.gsr == 0.0
    assert result.reading.temp is None


def test_server_timestamps_never_go_backwards() -> None:
    ticks = iter([1_000, 900, 1_200])
    service = TelemetryService(
        store=ReadingStore(),
        alert_log=AlertLog(),
        evaluator=AlertEvaluator(),
        clock=lambda: next(ticks),
    )

    stamps = [service.ingest(ReadingIn(device_id="g1")).reading.ts for _ in range(3)]

    assert stamps == [1_000, 1_000, 1_200]


def test_client_timestamp_is_kept_and_regression_rejected(service: TelemetryService) -> None:
    first = service.ingest(ReadingIn(device_id="g1", ts=5_000))
    assert first.reading.ts == 5_000

    with pytest.raises(TimestampRegressionError):
        service.ingest(ReadingIn(device_id="g1", ts=4_999))

    assert service.ingest(ReadingIn(device_id="g2", ts=10)).reading.ts == 10
    assert len(service.history(10, device_id="g1")) == 1


def test_alert_log_only_holds_alerting_readings(service: TelemetryService) -> None:
    service.ingest(ReadingIn(device_id="g1", temp=36.0))
    service.ingest(ReadingIn(device_id="g1", temp=40.0))
    service.ingest(ReadingIn(device_id="g1", gsr=10))
    service.ingest(ReadingIn(device_id="g2", flex=120, hall_y=2.5))

    entries = service.alerts()

    assert [entry.alerts for entry in entries] == [
        ("Temperature Too High",),
        ("Hall Y Abnormal", "Flex Too Large"),
    ]
    assert [entry.device_id for entry in service.alerts(device_id="g2")] == ["g2"]


def test_alert_log_bounded_to_capacity() -> None:
    service = _service(capacity=200)
    for index in range(300):
        temp = 40.0 if index % 2 else 36.0
        service.ingest(ReadingIn(device_id="g1", temp=temp))

    assert len(service.alerts(1_000)) == 150
    for index in range(300):
        service.ingest(ReadingIn(device_id="g1", temp=41.0))
    assert len(service.alerts(1_000)) == 200


def test_history_uses_default_limit(service: TelemetryService) -> None:
    for _ in range(150):
        service.ingest(ReadingIn(device_id="g1"))

    assert len(service.history()) == 100
    assert len(service.history(limit=150)) == 150


def test_alerts_are_logged_with_context(service: TelemetryService, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        service.ingest(ReadingIn(device_id="g7", temp=39.5))

    records = [record for record in caplog.records if record.name == "services.telemetry"]
    assert records, "Expected alert warnings to be logged."
    assert records[0].getMessage() == "Reading exceeded thresholds"
    assert getattr(records[0], "device_id", None) == "g7"
    assert getattr(records[0], "alerts", None) == ["Temperature Too High"]


def test_ingest_persists_to_table(tmp_path: Path) -> None:
    table = ReadingsTable(name="test", persistence_path=tmp_path / "readings.jsonl")
    service = _service(table=table)

    result = service.ingest(ReadingIn(device_id="g1", temp=37.2, fsr=[1.0, 2.0]))

    stored = table.get_item("g1", result.reading.ts)
    assert stored == result.reading
    assert stored is not None and stored.fsr == (1.0, 2.0)


def test_persistence_failure_does_not_block_ingest(tmp_path: Path, caplog) -> None:
    class BrokenTable(ReadingsTable):
        def put_item(self, reading: Reading) -> None:
            raise OSError("disk full")

    service = _service(table=BrokenTable(name="broken"))

    with caplog.at_level(logging.WARNING):
        result = service.ingest(ReadingIn(device_id="g1", temp=39.0))

    assert result.alerts == ["Temperature Too High"]
    assert service.latest() is not None
    assert any(
        record.getMessage() == "Failed to persist reading" for record in caplog.records
    )


def test_warm_start_restores_newest_readings(tmp_path: Path) -> None:
    path = tmp_path / "readings.jsonl"
    first = _service(table=ReadingsTable(name="test", persistence_path=path), capacity=3)
    for temp in (36.0, 39.0, 36.5, 40.0, 37.0):
        first.ingest(ReadingIn(device_id="g1", temp=temp))

    second = _service(table=ReadingsTable(name="test", persistence_path=path), capacity=3)
    restored = second.warm_start()

    assert restored == 3
    assert [r.temp for r in second.history()] == [36.5, 40.0, 37.0]
    assert [entry.alerts for entry in second.alerts()] == [("Temperature Too High",)]


def test_warm_start_replays_persisted_readings_in_timestamp_order(tmp_path: Path) -> None:
    path = tmp_path / "readings.jsonl"
    lines = [
        json.dumps(reading_to_item(Reading(ts=ts, device_id="g1", temp=temp)))
        for ts, temp in ((110, 39.0), (100, 36.0))
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    service = _service(table=ReadingsTable(name="test", persistence_path=path))

    assert service.warm_start() == 2

    assert [r.ts for r in service.history(device_id="g1")] == [100, 110]
    latest = service.latest("g1")
    assert latest is not None and latest.reading.ts == 110
    with pytest.raises(TimestampRegressionError):
        service.ingest(ReadingIn(device_id="g1", ts=105))
    assert service.ingest(ReadingIn(device_id="g1", ts=110)).reading.ts == 110


def test_concurrent_ingest_persists_in_timestamp_order(tmp_path: Path) -> None:
    path = tmp_path / "readings.jsonl"
    service = _service(table=ReadingsTable(name="test", persistence_path=path))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: service.ingest(ReadingIn(device_id="g1")), range(64)))

    persisted = [json.loads(line)["ts"] for line in path.read_text().splitlines()]
    assert len(persisted) == 64
    assert persisted == sorted(persisted)
    assert persisted == [r.ts for r in service.history(100, device_id="g1")]


def test_warm_start_without_table_is_noop(service: TelemetryService) -> None:
    assert service.warm_start() == 0


def test_export_csv_includes_alerts(service: TelemetryService) -> None:
    service.ingest(ReadingIn(device_id="g1", temp=39.0))

    lines = service.export_csv().splitlines()

    assert lines[0].startswith("ts,device_id,temp,gsr")
    assert lines[1].endswith("Temperature Too High")
    assert len(lines) == 2


def test_shutdown_clears_state(service: TelemetryService) -> None:
    service.ingest(ReadingIn(device_id="g1", temp=40.0))

    service.shutdown()

    assert service.latest() is None
    assert service.alerts() == []
