from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_READING_KEYS = (
    "ts",
    "device_id",
    "temp",
    "gsr",
    "force_left",
    "force_right",
    "hall_x",
    "hall_y",
    "hall_z",
    "flex",
    "accel",
    "gyro",
    "temp_points",
    "fsr",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def echo_alerts(alerts: List[str]) -> None:
    if not alerts:
        typer.echo("No alerts.")
        return
    for label in alerts:
        typer.secho(f"  - {label}", fg=typer.colors.RED)


def render_reading(payload: Dict[str, Any]) -> None:
    """Render an ingest or latest response."""
    if not payload.get("ok"):
        typer.echo("No data yet.")
        return

    reading = payload.get("reading") or {}
    echo_heading("Reading")
    echo_key_values(
        (key, reading.get(key)) for key in _READING_KEYS if reading.get(key) is not None
    )
    typer.echo()
    echo_heading("Alerts")
    echo_alerts(payload.get("alerts") or [])


def render_history(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"History ({len(readings)} readings)")
    if not readings:
        typer.echo("No readings recorded.")
        return
    for reading in readings:
        values = " ".join(
            f"{key}={reading[key]}"
            for key in _READING_KEYS[2:]
            if reading.get(key) is not None
        )
        typer.echo(f"{reading.get('ts')} [{reading.get('device_id')}] {values}")


def render_alert_log(entries: List[Dict[str, Any]]) -> None:
    echo_heading(f"Alert Log ({len(entries)} entries)")
    if not entries:
        typer.echo("No alerts recorded.")
        return
    for entry in entries:
        labels = ", ".join(entry.get("alerts") or [])
        typer.echo(f"{entry.get('ts')} [{entry.get('device_id')}] {labels}")
