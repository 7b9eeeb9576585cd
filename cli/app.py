from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alert_log, render_history, render_reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the glove telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _parse_points(value: Optional[str]) -> Optional[List[float]]:
    if value is None:
        return None
    try:
        return [float(item) for item in value.split(",") if item.strip()]
    except ValueError as exc:
        raise typer.BadParameter(f"Expected comma-separated numbers, got {value!r}.") from exc


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Telemetry API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    device_id: Optional[str] = typer.Option(None, "--device", "-d", help="Glove identifier."),
    ts: Optional[int] = typer.Option(None, "--ts", help="Capture time in ms since epoch."),
    temp: Optional[float] = typer.Option(None, "--temp"),
    gsr: Optional[float] = typer.Option(None, "--gsr"),
    force_left: Optional[float] = typer.Option(None, "--force-left"),
    force_right: Optional[float] = typer.Option(None, "--force-right"),
    hall_x: Optional[float] = typer.Option(None, "--hall-x"),
    hall_y: Optional[float] = typer.Option(None, "--hall-y"),
    hall_z: Optional[float] = typer.Option(None, "--hall-z"),
    flex: Optional[float] = typer.Option(None, "--flex"),
    accel: Optional[str] = typer.Option(None, "--accel", help="Accelerometer as x,y,z."),
    gyro: Optional[str] = typer.Option(None, "--gyro", help="Gyroscope as x,y,z."),
    temp_points: Optional[str] = typer.Option(
        None, "--temp-points", help="Comma-separated temperature points."
    ),
    fsr: Optional[str] = typer.Option(None, "--fsr", help="Comma-separated force sensor values."),
) -> None:
    """Send one reading and show the alerts it raised."""
    state = _get_state(ctx)
    candidate: Dict[str, Any] = {
        "device_id": device_id,
        "ts": ts,
        "temp": temp,
        "gsr": gsr,
        "force_left": force_left,
        "force_right": force_right,
        "hall_x": hall_x,
        "hall_y": hall_y,
        "hall_z": hall_z,
        "flex": flex,
        "accel": _parse_points(accel),
        "gyro": _parse_points(gyro),
        "temp_points": _parse_points(temp_points),
        "fsr": _parse_points(fsr),
    }
    payload = {key: value for key, value in candidate.items() if value is not None}
    response = state.client.send_reading(payload)
    alerts = response.get("alerts") or []
    colour = typer.colors.RED if alerts else typer.colors.GREEN
    typer.secho(f"Reading accepted with {len(alerts)} alert(s).", fg=colour)
    render_reading(response)


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    device_id: Optional[str] = typer.Option(None, "--device", "-d", help="Glove identifier."),
) -> None:
    """Show the most recent reading and its alerts."""
    state = _get_state(ctx)
    render_reading(state.client.get_latest(device_id))


@app.command("history")
def history_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    device_id: Optional[str] = typer.Option(None, "--device", "-d", help="Glove identifier."),
) -> None:
    """List recent readings, oldest first."""
    state = _get_state(ctx)
    render_history(state.client.get_history(limit=limit, device_id=device_id))


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    device_id: Optional[str] = typer.Option(None, "--device", "-d", help="Glove identifier."),
) -> None:
    """List recent alert log entries."""
    state = _get_state(ctx)
    render_alert_log(state.client.get_alerts(limit=limit, device_id=device_id))


@app.command("export")
def export_command(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Write CSV here instead of stdout."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    device_id: Optional[str] = typer.Option(None, "--device", "-d", help="Glove identifier."),
) -> None:
    """Download recent readings as CSV."""
    state = _get_state(ctx)
    body = state.client.export_csv(limit=limit, device_id=device_id)
    if output is None:
        typer.echo(body, nl=False)
        return
    output.write_text(body, encoding="utf-8")
    typer.secho(f"Wrote {output}", fg=typer.colors.GREEN)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", envvar="PORT", help="Port to listen on."),
) -> None:
    """Run the telemetry API with uvicorn."""
    typer.echo(f"Serving glove telemetry on {host}:{port}")
    uvicorn.run("app.main:app", host=host, port=port)
