from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_health, render_reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for submitting telemetry to the ingestion service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _parse_timestamp(value: Optional[str]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid ISO-8601 timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Ingestion API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        help="Device bearer token (defaults to DEVICE_TOKEN env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, token=token, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    field_id: UUID = typer.Option(..., "--field-id", help="Field identifier (UUID)."),
    sensor_type: str = typer.Option(..., "--sensor-type", help="Sensor type, e.g. Temperature."),
    value: float = typer.Option(..., "--value", help="Measured value."),
    timestamp: Optional[str] = typer.Option(
        None,
        "--timestamp",
        help="ISO-8601 reading time (defaults to now, UTC).",
    ),
) -> None:
    """Submit a single reading."""
    state = _get_state(ctx)
    reading_time = _parse_timestamp(timestamp)
    typer.echo(f"Sending reading to {state.config.base_url} ...")
    state.client.send_reading(field_id, sensor_type, value, reading_time)
    typer.secho("Telemetry accepted.", fg=typer.colors.GREEN)
    render_reading(
        {
            "fieldId": str(field_id),
            "sensorType": sensor_type,
            "value": value,
            "timestamp": reading_time.isoformat(),
        }
    )


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Show the service health status."""
    state = _get_state(ctx)
    payload = state.client.health()
    render_health(payload, state.config.base_url)
