from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Dict[str, Any]) -> None:
    echo_heading("Submitted Reading")
    echo_key_values(
        [
            ("fieldId", reading.get("fieldId")),
            ("sensorType", reading.get("sensorType")),
            ("value", reading.get("value")),
            ("timestamp", reading.get("timestamp")),
        ]
    )


def render_health(payload: Dict[str, Any], base_url: str) -> None:
    echo_heading("Service Health")
    echo_key_values([("url", base_url), ("status", payload.get("status", "unknown"))])
