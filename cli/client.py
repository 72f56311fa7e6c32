from __future__ import annotations

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the ingestion service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_reading(
        self,
        field_id: UUID,
        sensor_type: str,
        value: float,
        timestamp: datetime,
    ) -> None:
        if not self._config.token:
            raise typer.BadParameter("A device token is required (--token or DEVICE_TOKEN).")

        body = {
            "fieldId": str(field_id),
            "sensorType": sensor_type,
            "value": value,
            "timestamp": timestamp.isoformat(),
        }
        try:
            response = self._client.post(
                "/api/telemetry",
                json=body,
                headers={"Authorization": f"Bearer {self._config.token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)

    def health(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/health")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        kind: str | None = None
        detail: str | None = None
        try:
            data = exc.response.json()
            kind = data.get("kind")
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        description = f"{kind}: {detail}" if kind else detail
        message = (
            f"Request failed with status {exc.response.status_code}: "
            f"{description or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
