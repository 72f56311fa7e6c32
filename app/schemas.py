"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from models.records import TelemetryReading


class TelemetryRequest(BaseModel):
    """Reading submitted by an authenticated device."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field_id: UUID = Field(..., alias="fieldId")
    sensor_type: str = Field(..., alias="sensorType")
    value: float
    timestamp: datetime

    def to_reading(self) -> TelemetryReading:
        return TelemetryReading(
            field_id=self.field_id,
            sensor_type=self.sensor_type,
            value=self.value,
            timestamp=self.timestamp,
        )


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    kind: str = Field(..., description="Stable machine-readable failure kind.")
    detail: str
