"""Domain values shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID


@dataclass(frozen=True, slots=True)
class TelemetryReading:
    """A single reading submitted by a device."""

    field_id: UUID
    sensor_type: str
    value: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class DeviceContext:
    """Identity and display attributes taken from the verified token."""

    device_id: UUID
    farmer_name: Optional[str] = None
    field_name: Optional[str] = None
    property_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MessageAttribute:
    data_type: str
    string_value: str

    @classmethod
    def string(cls, value: str) -> "MessageAttribute":
        return cls(data_type="String", string_value=value)

    def to_dict(self) -> Dict[str, str]:
        return {"DataType": self.data_type, "StringValue": self.string_value}


@dataclass(frozen=True, slots=True)
class OutboundEnvelope:
    """Message published for downstream consumers.

    ``processing_id`` identifies one publish attempt, not the reading, so two
    envelopes built from the same reading never share it.
    """

    reading: TelemetryReading
    context: DeviceContext
    processing_id: UUID

    @property
    def sensor_device_id(self) -> UUID:
        return self.context.device_id

    def to_message(self) -> Dict[str, Any]:
        # Every key is always present, including null display names.
        return {
            "FieldId": str(self.reading.field_id),
            "fieldName": self.context.field_name,
            "propertyName": self.context.property_name,
            "farmerName": self.context.farmer_name,
            "SensorType": self.reading.sensor_type,
            "Value": self.reading.value,
            "Timestamp": self.reading.timestamp.isoformat(),
            "ProcessingId": str(self.processing_id),
            "SensorDeviceId": str(self.sensor_device_id),
        }

    def attributes(self) -> Dict[str, MessageAttribute]:
        return {"SensorType": MessageAttribute.string(self.reading.sensor_type)}
