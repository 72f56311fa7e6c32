"""Validation and publication of device telemetry."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional
from uuid import UUID, uuid4

from models.records import DeviceContext, OutboundEnvelope, TelemetryReading
from services.errors import BadInput, PublishFailure
from settings import Settings, get_settings
from storage.mock_topic import TopicPublisher, build_default_publisher

logger = logging.getLogger(__name__)

OUT_OF_BOUNDS_MESSAGE = "value outside operational bounds"


@dataclass(frozen=True)
class PublishReceipt:
    processing_id: UUID
    message_id: str


class TelemetryProcessor:
    """Validates a reading and publishes it to the configured topic.

    Each call is a single attempt: nothing is retried and nothing is kept on
    the instance between calls.
    """

    def __init__(
        self,
        publisher: TopicPublisher,
        settings_provider: Callable[[], Settings] = get_settings,
    ) -> None:
        self.publisher = publisher
        self._settings_provider = settings_provider

    def process_telemetry(
        self,
        device_id: UUID,
        farmer_name: Optional[str],
        field_name: Optional[str],
        property_name: Optional[str],
        reading: TelemetryReading,
    ) -> PublishReceipt:
        settings = self._settings_provider()
        self._validate(reading, settings)

        context = DeviceContext(
            device_id=device_id,
            farmer_name=farmer_name,
            field_name=field_name,
            property_name=property_name,
        )
        envelope = OutboundEnvelope(reading=reading, context=context, processing_id=uuid4())
        topic = settings.telemetry_topic
        log_extra = {
            "device_id": str(device_id),
            "processing_id": str(envelope.processing_id),
            "topic": topic,
            "sensor_type": reading.sensor_type,
        }

        try:
            body = json.dumps(envelope.to_message())
            message_id = self.publisher.publish(topic, body, envelope.attributes())
        except Exception as exc:
            logger.error(
                "Publishing telemetry failed",
                exc_info=exc,
                extra={**log_extra, "reason": type(exc).__name__},
            )
            raise PublishFailure(exc) from exc

        logger.info("Telemetry published", extra={**log_extra, "message_id": message_id})
        return PublishReceipt(processing_id=envelope.processing_id, message_id=message_id)

    @staticmethod
    def _validate(reading: TelemetryReading, settings: Settings) -> None:
        value = reading.value
        if not math.isfinite(value) or not settings.value_min <= value <= settings.value_max:
            logger.warning(
                "Rejecting reading outside operational bounds",
                extra={"sensor_type": reading.sensor_type, "reason": f"value={value}"},
            )
            raise BadInput(OUT_OF_BOUNDS_MESSAGE)


@lru_cache
def build_default_processor() -> TelemetryProcessor:
    """Factory that wires the processor with the default topic publisher."""
    return TelemetryProcessor(publisher=build_default_publisher())
