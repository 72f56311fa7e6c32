from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterator
from uuid import UUID

import jwt
import pytest

from services.processor import build_default_processor
from settings import get_settings
from storage.mock_ssm import build_default_parameter_store
from storage.mock_topic import build_default_publisher

TEST_SECRET = "test-signing-key-with-at-least-32-bytes!"
TEST_TOPIC = "arn:aws:sns:us-east-1:123456789:test-topic"

_CACHES = (
    get_settings,
    build_default_publisher,
    build_default_parameter_store,
    build_default_processor,
)

_MANAGED_ENV = (
    "JWT_PARAMETER_NAME",
    "JWT_ALGORITHM",
    "JWT_ISSUER",
    "JWT_AUDIENCE",
    "DEVICE_ROLE",
    "TELEMETRY_VALUE_MIN",
    "TELEMETRY_VALUE_MAX",
    "LOG_LEVEL",
    "MOCK_TOPIC_RETENTION",
)


def _clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch) -> Iterator[None]:
    for name in _MANAGED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_ENVIRONMENT", "development")
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("TELEMETRY_TOPIC", TEST_TOPIC)
    monkeypatch.setenv("MOCK_TOPIC_PERSISTENCE_PATH", "")
    monkeypatch.setenv("MOCK_SSM_PERSISTENCE_PATH", "")
    _clear_caches()
    yield
    _clear_caches()


def make_token(
    device_id: UUID | str | None,
    role: Any = "Device",
    secret: str = TEST_SECRET,
    expires_in: timedelta = timedelta(minutes=5),
    **claims: Any,
) -> str:
    payload: dict[str, Any] = {"exp": datetime.now(timezone.utc) + expires_in}
    if device_id is not None:
        payload["sub"] = str(device_id)
    if role is not None:
        payload["role"] = role
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token
