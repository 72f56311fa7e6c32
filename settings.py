from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_ENVIRONMENT_ENV = "APP_ENVIRONMENT"
_JWT_SECRET_ENV = "JWT_SECRET"
_JWT_PARAMETER_ENV = "JWT_PARAMETER_NAME"
_JWT_ALGORITHM_ENV = "JWT_ALGORITHM"
_JWT_ISSUER_ENV = "JWT_ISSUER"
_JWT_AUDIENCE_ENV = "JWT_AUDIENCE"
_DEVICE_ROLE_ENV = "DEVICE_ROLE"
_TOPIC_ENV = "TELEMETRY_TOPIC"
_TOPIC_PATH_ENV = "MOCK_TOPIC_PERSISTENCE_PATH"
_TOPIC_RETENTION_ENV = "MOCK_TOPIC_RETENTION"
_SSM_PATH_ENV = "MOCK_SSM_PERSISTENCE_PATH"
_VALUE_MIN_ENV = "TELEMETRY_VALUE_MIN"
_VALUE_MAX_ENV = "TELEMETRY_VALUE_MAX"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEVELOPMENT = "development"
PRODUCTION = "production"

DEFAULT_VALUE_MIN = -100.0
DEFAULT_VALUE_MAX = 10000.0
DEFAULT_TOPIC_RETENTION = 1000


@dataclass(frozen=True)
class Settings:
    environment: str
    jwt_secret: Optional[str]
    jwt_parameter_name: Optional[str]
    jwt_algorithm: str
    jwt_issuer: Optional[str]
    jwt_audience: Optional[str]
    device_role: str
    telemetry_topic: str
    topic_persistence_path: Optional[str]
    topic_retention: int
    ssm_persistence_path: Optional[str]
    value_min: float
    value_max: float
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_environment(default: str) -> str:
    candidate = _read_str_env(_ENVIRONMENT_ENV, default).lower()
    if candidate in {DEVELOPMENT, PRODUCTION}:
        return candidate
    return default


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_value_bounds() -> tuple[float, float]:
    lower = _read_float(_VALUE_MIN_ENV, DEFAULT_VALUE_MIN)
    upper = _read_float(_VALUE_MAX_ENV, DEFAULT_VALUE_MAX)
    if lower > upper:
        return DEFAULT_VALUE_MIN, DEFAULT_VALUE_MAX
    return lower, upper


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    value_min, value_max = _read_value_bounds()
    return Settings(
        environment=_read_environment(DEVELOPMENT),
        jwt_secret=_read_optional_env(_JWT_SECRET_ENV, None),
        jwt_parameter_name=_read_optional_env(
            _JWT_PARAMETER_ENV, "/telemetry-ingest/jwt-signing-key"
        ),
        jwt_algorithm=_read_str_env(_JWT_ALGORITHM_ENV, "HS256"),
        jwt_issuer=_read_optional_env(_JWT_ISSUER_ENV, None),
        jwt_audience=_read_optional_env(_JWT_AUDIENCE_ENV, None),
        device_role=_read_str_env(_DEVICE_ROLE_ENV, "Device"),
        telemetry_topic=_read_str_env(
            _TOPIC_ENV, "arn:aws:sns:us-east-1:000000000000:telemetry"
        ),
        topic_persistence_path=_read_optional_env(_TOPIC_PATH_ENV, None),
        topic_retention=_read_positive_int(_TOPIC_RETENTION_ENV, DEFAULT_TOPIC_RETENTION),
        ssm_persistence_path=_read_optional_env(_SSM_PATH_ENV, "./tmp/mock_ssm.json"),
        value_min=value_min,
        value_max=value_max,
        log_level=_read_log_level("INFO"),
    )
