"""Bearer token verification for device callers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from uuid import UUID

import jwt
from jwt.exceptions import InvalidSubjectError
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from models.records import DeviceContext
from services.errors import InvalidDeviceIdentity
from services.secrets import SigningKey
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

DEVICE_ID_CLAIM = "sub"
ROLE_CLAIM = "role"
FARMER_NAME_CLAIM = "farmer_name"
FIELD_NAME_CLAIM = "field_name"
PROPERTY_NAME_CLAIM = "property_name"

_bearer = HTTPBearer(auto_error=False)


class AuthenticationError(HTTPException):
    kind = "unauthorized"

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing credentials.",
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(HTTPException):
    kind = "forbidden"

    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caller is not allowed to submit telemetry.",
        )


@dataclass(frozen=True)
class DevicePrincipal:
    """Verified claims of the calling device."""

    claims: Mapping[str, Any]

    def device_context(self) -> DeviceContext:
        raw_id = self.claims.get(DEVICE_ID_CLAIM)
        if not isinstance(raw_id, str) or not raw_id.strip():
            raise InvalidDeviceIdentity("Token does not carry a device identifier.")
        try:
            device_id = UUID(raw_id.strip())
        except ValueError as exc:
            raise InvalidDeviceIdentity("Token device identifier is not a valid UUID.") from exc
        return DeviceContext(
            device_id=device_id,
            farmer_name=self._optional_claim(FARMER_NAME_CLAIM),
            field_name=self._optional_claim(FIELD_NAME_CLAIM),
            property_name=self._optional_claim(PROPERTY_NAME_CLAIM),
        )

    def has_role(self, role: str) -> bool:
        roles = self.claims.get(ROLE_CLAIM)
        if isinstance(roles, str):
            return roles == role
        if isinstance(roles, (list, tuple)):
            return role in roles
        return False

    def _optional_claim(self, name: str) -> Optional[str]:
        value = self.claims.get(name)
        return value if isinstance(value, str) else None


def verify_token(token: str, key: SigningKey, settings: Settings) -> DevicePrincipal:
    # The device claim is checked by DevicePrincipal.device_context so that a
    # missing or malformed identifier is a caller error, not an auth failure.
    options: dict[str, Any] = {"require": ["exp"]}
    if settings.jwt_audience is None:
        options["verify_aud"] = False
    try:
        claims = jwt.decode(
            token,
            key.value,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except InvalidSubjectError as exc:
        raise InvalidDeviceIdentity("Token device identifier is not a valid UUID.") from exc
    except jwt.PyJWTError as exc:
        logger.info("Rejected device token", extra={"reason": type(exc).__name__})
        raise AuthenticationError() from exc
    return DevicePrincipal(claims=claims)


def get_signing_key(request: Request) -> SigningKey:
    return request.app.state.signing_key


def require_device(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    key: SigningKey = Depends(get_signing_key),
) -> DevicePrincipal:
    """Dependency that admits only callers holding the device role."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()
    settings = get_settings()
    principal = verify_token(credentials.credentials, key, settings)
    if not principal.has_role(settings.device_role):
        logger.info("Rejected caller without device role", extra={"reason": "role"})
        raise AuthorizationError()
    return principal
