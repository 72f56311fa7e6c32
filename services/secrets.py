"""Startup resolution of the key that verifies device tokens."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from services.errors import SigningKeyUnavailable
from settings import Settings
from storage.mock_ssm import ParameterStore, build_default_parameter_store

logger = logging.getLogger(__name__)

STATIC_SOURCE = "static-config"
PARAMETER_STORE_SOURCE = "parameter-store"


@dataclass(frozen=True)
class SigningKey:
    source: str
    value: str = field(repr=False)


class StaticKeySource:
    """Development source: the key comes straight from local configuration."""

    name = STATIC_SOURCE

    def __init__(self, secret: Optional[str]) -> None:
        self._secret = secret

    def load(self) -> str:
        if not self._secret or not self._secret.strip():
            raise SigningKeyUnavailable(
                "JWT_SECRET is not configured for the development environment.",
                source=self.name,
            )
        return self._secret


class ParameterStoreKeySource:
    """Production source: a SecureString fetched once from the parameter store."""

    name = PARAMETER_STORE_SOURCE

    def __init__(self, store: ParameterStore, parameter_name: Optional[str]) -> None:
        self._store = store
        self._parameter_name = parameter_name

    def load(self) -> str:
        if not self._parameter_name:
            raise SigningKeyUnavailable(
                "JWT_PARAMETER_NAME is not configured for the production environment.",
                source=self.name,
            )
        try:
            value = self._store.get_parameter(self._parameter_name, with_decryption=True)
        except Exception as exc:
            raise SigningKeyUnavailable(
                f"Could not fetch signing key parameter {self._parameter_name!r}.",
                source=self.name,
            ) from exc
        if not value:
            raise SigningKeyUnavailable(
                f"Signing key parameter {self._parameter_name!r} is empty.",
                source=self.name,
            )
        return value


def select_key_source(
    settings: Settings,
    parameter_store: Optional[ParameterStore] = None,
) -> StaticKeySource | ParameterStoreKeySource:
    if settings.is_production:
        store = parameter_store if parameter_store is not None else build_default_parameter_store()
        return ParameterStoreKeySource(store, settings.jwt_parameter_name)
    return StaticKeySource(settings.jwt_secret)


def resolve_signing_key(
    settings: Settings,
    parameter_store: Optional[ParameterStore] = None,
) -> SigningKey:
    """Resolve the signing key for ``settings.environment``.

    Raises :class:`SigningKeyUnavailable` when nothing usable is found; callers
    are expected to abort startup on it.
    """
    source = select_key_source(settings, parameter_store)
    logger.info(
        "Resolving token signing key",
        extra={"environment": settings.environment, "key_source": source.name},
    )
    value = source.load()
    return SigningKey(source=source.name, value=value)
