"""Domain and service exceptions."""

from __future__ import annotations

from typing import Optional


class BadInput(ValueError):
    """Raised when a reading breaks a domain rule. The message is safe to expose."""

    kind = "bad_input"


class InvalidDeviceIdentity(ValueError):
    """Raised when the verified token carries no usable device identifier."""

    kind = "invalid_device_identity"


class PublishFailure(RuntimeError):
    """Raised when the envelope could not be handed to the topic.

    The caller-facing message is fixed; the underlying error is kept on
    ``cause`` for diagnostics.
    """

    kind = "publish_failure"
    public_message = "telemetry could not be published"

    def __init__(self, cause: BaseException) -> None:
        super().__init__(self.public_message)
        self.cause = cause


class SigningKeyUnavailable(RuntimeError):
    """Raised at startup when no token signing key can be resolved."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source
