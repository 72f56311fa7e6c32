from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import router
from logging_config import configure_logging
from services.errors import BadInput, InvalidDeviceIdentity, PublishFailure, SigningKeyUnavailable
from services.processor import build_default_processor
from services.secrets import resolve_signing_key
from settings import get_settings
from storage.mock_ssm import ParameterStore

logger = logging.getLogger(__name__)

_KIND_BY_STATUS = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def _error(status_code: int, kind: str, detail: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"kind": kind, "detail": detail},
        headers=headers,
    )


async def _handle_bad_input(_request: Request, exc: BadInput) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc.kind, str(exc))


async def _handle_invalid_identity(_request: Request, exc: InvalidDeviceIdentity) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc.kind, str(exc))


async def _handle_publish_failure(_request: Request, exc: PublishFailure) -> JSONResponse:
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.kind, exc.public_message)


async def _handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()})
    detail = f"Invalid request fields: {', '.join(fields)}" if fields else "Invalid request."
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_request", detail)


async def _handle_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = getattr(exc, "kind", None) or _KIND_BY_STATUS.get(exc.status_code, "http_error")
    return _error(exc.status_code, kind, str(exc.detail), headers=getattr(exc, "headers", None))


def create_app(parameter_store: Optional[ParameterStore] = None) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        try:
            app.state.signing_key = resolve_signing_key(settings, parameter_store)
        except SigningKeyUnavailable as exc:
            logger.critical(
                "Signing key unavailable; refusing to start",
                exc_info=exc,
                extra={"environment": settings.environment, "key_source": exc.source},
            )
            raise
        logger.info(
            "Telemetry ingestion started",
            extra={
                "environment": settings.environment,
                "key_source": app.state.signing_key.source,
                "topic": settings.telemetry_topic,
            },
        )
        try:
            yield
        finally:
            build_default_processor.cache_clear()

    app = FastAPI(
        title="Telemetry Ingestion API",
        description="Accepts authenticated device readings and republishes them to a topic.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(BadInput, _handle_bad_input)
    app.add_exception_handler(InvalidDeviceIdentity, _handle_invalid_identity)
    app.add_exception_handler(PublishFailure, _handle_publish_failure)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.include_router(router)
    return app


app = create_app()
