"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool

from app.auth import DevicePrincipal, require_device
from app.schemas import ErrorResponse, TelemetryRequest
from services.processor import TelemetryProcessor, build_default_processor

router = APIRouter()


def get_processor() -> TelemetryProcessor:
    return build_default_processor()


@router.post(
    "/api/telemetry",
    status_code=status.HTTP_202_ACCEPTED,
    response_class=Response,
    summary="Accept a device reading for asynchronous processing.",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def post_telemetry(
    payload: TelemetryRequest,
    principal: DevicePrincipal = Depends(require_device),
    processor: TelemetryProcessor = Depends(get_processor),
) -> Response:
    context = principal.device_context()
    # Runs in a worker thread; a dropped client does not interrupt the publish.
    await run_in_threadpool(
        processor.process_telemetry,
        context.device_id,
        context.farmer_name,
        context.field_name,
        context.property_name,
        payload.to_reading(),
    )
    return Response(status_code=status.HTTP_202_ACCEPTED)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "healthy"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "healthy", "detail": "See /health for service status."}
