"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.schemas import (
    AlertEntry,
    DeviceCounts,
    IngestResponse,
    LatestResponse,
    ReadingIn,
    ReadingOut,
)
from services.telemetry import (
    TelemetryService,
    TimestampRegressionError,
    build_default_service,
)

router = APIRouter()


def get_service() -> TelemetryService:
    return build_default_service()


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Record one telemetry reading and evaluate alerts.",
)
def ingest_reading(
    payload: ReadingIn,
    service: TelemetryService = Depends(get_service),
) -> IngestResponse:
    try:
        result = service.ingest(payload)
    except TimestampRegressionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return IngestResponse(
        reading=ReadingOut.from_reading(result.reading),
        alerts=result.alerts,
    )


@router.get(
    "/latest",
    response_model=LatestResponse,
    summary="Most recent reading with freshly evaluated alerts.",
)
async def latest_reading(
    device_id: Optional[str] = Query(default=None, description="Restrict results to one glove."),
    service: TelemetryService = Depends(get_service),
) -> LatestResponse:
    result = service.latest(device_id)
    if result is None:
        return LatestResponse(ok=False)
    return LatestResponse(
        ok=True,
        reading=ReadingOut.from_reading(result.reading),
        alerts=result.alerts,
    )


@router.get(
    "/history",
    response_model=List[ReadingOut],
    summary="Recent readings, oldest first.",
)
async def reading_history(
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum number of entries to return."),
    device_id: Optional[str] = Query(default=None, description="Restrict results to one glove."),
    service: TelemetryService = Depends(get_service),
) -> List[ReadingOut]:
    return [ReadingOut.from_reading(reading) for reading in service.history(limit, device_id)]


@router.get(
    "/alerts",
    response_model=List[AlertEntry],
    summary="Recent alert log entries, newest last.",
)
async def alert_log(
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum number of entries to return."),
    device_id: Optional[str] = Query(default=None, description="Restrict results to one glove."),
    service: TelemetryService = Depends(get_service),
) -> List[AlertEntry]:
    return [AlertEntry.from_record(record) for record in service.alerts(limit, device_id)]


@router.get(
    "/devices",
    response_model=DeviceCounts,
    summary="Known gloves and how many readings each has retained.",
)
async def list_devices(
    service: TelemetryService = Depends(get_service),
) -> DeviceCounts:
    return service.devices()


@router.get(
    "/export.csv",
    summary="Download recent readings as CSV.",
    response_class=Response,
)
async def export_csv(
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum number of entries to return."),
    device_id: Optional[str] = Query(default=None, description="Restrict results to one glove."),
    service: TelemetryService = Depends(get_service),
) -> Response:
    body = service.export_csv(limit, device_id)
    filename = f"telemetry-{device_id}.csv" if device_id else "telemetry.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
