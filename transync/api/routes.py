"""Route handlers for the transync REST API."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from transync.api.schemas import FingerprintsResponse, HealthResponse, RefreshAccepted

router = APIRouter()
ops_router = APIRouter()


@ops_router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@ops_router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/fingerprints", response_model=FingerprintsResponse)
async def fingerprints(request: Request) -> FingerprintsResponse:
    """Current shared fingerprint snapshot."""
    return FingerprintsResponse(fingerprints=request.app.state.fingerprints.snapshot())


@router.post("/refresh", status_code=202, response_model=RefreshAccepted)
async def refresh(request: Request, background_tasks: BackgroundTasks) -> RefreshAccepted:
    """Queue a fetch + refresh cycle and return immediately."""
    background_tasks.add_task(request.app.state.refresh_cycle)
    return RefreshAccepted()
