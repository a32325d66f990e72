"""Response schemas for the transync REST API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error envelope shared by the REST API and the admission webhook."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"


class RefreshAccepted(BaseModel):
    status: str = "accepted"


class FingerprintsResponse(BaseModel):
    fingerprints: dict[str, str]
