"""FastAPI application factory for the transync REST API.

Usage::

    from transync.api.app import create_app

    app = create_app(fingerprints=source.fingerprints, refresh_cycle=app.refresh_cycle)

Serves ``/health`` and ``/metrics`` at the root and the operational API
under ``/api/v1``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transync.api.routes import ops_router, router
from transync.api.schemas import ErrorResponse
from transync.models.fingerprints import FingerprintSet

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    fingerprints: FingerprintSet,
    refresh_cycle: Callable[[], Awaitable[None]],
) -> FastAPI:
    """Create and configure the transync REST application.

    Args:
        fingerprints:  Shared fingerprint handle (read-only here).
        refresh_cycle: Zero-argument coroutine function running fetch + refresh.
    """
    from transync import __version__

    app = FastAPI(
        title="transync",
        summary="Translation fingerprint refresher",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url=None,
        openapi_url="/api/v1/openapi.json",
    )

    app.state.fingerprints = fingerprints
    app.state.refresh_cycle = refresh_cycle

    app.include_router(ops_router)
    app.include_router(router, prefix=_API_PREFIX)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
