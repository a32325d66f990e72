"""REST API layer for transync.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by transync.app bootstrap).
"""

from transync.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
