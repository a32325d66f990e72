"""Mutating admission webhook transport.

Usage::

    from transync.admission.webhook import create_webhook_app

    app = create_webhook_app(interceptor)

Each route accepts an AdmissionReview, hands ``request.object`` to the
AdmissionInterceptor and always answers ``allowed: true``; mutations travel
back as a base64 JSONPatch.
"""

from __future__ import annotations

import base64
import copy
import json
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from transync.admission.interceptor import AdmissionInterceptor
from transync.admission.schemas import AdmissionResponse, AdmissionReviewRequest, AdmissionReviewResponse
from transync.api.schemas import ErrorResponse

_log = structlog.get_logger(component="admission.webhook")

# Path from the object root to the pod template annotations.
_TEMPLATE_ANNOTATIONS_PATH = ("spec", "template", "metadata", "annotations")

# Route -> kind the route is registered for (None accepts any kind).
_ROUTES: dict[str, str | None] = {
    "/daemonsets": "DaemonSet",
    "/deployments": "Deployment",
    "/statefulsets": "StatefulSet",
    "/mutate": None,
}


def _escape_pointer(token: str) -> str:
    """Escape one JSON Pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def build_patch(original: dict[str, Any], mutated: dict[str, Any], changed_keys: list[str]) -> list[dict[str, Any]]:
    """Return JSONPatch ops turning *original* template annotations into *mutated*'s.

    When a container on the path is missing from *original*, a single ``add``
    carries the whole subtree from *mutated*; otherwise one ``add`` per
    changed annotation key (``add`` replaces an existing member).
    """
    if not changed_keys:
        return []

    node: Any = original
    target: Any = mutated
    pointer = ""
    for segment in _TEMPLATE_ANNOTATIONS_PATH:
        target = target[segment]
        pointer = f"{pointer}/{segment}"
        if not isinstance(node, dict) or node.get(segment) is None:
            return [{"op": "add", "path": pointer, "value": copy.deepcopy(target)}]
        node = node[segment]

    return [
        {"op": "add", "path": f"{pointer}/{_escape_pointer(key)}", "value": target[key]}
        for key in changed_keys
    ]


def create_webhook_app(interceptor: AdmissionInterceptor) -> FastAPI:
    """Create the FastAPI application serving the mutating webhook routes."""
    app = FastAPI(title="transync admission webhook", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.interceptor = interceptor

    async def _review(request: Request, expected_kind: str | None) -> JSONResponse:
        try:
            review = AdmissionReviewRequest.model_validate(await request.json())
        except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            _log.warning("admission_review_invalid", path=str(request.url.path), error=str(exc))
            return JSONResponse(
                status_code=400,
                content=ErrorResponse(error="INVALID_ADMISSION_REVIEW", detail=str(exc)[:500]).model_dump(),
            )

        req = review.request
        kind = req.kind.kind or str((req.object or {}).get("kind", ""))
        response = AdmissionResponse(uid=req.uid, allowed=True)

        if expected_kind is not None and kind and kind != expected_kind:
            _log.warning("admission_kind_mismatch", route=str(request.url.path), kind=kind)
        elif req.object is not None:
            original = copy.deepcopy(req.object)
            mutated = req.object
            interceptor = request.app.state.interceptor
            changeset = interceptor.intercept(kind, mutated)
            ops = build_patch(original, mutated, [interceptor.annotation_key(domain) for domain in changeset])
            if ops:
                response.patch_type = "JSONPatch"
                response.patch = base64.b64encode(json.dumps(ops).encode()).decode()
            _log.info(
                "admission_reviewed",
                uid=req.uid,
                kind=kind,
                namespace=req.namespace,
                name=req.name,
                patched=bool(ops),
            )

        body = AdmissionReviewResponse(api_version=review.api_version, response=response)
        return JSONResponse(content=body.model_dump(by_alias=True, exclude_none=True))

    def _endpoint_for(expected_kind: str | None):  # noqa: ANN202
        async def _endpoint(request: Request) -> JSONResponse:
            return await _review(request, expected_kind)

        return _endpoint

    for path, kind in _ROUTES.items():
        app.add_api_route(path, _endpoint_for(kind), methods=["POST"], name=f"admit{path.replace('/', '_')}")

    return app
