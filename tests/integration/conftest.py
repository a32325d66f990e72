"""Shared fixtures for transync integration tests.

Provides an in-memory apps/v1 API and scripted catalog exporters so the
fetch → refresh → admission pipeline can run end to end without a cluster
or network access.
"""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from types import SimpleNamespace
from typing import Any

import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from transync.catalog import FingerprintSource
from transync.cluster import WorkloadRepository
from transync.models.workload import WorkloadKind
from transync.reconcile import MetadataCodec, RetryPolicy
from transync.reconcile.refresher import Refresher

PREFIX = "translations.example.org"
SELECTOR = f"{PREFIX}/refresh=true"


# ---------------------------------------------------------------------------
# Catalog side
# ---------------------------------------------------------------------------


class ScriptedExporter:
    """Catalog exporter whose payload (or failure) can be changed between fetches."""

    def __init__(self, domain: str, payload: bytes = b"{}") -> None:
        self.domain = domain
        self.payload = payload
        self.error: Exception | None = None

    async def export_all(self) -> AsyncIterator[bytes]:
        if self.error is not None:
            raise self.error
        yield self.payload


# ---------------------------------------------------------------------------
# Cluster side
# ---------------------------------------------------------------------------


def make_deployment(
    name: str,
    domains: str | None = "catalog,emails",
    template_annotations: dict[str, str] | None = None,
    namespace: str = "default",
) -> dict[str, Any]:
    """Create a deployment dict subscribed to *domains* (None for no subscription)."""
    annotations = {f"{PREFIX}/domains": domains} if domains is not None else {}
    template_metadata: dict[str, Any] = {"labels": {"app": name}}
    if template_annotations is not None:
        template_metadata["annotations"] = dict(template_annotations)
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "resourceVersion": "1",
            "labels": {f"{PREFIX}/refresh": "true"},
            "annotations": annotations,
        },
        "spec": {"template": {"metadata": template_metadata, "spec": {"containers": []}}},
    }


class InMemoryAppsApi:
    """Just enough of AppsV1Api for the repository: deployments only.

    ``replace_namespaced_deployment`` enforces resourceVersion like the API
    server does; ``conflicts`` forces that many 409s first.
    """

    def __init__(self) -> None:
        self.api_client = SimpleNamespace(sanitize_for_serialization=copy.deepcopy)
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.replace_calls = 0
        self.conflicts = 0

    def add(self, obj: dict[str, Any]) -> None:
        meta = obj["metadata"]
        self.objects[(meta["namespace"], meta["name"])] = copy.deepcopy(obj)

    def get(self, namespace: str, name: str) -> dict[str, Any]:
        return self.objects[(namespace, name)]

    async def list_namespaced_deployment(self, namespace: str, label_selector: str = "") -> SimpleNamespace:
        key, _, value = label_selector.partition("=")
        items = [
            copy.deepcopy(obj)
            for (ns, _name), obj in self.objects.items()
            if ns == namespace and obj["metadata"].get("labels", {}).get(key) == value
        ]
        return SimpleNamespace(items=items)

    async def read_namespaced_deployment(self, name: str, namespace: str) -> dict[str, Any]:
        return copy.deepcopy(self.get(namespace, name))

    async def replace_namespaced_deployment(self, name: str, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self.replace_calls += 1
        current = self.get(namespace, name)
        if self.conflicts > 0:
            self.conflicts -= 1
            current["metadata"]["resourceVersion"] = str(int(current["metadata"]["resourceVersion"]) + 1)
            raise ApiException(status=409, reason="Conflict")
        if body["metadata"]["resourceVersion"] != current["metadata"]["resourceVersion"]:
            raise ApiException(status=409, reason="Conflict")
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = str(int(current["metadata"]["resourceVersion"]) + 1)
        self.objects[(namespace, name)] = stored
        return copy.deepcopy(stored)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def codec() -> MetadataCodec:
    return MetadataCodec(PREFIX)


@pytest.fixture()
def apps_api() -> InMemoryAppsApi:
    return InMemoryAppsApi()


@pytest.fixture()
def exporters() -> dict[str, ScriptedExporter]:
    return {
        "catalog": ScriptedExporter("catalog", b'{"greeting": "hello"}'),
        "emails": ScriptedExporter("emails", b'{"subject": "welcome"}'),
    }


@pytest.fixture()
def source(exporters: dict[str, ScriptedExporter]) -> FingerprintSource:
    return FingerprintSource(exporters)


@pytest.fixture()
def refresher(apps_api: InMemoryAppsApi, codec: MetadataCodec) -> Refresher:
    repository = WorkloadRepository(
        apps_api,
        SELECTOR,
        codec,
        kinds=(WorkloadKind.DEPLOYMENT,),
        retry=RetryPolicy(steps=5, duration=0.0, jitter=0.0),
    )
    return Refresher(repository=repository, codec=codec, namespaces=["default"])


@pytest.fixture()
def new_deployment():
    """Factory fixture wrapping make_deployment."""
    return make_deployment
