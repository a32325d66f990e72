"""Workload repository backed by the apps/v1 API of kubernetes-asyncio.

Objects are converted to JSON-shaped dicts on the way in
(``ApiClient.sanitize_for_serialization``) and sent back as dict bodies, so
the rest of transync never touches generated model classes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import structlog
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from transync.models.workload import Workload, WorkloadKind
from transync.observability.metrics import workload_updates_total
from transync.reconcile.codec import MetadataCodec
from transync.reconcile.retry import DEFAULT_RETRY, RetryExhaustedError, RetryPolicy, retry_on_conflict

_log = structlog.get_logger(component="cluster.repository")

# kind -> apps/v1 method suffix
_API_SUFFIX: dict[WorkloadKind, str] = {
    WorkloadKind.DAEMON_SET: "daemon_set",
    WorkloadKind.DEPLOYMENT: "deployment",
    WorkloadKind.STATEFUL_SET: "stateful_set",
}


def is_conflict(exc: BaseException) -> bool:
    """True for a 409 Conflict from the API server."""
    return isinstance(exc, ApiException) and exc.status == 409


class WorkloadRepository:
    """Lists subscribed workloads and persists their template annotations.

    Args:
        apps_api:       ``kubernetes_asyncio.client.AppsV1Api`` instance.
        label_selector: Selector identifying workloads opted into refreshes.
        codec:          Codec used to re-apply a changeset after a conflict.
        kinds:          Workload kinds to list.
        retry:          Conflict retry policy.
    """

    def __init__(
        self,
        apps_api: Any,
        label_selector: str,
        codec: MetadataCodec,
        kinds: Iterable[WorkloadKind] = (WorkloadKind.DEPLOYMENT,),
        retry: RetryPolicy = DEFAULT_RETRY,
    ) -> None:
        self._api = apps_api
        self._label_selector = label_selector
        self._codec = codec
        self._kinds = list(kinds)
        self._retry = retry

    async def find_candidates(self, namespace: str) -> list[Workload]:
        """Return every workload matching the selector in *namespace*.

        A listing failure for one kind is logged and contributes nothing.
        """
        candidates: list[Workload] = []
        for kind in self._kinds:
            list_fn = getattr(self._api, f"list_namespaced_{_API_SUFFIX[kind]}")
            try:
                result = await list_fn(namespace, label_selector=self._label_selector)
            except Exception as exc:
                _log.warning(
                    "workload_list_failed",
                    kind=str(kind),
                    namespace=namespace,
                    error=str(exc),
                )
                continue
            for item in result.items or []:
                candidates.append(Workload(kind=kind, obj=self._to_dict(item)))
        return candidates

    async def persist(self, namespace: str, workloads: Sequence[Workload]) -> int:
        """Replace each workload, retrying on conflict.

        Failures are contained per workload.  Returns the number of
        successful updates.
        """
        updated = 0
        for workload in workloads:
            try:
                await retry_on_conflict(
                    lambda attempt, w=workload: self._replace(namespace, w, attempt),
                    is_conflict,
                    self._retry,
                )
            except RetryExhaustedError as exc:
                workload_updates_total.labels(kind=str(workload.kind), outcome="conflict").inc()
                _log.error("workload_update_failed", workload=workload.key, attempts=exc.attempts, error=str(exc))
                continue
            except Exception as exc:
                workload_updates_total.labels(kind=str(workload.kind), outcome="error").inc()
                _log.error("workload_update_failed", workload=workload.key, error=str(exc))
                continue

            updated += 1
            workload_updates_total.labels(kind=str(workload.kind), outcome="success").inc()
            _log.info("workload_updated", workload=workload.key, domains=sorted(workload.changeset))
        return updated

    async def _replace(self, namespace: str, workload: Workload, attempt: int) -> None:
        suffix = _API_SUFFIX[workload.kind]
        if attempt > 0:
            # Conflict: start again from the server's current version.
            fresh = await getattr(self._api, f"read_namespaced_{suffix}")(workload.name, namespace)
            workload.obj = self._to_dict(fresh)
            self._codec.write_changes(workload.template_metadata(create=True), workload.changeset)
        replace_fn = getattr(self._api, f"replace_namespaced_{suffix}")
        await replace_fn(workload.name, namespace, workload.obj)

    def _to_dict(self, item: Any) -> dict[str, Any]:
        if isinstance(item, dict):
            return item
        return self._api.api_client.sanitize_for_serialization(item)
