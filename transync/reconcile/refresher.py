"""Batch reconciliation across every configured namespace."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from transync.cluster.repository import WorkloadRepository
from transync.observability.metrics import refresh_cycles_total
from transync.reconcile.changeset import reconcile_workload
from transync.reconcile.codec import MetadataCodec

_log = structlog.get_logger(component="reconcile.refresher")


class Refresher:
    """Lists subscribed workloads, diffs them and persists the stale ones.

    The result reflects only the fingerprint set passed to ``refresh``; fetch
    first for fresh values.
    """

    def __init__(
        self,
        repository: WorkloadRepository,
        codec: MetadataCodec,
        namespaces: Iterable[str] = ("default",),
    ) -> None:
        self._repository = repository
        self._codec = codec
        self._namespaces = list(namespaces)

    async def refresh(self, desired: Mapping[str, str]) -> int:
        """Run one reconciliation pass.  Returns the number of updated workloads."""
        updated = 0
        for namespace in self._namespaces:
            candidates = await self._repository.find_candidates(namespace)
            _log.info("subscribed_workloads", namespace=namespace, count=len(candidates))

            stale = [w for w in candidates if reconcile_workload(self._codec, w, desired)]
            if stale:
                updated += await self._repository.persist(namespace, stale)
        refresh_cycles_total.inc()
        return updated
