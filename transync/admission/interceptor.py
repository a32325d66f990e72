"""Synchronous fingerprint injection for workloads entering the cluster.

The interceptor reads from the shared FingerprintSet handed to it at
construction and never performs I/O, so it adds no network latency to
admission.  It never rejects an object.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from transync.models.workload import Workload, WorkloadKind
from transync.observability.metrics import admission_mutations_total
from transync.reconcile.changeset import reconcile_workload
from transync.reconcile.codec import MetadataCodec

_log = structlog.get_logger(component="admission.interceptor")


class AdmissionInterceptor:
    """Applies the refresher's diff logic to one incoming object.

    Args:
        codec:        Codec shared with the refresher (same prefix).
        fingerprints: The process-wide fingerprint handle.
    """

    def __init__(self, codec: MetadataCodec, fingerprints: Mapping[str, str]) -> None:
        self._codec = codec
        self._fingerprints = fingerprints

    def intercept(self, kind: str, obj: dict[str, Any]) -> dict[str, str]:
        """Mutate *obj* in place and return the changeset that was written.

        Unsupported kinds are logged and left untouched.
        """
        workload_kind = WorkloadKind.parse(kind)
        if workload_kind is None:
            _log.warning("unsupported_resource_kind", kind=kind)
            admission_mutations_total.labels(kind="unsupported", mutated="false").inc()
            return {}

        changeset = reconcile_workload(self._codec, Workload(kind=workload_kind, obj=obj), self._fingerprints)
        admission_mutations_total.labels(kind=str(workload_kind), mutated=str(bool(changeset)).lower()).inc()
        return changeset

    def annotation_key(self, domain: str) -> str:
        """Template annotation key holding *domain*'s fingerprint."""
        return self._codec.key_for(domain)
