"""Reconciliation engine.

Submodules
----------
codec      -- MetadataCodec: subscription/fingerprint annotations.
changeset  -- compute_changeset (pure) and reconcile_workload.
retry      -- retry_on_conflict combinator and RetryPolicy.
refresher  -- Refresher: list -> diff -> persist across namespaces.
"""

from transync.reconcile.changeset import compute_changeset, reconcile_workload
from transync.reconcile.codec import MetadataCodec
from transync.reconcile.retry import DEFAULT_RETRY, RetryExhaustedError, RetryPolicy, retry_on_conflict

__all__ = [
    "DEFAULT_RETRY",
    "MetadataCodec",
    "RetryExhaustedError",
    "RetryPolicy",
    "compute_changeset",
    "reconcile_workload",
    "retry_on_conflict",
]
