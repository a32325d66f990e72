"""Cluster access: listing and updating subscribed workloads."""

from transync.cluster.repository import WorkloadRepository, is_conflict

__all__ = ["WorkloadRepository", "is_conflict"]
