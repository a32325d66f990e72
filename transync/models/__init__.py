"""Core data structures for transync."""

from transync.models.config import TransyncConfig
from transync.models.fingerprints import FingerprintSet
from transync.models.workload import Workload, WorkloadKind

__all__ = [
    "FingerprintSet",
    "TransyncConfig",
    "Workload",
    "WorkloadKind",
]
