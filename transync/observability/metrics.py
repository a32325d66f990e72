"""Prometheus metrics for transync."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

fetch_total = Counter(
    "transync_fetch_total",
    "Fingerprint fetch cycles by outcome",
    ["outcome"],
)

fetch_duration_seconds = Histogram(
    "transync_fetch_duration_seconds",
    "Duration of a full fingerprint fetch across all domains",
)

refresh_cycles_total = Counter(
    "transync_refresh_cycles_total",
    "Completed refresh passes across all namespaces",
)

workload_updates_total = Counter(
    "transync_workload_updates_total",
    "Workload update attempts by kind and outcome",
    ["kind", "outcome"],
)

admission_mutations_total = Counter(
    "transync_admission_mutations_total",
    "Objects seen by the admission interceptor",
    ["kind", "mutated"],
)
