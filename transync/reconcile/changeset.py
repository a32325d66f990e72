"""Changeset computation: the minimal fingerprint writes for one workload."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from transync.models.workload import Workload
from transync.reconcile.codec import MetadataCodec

_log = structlog.get_logger(component="reconcile.changeset")


def compute_changeset(
    subscriptions: Iterable[str],
    observed: Mapping[str, str],
    desired: Mapping[str, str],
) -> dict[str, str]:
    """Return ``domain -> fingerprint`` for every subscribed domain that is stale.

    Unknown domains (absent from *desired*) are skipped with a warning.  A
    domain whose observed value already equals the desired one is omitted.
    """
    changeset: dict[str, str] = {}
    for domain in subscriptions:
        fingerprint = desired.get(domain)
        if fingerprint is None:
            _log.warning("unknown_translation_domain", domain=domain)
            continue

        current = observed.get(domain)
        if current is None:
            _log.warning("missing_fingerprint_annotation", domain=domain)
        elif current == fingerprint:
            _log.debug("translations_up_to_date", domain=domain)
            continue
        else:
            _log.info("translations_outdated", domain=domain)
        changeset[domain] = fingerprint
    return changeset


def reconcile_workload(codec: MetadataCodec, workload: Workload, desired: Mapping[str, str]) -> dict[str, str]:
    """Bring *workload*'s template annotations in line with *desired*.

    Mutates ``workload.obj`` in place, stores the changeset on the workload
    and returns it.
    """
    subscriptions = codec.parse_subscriptions(workload.own_annotations())
    _log.info("workload_subscriptions", workload=workload.key, domains=subscriptions)

    observed = codec.parse_observed_fingerprints(workload.template_annotations())
    changeset = compute_changeset(subscriptions, observed, desired)
    _log.info("workload_changeset", workload=workload.key, changeset=changeset)

    if changeset:
        codec.write_changes(workload.template_metadata(create=True), changeset)
    workload.changeset = changeset
    return changeset
