"""Fingerprint computation for translation catalogs.

FingerprintSource fans out one task per domain, hashes each catalog export
and commits the digests into the shared FingerprintSet only once every
domain succeeded.  A single failure fails the whole fetch: callers must not
reconcile against a partially refreshed set.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from collections.abc import AsyncIterator, Mapping
from typing import Protocol

import structlog

from transync.models.fingerprints import FingerprintSet
from transync.observability.metrics import fetch_duration_seconds, fetch_total

_log = structlog.get_logger(component="catalog.fingerprints")


class CatalogExporter(Protocol):
    """The part of CatalogClient FingerprintSource depends on."""

    domain: str

    def export_all(self) -> AsyncIterator[bytes]: ...


class FingerprintFetchError(Exception):
    """Raised when at least one domain's catalog could not be fingerprinted.

    Attributes:
        errors: failing domain -> exception.
    """

    def __init__(self, errors: dict[str, BaseException]) -> None:
        detail = ", ".join(f"{domain}: {exc}" for domain, exc in sorted(errors.items()))
        super().__init__(f"fingerprint fetch failed for {len(errors)} domain(s): {detail}")
        self.errors = errors


async def fingerprint_export(client: CatalogExporter) -> str:
    """Return the SHA-1 hex digest of *client*'s full export."""
    digest = hashlib.sha1()  # noqa: S324
    async for chunk in client.export_all():
        digest.update(chunk)
    return digest.hexdigest()


class FingerprintSource:
    """Owns the process-wide FingerprintSet and refreshes it on ``fetch()``.

    The same FingerprintSet instance is returned by every call; consumers
    may keep the reference.
    """

    def __init__(self, clients: Mapping[str, CatalogExporter]) -> None:
        self._clients = dict(clients)
        self._fingerprints = FingerprintSet()

    @property
    def fingerprints(self) -> FingerprintSet:
        """The shared handle, without triggering a fetch."""
        return self._fingerprints

    async def fetch(self) -> FingerprintSet:
        """Fingerprint every domain concurrently and update the shared set.

        Raises:
            FingerprintFetchError: one or more domains failed.  Remaining tasks
                are cancelled and awaited before this is raised; the shared set
                is left untouched.
        """
        started = time.monotonic()
        tasks: dict[str, asyncio.Task[str]] = {}

        try:
            async with asyncio.TaskGroup() as group:
                for domain, client in self._clients.items():
                    tasks[domain] = group.create_task(fingerprint_export(client), name=f"fingerprint-{domain}")
        except ExceptionGroup as eg:
            errors: dict[str, BaseException] = {
                domain: task.exception()  # type: ignore[misc]
                for domain, task in tasks.items()
                if not task.cancelled() and task.exception() is not None
            }
            fetch_total.labels(outcome="failure").inc()
            fetch_duration_seconds.observe(time.monotonic() - started)
            _log.error(
                "fingerprint_fetch_failed",
                domains=sorted(errors),
                error=str(eg.exceptions[0]),
            )
            raise FingerprintFetchError(errors) from eg.exceptions[0]

        results = {domain: task.result() for domain, task in tasks.items()}
        self._fingerprints.replace(results)
        fetch_total.labels(outcome="success").inc()
        fetch_duration_seconds.observe(time.monotonic() - started)
        _log.debug("refreshed_fingerprints", fingerprints=self._fingerprints.snapshot())
        _log.info("fingerprints_refreshed", domains=sorted(results))
        return self._fingerprints

