"""Shared fingerprint set.

One ``FingerprintSet`` is created per process by the FingerprintSource and
handed by reference to every consumer (refresher, admission interceptor,
REST API).  The source only ever replaces individual entries, so a handle
obtained before a fetch keeps observing the latest values after it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping


class FingerprintSet(Mapping[str, str]):
    """Read-mostly mapping of domain name to hex content digest.

    Reads go through the plain ``Mapping`` interface.  Writes are limited to
    ``replace``, which swaps values key by key under a lock and never removes
    a domain.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, str] = dict(initial or {})

    def __getitem__(self, domain: str) -> str:
        return self._values[domain]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"FingerprintSet({self.snapshot()!r})"

    def replace(self, values: Mapping[str, str]) -> None:
        """Overwrite the given domains in place."""
        with self._lock:
            for domain, fingerprint in values.items():
                self._values[domain] = fingerprint

    def snapshot(self) -> dict[str, str]:
        """Return a point-in-time copy, e.g. for logging or serialisation."""
        with self._lock:
            return dict(self._values)
