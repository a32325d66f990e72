"""Translation catalog access and fingerprinting.

Exports:
    CatalogClient          -- Async HTTP client for one catalog domain.
    CatalogError           -- Transport or HTTP failure.
    CatalogAuthError       -- Rejected API key.
    FingerprintSource      -- Concurrent per-domain fingerprinting into a
                              shared FingerprintSet.
    FingerprintFetchError  -- Raised when any domain fails during a fetch.
"""

from transync.catalog.client import (
    CatalogAuthError,
    CatalogClient,
    CatalogError,
    create_catalog_clients,
    verify_catalog_clients,
)
from transync.catalog.fingerprints import FingerprintFetchError, FingerprintSource, fingerprint_export

__all__ = [
    "CatalogAuthError",
    "CatalogClient",
    "CatalogError",
    "FingerprintFetchError",
    "FingerprintSource",
    "create_catalog_clients",
    "fingerprint_export",
    "verify_catalog_clients",
]
