"""HTTP client for the translation catalog service.

Each client is bound to one domain (one catalog project) and its API key.
Only two calls are needed: a credential check at startup and a full export
whose raw bytes are hashed into the domain fingerprint.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import structlog

_log = structlog.get_logger(component="catalog.client")

_VERIFY_PATH = "/api/auth/verify"
_EXPORT_PATH = "/api/export/all"


class CatalogError(Exception):
    """Raised when the catalog service cannot be reached or answers with an error."""

    def __init__(self, domain: str, message: str) -> None:
        super().__init__(f"catalog domain '{domain}': {message}")
        self.domain = domain


class CatalogAuthError(CatalogError):
    """Raised when the catalog service rejects a domain's API key."""


class CatalogClient:
    """Async client for one catalog domain.

    Args:
        domain:      Domain name the key belongs to (used in errors and logs).
        api_key:     Catalog API key, sent as the ``key`` query parameter.
        base_url:    Service root URL.
        api_version: Value of the ``X-Api-Version`` header.
        timeout:     Per-request timeout in seconds.
        http:        Optional shared ``httpx.AsyncClient`` (tests inject one
                     backed by ``httpx.MockTransport``).
    """

    def __init__(
        self,
        domain: str,
        api_key: str,
        base_url: str = "https://localise.biz",
        api_version: str = "1.0.25",
        timeout: float = 30.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError(f"API key for domain '{domain}' must not be empty")
        self.domain = domain
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._headers = {"X-Api-Version": api_version}
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def verify_credential(self) -> None:
        """Check the API key.

        Raises:
            CatalogAuthError: the service answered 401.
            CatalogError:     the service could not be reached.
        """
        try:
            response = await self._http.get(
                self._url(_VERIFY_PATH),
                params={"key": self._api_key},
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            raise CatalogError(self.domain, f"auth verify request failed: {exc}") from exc

        if response.status_code == 401:
            raise CatalogAuthError(self.domain, "authentication failed")
        _log.debug("catalog_credential_verified", domain=self.domain, status_code=response.status_code)

    async def export_all(self) -> AsyncIterator[bytes]:
        """Yield the raw bytes of the domain's full catalog export.

        Raises:
            CatalogError: transport failure or non-2xx response.
        """
        try:
            async with self._http.stream(
                "GET",
                self._url(_EXPORT_PATH),
                params={"key": self._api_key},
                headers=self._headers,
            ) as response:
                if not response.is_success:
                    raise CatalogError(self.domain, f"export returned HTTP {response.status_code}")
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as exc:
            raise CatalogError(self.domain, f"export request failed: {exc}") from exc

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"


def create_catalog_clients(
    api_keys: dict[str, str],
    base_url: str = "https://localise.biz",
    api_version: str = "1.0.25",
    timeout: float = 30.0,
) -> dict[str, CatalogClient]:
    """Build one client per ``domain -> api key`` entry."""
    return {
        domain: CatalogClient(domain, key, base_url=base_url, api_version=api_version, timeout=timeout)
        for domain, key in api_keys.items()
    }


async def verify_catalog_clients(clients: dict[str, CatalogClient]) -> None:
    """Verify every client's credential; the first failure propagates."""
    _log.info("catalog_connectivity_check", domains=sorted(clients))
    for client in clients.values():
        await client.verify_credential()
