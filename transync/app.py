"""Application bootstrap for transync.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → catalog clients → fingerprints
              → repository → refresher → interceptor → REST → webhook
              → scheduler → initial refresh

A failed credential check or fingerprint fetch is fatal: at startup it
aborts before serving, at runtime it shuts the process down with exit
status 1.  Shutdown stops components in reverse startup order, each one
isolated from the others' errors.
"""

from __future__ import annotations

import asyncio
import os
import signal
from typing import TYPE_CHECKING, Any

from transync.catalog import (
    CatalogClient,
    FingerprintFetchError,
    FingerprintSource,
    create_catalog_clients,
    verify_catalog_clients,
)
from transync.config import load_config, period_seconds
from transync.models.config import TransyncConfig
from transync.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from transync.admission import AdmissionInterceptor
    from transync.reconcile.refresher import Refresher
    from transync.scheduler import PeriodicScheduler

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


async def load_k8s_client(kubeconfig: str = "") -> Any:
    """Configure kubernetes-asyncio and return a new ApiClient.

    An existing *kubeconfig* file wins; otherwise in-cluster config, then the
    default kubeconfig location.
    """
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

    if kubeconfig and os.path.exists(kubeconfig):
        await k8s_config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            k8s_config.load_incluster_config()
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config()
    return k8s_client.ApiClient()


def build_refresher(config: TransyncConfig, api_client: Any) -> Refresher:
    """Wire codec, repository and refresher from *config*."""
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

    from transync.cluster import WorkloadRepository
    from transync.reconcile import MetadataCodec, RetryPolicy
    from transync.reconcile.refresher import Refresher

    codec = MetadataCodec(config.reconcile.annotation_prefix)
    repository = WorkloadRepository(
        apps_api=k8s_client.AppsV1Api(api_client),
        label_selector=config.reconcile.label_selector,
        codec=codec,
        kinds=config.reconcile.kinds,
        retry=RetryPolicy(steps=config.reconcile.conflict_retry_steps),
    )
    return Refresher(repository=repository, codec=codec, namespaces=config.reconcile.namespaces)


async def build_catalog(config: TransyncConfig) -> dict[str, CatalogClient]:
    """Create one client per configured domain and verify every credential."""
    clients = create_catalog_clients(
        config.catalog.api_keys,
        base_url=config.catalog.base_url,
        api_version=config.catalog.api_version,
        timeout=config.catalog.timeout_seconds,
    )
    try:
        await verify_catalog_clients(clients)
    except Exception:
        await close_catalog(clients)
        raise
    return clients


async def close_catalog(clients: dict[str, CatalogClient]) -> None:
    for client in clients.values():
        await client.close()


class TransyncApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or is
    already stopped.
    """

    def __init__(self, config: TransyncConfig | None = None) -> None:
        self.config: TransyncConfig | None = config
        self.exit_code = 0

        self._api_client: Any = None
        self._catalog_clients: dict[str, CatalogClient] = {}
        self._source: FingerprintSource | None = None
        self._refresher: Refresher | None = None
        self._interceptor: AdmissionInterceptor | None = None
        self._scheduler: PeriodicScheduler | None = None
        self._rest_server: Any = None
        self._webhook_server: Any = None

        self._background_tasks: list[asyncio.Task[None]] = []
        self._shutdown_task: asyncio.Task[None] | None = None

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("transync starting", version=_transync_version())

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_k8s_client()

        # --- 4. Catalog clients (credential check) -----------------------
        await self._start_catalog()

        # --- 5. Fingerprints ---------------------------------------------
        await self._start_fingerprints()

        # --- 6. Repository + refresher -----------------------------------
        await self._start_refresher()

        # --- 7. Admission interceptor ------------------------------------
        await self._start_interceptor()

        # --- 8. REST API -------------------------------------------------
        await self._start_rest()

        # --- 9. Admission webhook (optional) -----------------------------
        await self._start_webhook()

        # --- 10. Periodic refresh (optional) -----------------------------
        await self._start_scheduler()

        self._running = True
        self._log.info("transync started", port=self.config.api.port)

        # --- 11. Initial refresh ------------------------------------------
        assert self._refresher is not None
        assert self._source is not None
        await self._refresher.refresh(self._source.fingerprints)

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    async def _start_k8s_client(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting k8s client")
        try:
            self._api_client = await load_k8s_client(self.config.kubeconfig)
            self._log.info("k8s client configured")
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_catalog(self) -> None:
        """Build catalog clients and verify every domain's API key."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting catalog clients")
        try:
            self._catalog_clients = await build_catalog(self.config)
            self._log.info("catalog clients verified", domains=sorted(self._catalog_clients))
        except Exception as exc:
            raise _ComponentError("catalog", exc) from exc

    async def _start_fingerprints(self) -> None:
        """Create the FingerprintSource and run the first fetch."""
        assert self._log is not None
        self._log.debug("starting fingerprint source")
        source = FingerprintSource(self._catalog_clients)
        try:
            await source.fetch()
        except FingerprintFetchError as exc:
            raise _ComponentError("fingerprints", exc) from exc
        self._source = source

    async def _start_refresher(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting refresher")
        try:
            self._refresher = build_refresher(self.config, self._api_client)
            self._log.info(
                "refresher started",
                namespaces=self.config.reconcile.namespaces,
                kinds=[str(k) for k in self.config.reconcile.kinds],
            )
        except Exception as exc:
            raise _ComponentError("refresher", exc) from exc

    async def _start_interceptor(self) -> None:
        """The interceptor gets the same FingerprintSet handle as the refresher."""
        assert self.config is not None
        assert self._source is not None
        from transync.admission import AdmissionInterceptor
        from transync.reconcile import MetadataCodec

        codec = MetadataCodec(self.config.reconcile.annotation_prefix)
        self._interceptor = AdmissionInterceptor(codec, self._source.fingerprints)

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server (health, metrics, refresh trigger)."""
        assert self._log is not None
        assert self.config is not None
        assert self._source is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from transync.api import build_app

            fastapi_app = build_app(fingerprints=self._source.fingerprints, refresh_cycle=self.refresh_cycle)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",  # noqa: S104
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    async def _start_webhook(self) -> None:
        """Start the TLS admission webhook server if enabled."""
        assert self._log is not None
        assert self.config is not None
        assert self._interceptor is not None
        webhook = self.config.webhook
        if not webhook.enabled:
            self._log.info("admission webhook disabled")
            return

        self._log.debug("starting admission webhook")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from transync.admission import create_webhook_app

            uv_config = uvicorn.Config(
                app=create_webhook_app(self._interceptor),
                host="0.0.0.0",  # noqa: S104
                port=webhook.port,
                ssl_certfile=webhook.tls_cert_file,
                ssl_keyfile=webhook.tls_private_key_file,
                log_config=None,
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="webhook-server")
            self._background_tasks.append(task)
            self._webhook_server = server
            self._log.info("admission webhook started", port=webhook.port)
        except Exception as exc:
            raise _ComponentError("webhook", exc) from exc

    async def _start_scheduler(self) -> None:
        assert self._log is not None
        assert self.config is not None
        if not self.config.scheduler.enabled:
            self._log.info("periodic refresh disabled")
            return

        from transync.scheduler import PeriodicScheduler

        self._scheduler = PeriodicScheduler(period_seconds(self.config.scheduler.period), self.refresh_cycle)
        self._scheduler.start()

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    async def refresh_cycle(self) -> None:
        """Fetch fresh fingerprints, then reconcile every namespace.

        A failed fetch is fatal: the app shuts down with exit status 1.
        """
        assert self._source is not None
        assert self._refresher is not None
        try:
            fingerprints = await self._source.fetch()
        except FingerprintFetchError as exc:
            self._fatal(exc)
            return
        await self._refresher.refresh(fingerprints)

    def _fatal(self, exc: Exception) -> None:
        log = self._log or get_logger("app")
        log.critical("fatal fingerprint fetch error", error=str(exc))
        self.exit_code = 1
        self.request_shutdown()

    def request_shutdown(self) -> None:
        """Schedule ``stop()`` once; later calls are no-ops."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.stop(), name="shutdown")

    async def wait_shutdown(self) -> None:
        """Wait for a shutdown scheduled by ``request_shutdown()`` to finish."""
        if self._shutdown_task is not None:
            await self._shutdown_task

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("transync shutting down")
        self._running = False

        if self._scheduler is not None:
            await self._stop_component("scheduler", self._scheduler)
            self._scheduler = None

        for server in (self._webhook_server, self._rest_server):
            if server is not None:
                server.should_exit = True

        if self._background_tasks:
            _done, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        self._background_tasks.clear()
        self._webhook_server = None
        self._rest_server = None

        if self._catalog_clients:
            try:
                await close_catalog(self._catalog_clients)
            except Exception as exc:
                log.error("catalog client close raised an error", error=str(exc))
            self._catalog_clients = {}

        await self._stop_k8s_client()
        log.info("transync stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._api_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._api_client.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._api_client = None


def _transync_version() -> str:
    from transync import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: TransyncConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = TransyncApp(config)
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        while app.running:
            await asyncio.sleep(1)
        await app.wait_shutdown()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()

    if app.exit_code:
        raise SystemExit(app.exit_code)
