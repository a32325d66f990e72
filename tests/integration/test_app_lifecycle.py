"""TransyncApp runtime behaviour: refresh cycles and fatal fetch failures."""

from __future__ import annotations

from transync.app import TransyncApp
from transync.models.config import TransyncConfig

PREFIX = "translations.example.org"


def _app(source, refresher) -> TransyncApp:
    app = TransyncApp(TransyncConfig())
    app._source = source
    app._refresher = refresher
    return app


class TestRefreshCycle:
    async def test_cycle_fetches_then_refreshes(self, source, refresher, apps_api, new_deployment) -> None:
        apps_api.add(new_deployment("web"))
        app = _app(source, refresher)

        await app.refresh_cycle()

        annotations = apps_api.get("default", "web")["spec"]["template"]["metadata"]["annotations"]
        assert set(annotations) == {f"{PREFIX}/catalog", f"{PREFIX}/emails"}
        assert app.exit_code == 0

    async def test_fetch_failure_is_fatal(self, source, refresher, apps_api, exporters, new_deployment) -> None:
        apps_api.add(new_deployment("web"))
        exporters["catalog"].error = RuntimeError("401 Unauthorized")
        app = _app(source, refresher)

        await app.refresh_cycle()
        await app.wait_shutdown()

        assert app.exit_code == 1
        assert apps_api.replace_calls == 0
        assert app.running is False

    async def test_shutdown_is_requested_once(self, source, refresher, exporters) -> None:
        exporters["emails"].error = RuntimeError("boom")
        app = _app(source, refresher)

        await app.refresh_cycle()
        first = app._shutdown_task
        await app.refresh_cycle()

        assert app._shutdown_task is first
        await app.wait_shutdown()


class TestStop:
    async def test_stop_on_unstarted_app_is_safe(self) -> None:
        app = TransyncApp(TransyncConfig())
        await app.stop()
        await app.wait_shutdown()
        assert app.running is False
