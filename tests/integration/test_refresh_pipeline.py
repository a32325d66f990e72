"""End-to-end: catalog fetch → refresher → admission, sharing one fingerprint handle."""

from __future__ import annotations

import hashlib

import pytest

from transync.admission import AdmissionInterceptor
from transync.catalog import FingerprintFetchError

PREFIX = "translations.example.org"


def _sha1(payload: bytes) -> str:
    return hashlib.sha1(payload).hexdigest()  # noqa: S324


def _template_annotations(obj: dict) -> dict[str, str]:
    return obj["spec"]["template"]["metadata"].get("annotations", {})


class TestRefreshPass:
    async def test_stale_workloads_get_annotated(self, source, refresher, apps_api, exporters, new_deployment) -> None:
        apps_api.add(new_deployment("web"))
        apps_api.add(new_deployment("mailer", domains="emails"))

        fingerprints = await source.fetch()
        updated = await refresher.refresh(fingerprints)

        assert updated == 2
        assert _template_annotations(apps_api.get("default", "web")) == {
            f"{PREFIX}/catalog": _sha1(exporters["catalog"].payload),
            f"{PREFIX}/emails": _sha1(exporters["emails"].payload),
        }
        assert _template_annotations(apps_api.get("default", "mailer")) == {
            f"{PREFIX}/emails": _sha1(exporters["emails"].payload),
        }

    async def test_second_pass_is_a_no_op(self, source, refresher, apps_api, new_deployment) -> None:
        apps_api.add(new_deployment("web"))
        fingerprints = await source.fetch()

        assert await refresher.refresh(fingerprints) == 1
        calls = apps_api.replace_calls

        assert await refresher.refresh(fingerprints) == 0
        assert apps_api.replace_calls == calls

    async def test_only_changed_domain_is_rewritten(
        self, source, refresher, apps_api, exporters, new_deployment
    ) -> None:
        apps_api.add(new_deployment("web"))
        await refresher.refresh(await source.fetch())
        before = _template_annotations(apps_api.get("default", "web"))

        exporters["emails"].payload = b'{"subject": "welcome back"}'
        assert await refresher.refresh(await source.fetch()) == 1

        after = _template_annotations(apps_api.get("default", "web"))
        assert after[f"{PREFIX}/catalog"] == before[f"{PREFIX}/catalog"]
        assert after[f"{PREFIX}/emails"] == _sha1(b'{"subject": "welcome back"}')

    async def test_unlabelled_and_unsubscribed_workloads_are_left_alone(
        self, source, refresher, apps_api, new_deployment
    ) -> None:
        unlabelled = new_deployment("legacy")
        unlabelled["metadata"]["labels"] = {}
        apps_api.add(unlabelled)
        apps_api.add(new_deployment("plain", domains=None))

        assert await refresher.refresh(await source.fetch()) == 0
        assert apps_api.replace_calls == 0

    async def test_conflict_is_retried_against_fresh_object(
        self, source, refresher, apps_api, exporters, new_deployment
    ) -> None:
        apps_api.add(new_deployment("web"))
        apps_api.conflicts = 2

        assert await refresher.refresh(await source.fetch()) == 1
        assert apps_api.replace_calls == 3
        assert _template_annotations(apps_api.get("default", "web"))[f"{PREFIX}/catalog"] == _sha1(
            exporters["catalog"].payload
        )


class TestSharedHandle:
    async def test_interceptor_sees_refetched_values(self, source, codec, exporters, new_deployment) -> None:
        interceptor = AdmissionInterceptor(codec, source.fingerprints)
        await source.fetch()

        first = new_deployment("web", domains="catalog")
        interceptor.intercept("Deployment", first)
        assert _template_annotations(first) == {f"{PREFIX}/catalog": _sha1(exporters["catalog"].payload)}

        exporters["catalog"].payload = b'{"greeting": "bonjour"}'
        await source.fetch()

        second = new_deployment("web", domains="catalog")
        interceptor.intercept("Deployment", second)
        assert _template_annotations(second) == {f"{PREFIX}/catalog": _sha1(b'{"greeting": "bonjour"}')}

    async def test_refresh_and_admission_agree(self, source, refresher, apps_api, codec, new_deployment) -> None:
        apps_api.add(new_deployment("web"))
        fingerprints = await source.fetch()
        await refresher.refresh(fingerprints)

        admitted = new_deployment("web")
        AdmissionInterceptor(codec, fingerprints).intercept("Deployment", admitted)

        assert _template_annotations(admitted) == _template_annotations(apps_api.get("default", "web"))

    async def test_failed_fetch_keeps_previous_values(self, source, exporters) -> None:
        await source.fetch()
        before = source.fingerprints.snapshot()

        exporters["catalog"].payload = b"changed"
        exporters["emails"].error = RuntimeError("catalog service unavailable")
        with pytest.raises(FingerprintFetchError) as exc_info:
            await source.fetch()

        assert set(exc_info.value.errors) == {"emails"}
        assert source.fingerprints.snapshot() == before
