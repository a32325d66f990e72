"""Tests for Refresher orchestration across namespaces."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from transync.models.workload import Workload, WorkloadKind
from transync.reconcile.codec import MetadataCodec
from transync.reconcile.refresher import Refresher

_PREFIX = "translations.example.org"


def _workload(name: str, namespace: str, domains: str, observed: dict[str, str]) -> Workload:
    return Workload(
        kind=WorkloadKind.DEPLOYMENT,
        obj={
            "metadata": {"name": name, "namespace": namespace, "annotations": {f"{_PREFIX}/domains": domains}},
            "spec": {
                "template": {
                    "metadata": {"annotations": {f"{_PREFIX}/{d}": v for d, v in observed.items()}},
                }
            },
        },
    )


def _make_repository(candidates: dict[str, list[Workload]]) -> MagicMock:
    repository = MagicMock()
    repository.find_candidates = AsyncMock(side_effect=lambda ns: candidates.get(ns, []))
    repository.persist = AsyncMock(side_effect=lambda ns, workloads: len(workloads))
    return repository


class TestRefresh:
    async def test_persists_only_stale_workloads(self) -> None:
        fresh = _workload("fresh", "default", "catalog", {"catalog": "aaa"})
        stale = _workload("stale", "default", "catalog,emails", {"catalog": "aaa", "emails": "old"})
        repository = _make_repository({"default": [fresh, stale]})
        refresher = Refresher(repository, MetadataCodec(_PREFIX), ["default"])

        updated = await refresher.refresh({"catalog": "aaa", "emails": "bbb"})

        assert updated == 1
        repository.persist.assert_awaited_once_with("default", [stale])
        assert stale.changeset == {"emails": "bbb"}
        assert stale.template_annotations()[f"{_PREFIX}/emails"] == "bbb"

    async def test_every_namespace_is_visited(self) -> None:
        repository = _make_repository(
            {
                "default": [_workload("web", "default", "catalog", {})],
                "shop": [_workload("cart", "shop", "catalog", {})],
            }
        )
        refresher = Refresher(repository, MetadataCodec(_PREFIX), ["default", "shop"])

        updated = await refresher.refresh({"catalog": "aaa"})

        assert updated == 2
        assert [c.args[0] for c in repository.find_candidates.await_args_list] == ["default", "shop"]

    async def test_nothing_to_persist_skips_the_write(self) -> None:
        repository = _make_repository({"default": [_workload("web", "default", "catalog", {"catalog": "aaa"})]})
        refresher = Refresher(repository, MetadataCodec(_PREFIX), ["default"])

        assert await refresher.refresh({"catalog": "aaa"}) == 0
        repository.persist.assert_not_awaited()

    async def test_empty_namespace_listing_continues(self) -> None:
        repository = _make_repository({"shop": [_workload("cart", "shop", "catalog", {})]})
        refresher = Refresher(repository, MetadataCodec(_PREFIX), ["default", "shop"])

        assert await refresher.refresh({"catalog": "aaa"}) == 1
