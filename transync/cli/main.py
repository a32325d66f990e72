"""Click commands: run the service, or fetch/refresh once.

Options given on the command line override the matching ``TRANSYNC_*``
environment variables.
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from transync.catalog import CatalogError, FingerprintFetchError, FingerprintSource
from transync.config import load_config, validate_period
from transync.models.config import TransyncConfig
from transync.models.fingerprints import FingerprintSet
from transync.observability.logging import get_logger, setup_logging


def _load(kubeconfig: str | None = None) -> TransyncConfig:
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    if kubeconfig:
        config.kubeconfig = kubeconfig
    setup_logging(config.log.level, config.log.format)
    return config


@click.group()
@click.version_option(package_name="transync")
def cli() -> None:
    """Keep workload pod templates annotated with translation fingerprints."""


@cli.command()
@click.option("--kubeconfig", default=None, help="Path to a kubeconfig file.")
@click.option("--cron/--no-cron", default=None, help="Enable periodic refreshes.")
@click.option("--webhook/--no-webhook", default=None, help="Enable the mutating admission webhook.")
@click.option("--period", default=None, help="Duration between refreshes, e.g. 2m.")
def run(kubeconfig: str | None, cron: bool | None, webhook: bool | None, period: str | None) -> None:
    """Run the refresher service."""
    from transync.app import main

    config = _load(kubeconfig)
    if cron is not None:
        config.scheduler.enabled = cron
    if webhook is not None:
        config.webhook.enabled = webhook
    if period is not None:
        try:
            config.scheduler.period = validate_period(period)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--period") from exc

    asyncio.run(main(config))


@cli.command()
def fingerprints() -> None:
    """Verify credentials, fetch once and print the fingerprints as JSON."""
    config = _load()
    try:
        result = asyncio.run(_fetch(config))
    except CatalogError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(result, indent=2, sort_keys=True))


@cli.command()
@click.option("--kubeconfig", default=None, help="Path to a kubeconfig file.")
def refresh(kubeconfig: str | None) -> None:
    """Fetch fingerprints and run one refresh pass."""
    config = _load(kubeconfig)
    try:
        updated = asyncio.run(_refresh(config))
    except CatalogError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"updated {updated} workload(s)")


async def _fetch(config: TransyncConfig) -> dict[str, str]:
    from transync.app import build_catalog, close_catalog

    clients = await build_catalog(config)
    try:
        return (await _fetch_or_exit(FingerprintSource(clients))).snapshot()
    finally:
        await close_catalog(clients)


async def _refresh(config: TransyncConfig) -> int:
    from transync.app import build_catalog, build_refresher, close_catalog, load_k8s_client

    try:
        api_client = await load_k8s_client(config.kubeconfig)
    except Exception as exc:
        raise click.ClickException(f"cannot configure Kubernetes client: {exc}") from exc
    try:
        clients = await build_catalog(config)
        try:
            fingerprint_set = await _fetch_or_exit(FingerprintSource(clients))
            return await build_refresher(config, api_client).refresh(fingerprint_set)
        finally:
            await close_catalog(clients)
    finally:
        await api_client.close()


async def _fetch_or_exit(source: FingerprintSource) -> FingerprintSet:
    try:
        return await source.fetch()
    except FingerprintFetchError as exc:
        get_logger("cli").critical("fatal fingerprint fetch error", error=str(exc))
        sys.exit(1)
