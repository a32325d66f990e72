"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from transync.models.config import (
    APIConfig,
    CatalogConfig,
    LogConfig,
    ReconcileConfig,
    SchedulerConfig,
    TransyncConfig,
    WebhookConfig,
)
from transync.models.workload import WorkloadKind
from transync.reconcile.codec import RESERVED_DOMAIN

_PERIOD_UNITS = {"s": 1, "m": 60, "h": 3600}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"TRANSYNC_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str, default: str) -> list[str]:
    return [item.strip() for item in _env(key, default).split(",") if item.strip()]


def validate_period(value: str) -> str:
    if not re.match(r"^[0-9]+(s|m|h)$", value):
        raise ValueError(f"Invalid refresh period format: {value}")
    if period_seconds(value) <= 0:
        raise ValueError(f"Refresh period must be positive: {value}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"json", "console"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _validate_kinds(values: list[str]) -> list[WorkloadKind]:
    kinds: list[WorkloadKind] = []
    for value in values:
        kind = WorkloadKind.parse(value)
        if kind is None:
            raise ValueError(f"Unsupported workload kind: {value}. Must be one of {[k.value for k in WorkloadKind]}")
        kinds.append(kind)
    return kinds


def period_seconds(value: str) -> int:
    """Convert a period string such as ``2m`` to seconds."""
    return int(value[:-1]) * _PERIOD_UNITS[value[-1]]


def domain_key_env(domain: str) -> str:
    """Name of the environment variable holding *domain*'s catalog key."""
    return f"TRANSYNC_CATALOG_KEY_{domain.upper().replace('-', '_')}"


def _load_api_keys(domains: list[str]) -> dict[str, str]:
    keys: dict[str, str] = {}
    for domain in domains:
        if domain == RESERVED_DOMAIN:
            raise ValueError(f"Domain name {domain!r} is reserved for the subscription annotation")
        key = os.environ.get(domain_key_env(domain), "")
        if not key:
            raise ValueError(f"Missing catalog API key for domain {domain!r} (set {domain_key_env(domain)})")
        keys[domain] = key
    return keys


def load_config() -> TransyncConfig:
    """Load configuration from TRANSYNC_* environment variables."""
    prefix = _env("ANNOTATION_PREFIX", "translations.example.org")
    webhook = WebhookConfig(
        enabled=_env_bool("WEBHOOK_ENABLED", False),
        port=_env_int("WEBHOOK_PORT", 8443, min_val=1, max_val=65535),
        tls_cert_file=_env("TLS_CERT_FILE", ""),
        tls_private_key_file=_env("TLS_PRIVATE_KEY_FILE", ""),
    )
    if webhook.enabled and not (webhook.tls_cert_file and webhook.tls_private_key_file):
        raise ValueError("Webhook requires TRANSYNC_TLS_CERT_FILE and TRANSYNC_TLS_PRIVATE_KEY_FILE")

    return TransyncConfig(
        kubeconfig=_env("KUBECONFIG", ""),
        catalog=CatalogConfig(
            api_keys=_load_api_keys(_env_list("DOMAINS", "catalog,emails")),
            base_url=_env("CATALOG_BASE_URL", "https://localise.biz"),
            api_version=_env("CATALOG_API_VERSION", "1.0.25"),
            timeout_seconds=_env_float("CATALOG_TIMEOUT", 30.0, min_val=1.0, max_val=300.0),
        ),
        reconcile=ReconcileConfig(
            annotation_prefix=prefix,
            label_selector=_env("LABEL_SELECTOR", f"{prefix}/refresh=true"),
            namespaces=_env_list("NAMESPACES", "default"),
            kinds=_validate_kinds(_env_list("KINDS", "Deployment")),
            conflict_retry_steps=_env_int("CONFLICT_RETRY_STEPS", 5, min_val=1, max_val=20),
        ),
        scheduler=SchedulerConfig(
            enabled=_env_bool("CRON_ENABLED", True),
            period=validate_period(_env("REFRESH_PERIOD", "2m")),
        ),
        webhook=webhook,
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
