"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from transync.models.workload import WorkloadKind


@dataclass
class CatalogConfig:
    """Translation catalog service configuration."""

    # domain -> API key
    api_keys: dict[str, str] = field(default_factory=dict)
    base_url: str = "https://localise.biz"
    api_version: str = "1.0.25"
    timeout_seconds: float = 30.0


@dataclass
class ReconcileConfig:
    """Refresher and repository configuration."""

    annotation_prefix: str = "translations.example.org"
    label_selector: str = "translations.example.org/refresh=true"
    namespaces: list[str] = field(default_factory=lambda: ["default"])
    kinds: list[WorkloadKind] = field(default_factory=lambda: [WorkloadKind.DEPLOYMENT])
    conflict_retry_steps: int = 5


@dataclass
class SchedulerConfig:
    """Periodic refresh configuration."""

    enabled: bool = True
    period: str = "2m"


@dataclass
class WebhookConfig:
    """Mutating admission webhook configuration."""

    enabled: bool = False
    port: int = 8443
    tls_cert_file: str = ""
    tls_private_key_file: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    # json | console
    format: str = "json"


@dataclass
class TransyncConfig:
    """Top-level transync configuration."""

    kubeconfig: str = ""
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
