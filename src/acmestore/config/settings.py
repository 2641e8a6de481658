"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from acmestore.config import get_config

    store = get_config().settings.store
    print(store.namespace, store.secret_name)
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoreSettings:
    """Where the state object lives and how writes are queued."""

    namespace: str
    secret_name: str
    data_key: str
    queue_size: int
    shutdown_timeout_seconds: float


def _build_store(data: dict | None) -> StoreSettings:
    d = data or {}
    return StoreSettings(
        namespace=d.get("namespace", "default"),
        secret_name=d.get("secret_name", "traefik-acme-storage"),
        data_key=d.get("data_key", "acme"),
        queue_size=d.get("queue_size", 0),
        shutdown_timeout_seconds=d.get("shutdown_timeout_seconds", 10),
    )


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KubernetesSettings:
    """Kubernetes API connection (``kubectl proxy`` or in-cluster)."""

    api_url: str
    in_cluster: bool
    token_path: str | None
    ca_cert_path: str | None
    verify_tls: bool
    timeout_seconds: int


@dataclass(frozen=True)
class BackendSettings:
    """Remote object backend selection."""

    type: str
    kubernetes: KubernetesSettings


def _build_backend(data: dict | None) -> BackendSettings:
    d = data or {}
    k = d.get("kubernetes") or {}
    return BackendSettings(
        type=d.get("type", "kubernetes"),
        kubernetes=KubernetesSettings(
            api_url=k.get("api_url", "http://localhost:8001"),
            in_cluster=k.get("in_cluster", False),
            token_path=k.get("token_path"),
            ca_cert_path=k.get("ca_cert_path"),
            verify_tls=k.get("verify_tls", True),
            timeout_seconds=k.get("timeout_seconds", 10),
        ),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AcmeStoreSettings:
    store: StoreSettings
    backend: BackendSettings
    logging: LoggingSettings


def build_settings(data: dict) -> AcmeStoreSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`StoreConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return AcmeStoreSettings(
        store=_build_store(data.get("store")),
        backend=_build_backend(data.get("backend")),
        logging=_build_logging(data.get("logging")),
    )
