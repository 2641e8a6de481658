"""Configuration subsystem for acmestore.

Public API::

    from acmestore.config import get_config, StoreConfig

    # At startup (CLI only):
    StoreConfig(config_file="config.yaml")

    # Everywhere else:
    cfg       = get_config()
    namespace = cfg.settings.store.namespace         # typed access
    api_url   = cfg.get("backend.kubernetes.api_url")  # dynamic dot-path
"""

from acmestore.config.settings import (
    AcmeStoreSettings,
    BackendSettings,
    KubernetesSettings,
    LoggingSettings,
    StoreSettings,
)
from acmestore.config.store_config import (
    ConfigValidationError,
    StoreConfig,
    get_config,
)

__all__ = [
    "AcmeStoreSettings",
    "BackendSettings",
    "ConfigValidationError",
    "KubernetesSettings",
    "LoggingSettings",
    "StoreConfig",
    "StoreSettings",
    "get_config",
]
