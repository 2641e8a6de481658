"""acmestore configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    StoreConfig(config_file="/etc/acmestore/config.yaml")

    # 2. Any module retrieves it afterwards
    from acmestore.config import get_config
    cfg = get_config()
    cfg.settings.store.namespace  # typed access

    # 3. Dynamic access
    cfg.get("backend.kubernetes.api_url", default="http://localhost:8001")
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from acmestore.config.settings import AcmeStoreSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

# RFC 1123 label (namespaces) and subdomain (secret names)
_DNS_LABEL_RE = re.compile(r"^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$")
_DNS_SUBDOMAIN_RE = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$",
)
_SECRET_KEY_RE = re.compile(r"^[-._a-zA-Z0-9]+$")

_KNOWN_BACKENDS = frozenset({"kubernetes", "memory"})

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: StoreConfig | None = None


def get_config() -> StoreConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`StoreConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "StoreConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class StoreConfig:
    """Central configuration for acmestore.

    Reads a YAML or JSON file, resolves ``${VAR}`` references, validates
    it against the bundled ``schema.json``, runs cross-field checks, and
    materialises the typed settings tree at :pyattr:`settings`.  The raw
    dict stays available via :pyattr:`data` / :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path) -> None:
        global _instance  # noqa: PLW0603

        self._config_file = Path(config_file)
        self._data: dict = {}
        self._load()
        self._validate_schema()
        self.additional_checks()
        self._settings: AcmeStoreSettings = build_settings(self._data)
        _instance = self

    @classmethod
    def reset(cls) -> None:
        """Forget the singleton (used by tests)."""
        global _instance  # noqa: PLW0603
        _instance = None

    # -- loading ------------------------------------------------------------

    def _load(self) -> None:
        """Load the config file then resolve ``${VAR}`` env-var references.

        Env-var resolution runs **before** schema validation so that
        substituted values (e.g. ``${LOG_LEVEL:-INFO}``) are checked
        against enum constraints in the schema.
        """
        try:
            text = self._config_file.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigValidationError(
                [f"Cannot read configuration file {self._config_file}: {exc}"],
            ) from exc

        try:
            if self._config_file.suffix == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigValidationError(
                [f"Cannot parse configuration file {self._config_file}: {exc}"],
            ) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigValidationError(
                ["Configuration root must be a mapping"],
            )
        _resolve_env_vars(data)
        self._data = data

    def _validate_schema(self) -> None:
        schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
        validator = jsonschema.Draft202012Validator(schema)
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(self._data), key=lambda e: list(e.path))
        ]
        if errors:
            raise ConfigValidationError(errors)

    # -- access -------------------------------------------------------------

    @property
    def settings(self) -> AcmeStoreSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        return self._data

    @property
    def config_file(self) -> Path:
        return self._config_file

    def get(self, path: str, default: Any = None) -> Any:  # noqa: ANN401
        """Look up a dot-separated *path* in the raw config data."""
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation, run after schema validation."""
        errors: list[str] = []
        warnings: list[str] = []

        store = self._data.get("store") or {}
        backend = self._data.get("backend") or {}
        kube = backend.get("kubernetes") or {}

        backend_type = backend.get("type", "kubernetes")
        if backend_type not in _KNOWN_BACKENDS and not backend_type.startswith("ext:"):
            errors.append(
                f"backend.type must be one of {sorted(_KNOWN_BACKENDS)} "
                f"or 'ext:package.module.ClassName' (got '{backend_type}')",
            )

        # -- store --
        data_key = store.get("data_key", "acme")
        if not _SECRET_KEY_RE.match(data_key):
            errors.append(
                f"store.data_key may only contain alphanumerics, '-', '_' and '.' "
                f"(got '{data_key}')",
            )

        if backend_type == "kubernetes":
            namespace = store.get("namespace", "default")
            if not _DNS_LABEL_RE.match(namespace):
                errors.append(
                    f"store.namespace must be a valid Kubernetes namespace (got '{namespace}')",
                )
            secret_name = store.get("secret_name", "traefik-acme-storage")
            if len(secret_name) > 253 or not _DNS_SUBDOMAIN_RE.match(secret_name):
                errors.append(
                    f"store.secret_name must be a valid Kubernetes object name "
                    f"(got '{secret_name}')",
                )

            # -- kubernetes --
            api_url = kube.get("api_url", "http://localhost:8001")
            if not kube.get("in_cluster") and not api_url.startswith(("http://", "https://")):
                errors.append(
                    f"backend.kubernetes.api_url must start with http:// or https:// "
                    f"(got '{api_url}')",
                )
            if kube.get("in_cluster") and "api_url" in kube:
                warnings.append(
                    "backend.kubernetes.api_url is ignored when in_cluster is true",
                )
            if kube.get("verify_tls") is False:
                warnings.append(
                    "backend.kubernetes.verify_tls is false; the API server "
                    "certificate will not be checked",
                )

        if backend_type == "memory":
            warnings.append(
                "backend.type is 'memory'; state will not survive a restart",
            )

        for warning in warnings:
            log.warning("Config: %s", warning)

        if errors:
            raise ConfigValidationError(errors)
