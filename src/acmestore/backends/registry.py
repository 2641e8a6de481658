"""Object backend registry.

Loads the configured backend by name and returns an initialised
:class:`ObjectBackend`.  Supports the built-in backends (``kubernetes``,
``memory``) and custom backends via the ``ext:`` prefix.

Usage::

    from acmestore.backends.registry import build_backend

    backend = build_backend(settings.backend)
    store = AcmeStore(backend, namespace=settings.store.namespace)
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from acmestore.backends.base import ObjectBackend
from acmestore.core.errors import BackendError

if TYPE_CHECKING:
    from acmestore.config.settings import BackendSettings

log = logging.getLogger(__name__)

# Maps config string → (module_path, class_name)
_BUILTIN_BACKENDS: dict[str, tuple[str, str]] = {
    "kubernetes": ("acmestore.backends.kubernetes", "KubernetesSecretBackend"),
    "memory": ("acmestore.backends.memory", "InMemoryBackend"),
}


def build_backend(settings: BackendSettings) -> ObjectBackend:
    """Load and return the configured object backend.

    Raises
    ------
    BackendError
        If the backend name is unknown or the class cannot be loaded.

    """
    name = settings.type
    if name in _BUILTIN_BACKENDS:
        mod_path, cls_name = _BUILTIN_BACKENDS[name]
        label = name
    elif name.startswith("ext:"):
        mod_path, _, cls_name = name[4:].rpartition(".")
        label = name
        if not mod_path:
            msg = (
                f"Invalid external backend '{name[4:]}': must be fully "
                "qualified (e.g. 'mypackage.module.ClassName')"
            )
            raise BackendError(msg)
    else:
        msg = (
            f"Unknown backend '{name}'; built-in options: {sorted(_BUILTIN_BACKENDS)}. "
            "Use 'ext:mypackage.module.ClassName' for custom backends."
        )
        raise BackendError(msg)

    try:
        module = importlib.import_module(mod_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load backend '{label}': {exc}"
        raise BackendError(msg) from exc

    if not (isinstance(cls, type) and issubclass(cls, ObjectBackend)):
        msg = f"Backend '{label}' is not a subclass of ObjectBackend"
        raise BackendError(msg)

    backend = cls.from_settings(settings)
    log.info("Loaded object backend: %s", label)
    return backend
