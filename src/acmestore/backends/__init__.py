"""Remote object backends holding the persisted store payload."""

from acmestore.backends.base import Blob, ObjectBackend
from acmestore.backends.kubernetes import KubernetesSecretBackend
from acmestore.backends.memory import InMemoryBackend
from acmestore.backends.registry import build_backend

__all__ = [
    "Blob",
    "InMemoryBackend",
    "KubernetesSecretBackend",
    "ObjectBackend",
    "build_backend",
]
