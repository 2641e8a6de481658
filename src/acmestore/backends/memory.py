"""In-process backend keeping blobs in a dict.

Used by the test-suite and for local development.  Conflict semantics
follow the Kubernetes API: creating an existing object or updating a
missing one fails.
"""

from __future__ import annotations

import threading
from collections import Counter

from acmestore.backends.base import Blob, ObjectBackend
from acmestore.core.errors import BackendError, NotFoundError


class InMemoryBackend(ObjectBackend):
    """Thread-safe dict-backed :class:`ObjectBackend`."""

    def __init__(self, blobs: list[Blob] | None = None) -> None:
        self._lock = threading.Lock()
        self._blobs: dict[tuple[str, str], Blob] = {}
        self.calls: Counter[str] = Counter()
        for blob in blobs or ():
            self._blobs[(blob.namespace, blob.name)] = _copy(blob)

    def exists(self, namespace: str, name: str) -> bool:
        with self._lock:
            self.calls["exists"] += 1
            return (namespace, name) in self._blobs

    def get(self, namespace: str, name: str) -> Blob:
        with self._lock:
            self.calls["get"] += 1
            blob = self._blobs.get((namespace, name))
            if blob is None:
                msg = f"object {namespace}/{name} not found"
                raise NotFoundError(msg)
            return _copy(blob)

    def create(self, blob: Blob) -> None:
        with self._lock:
            self.calls["create"] += 1
            key = (blob.namespace, blob.name)
            if key in self._blobs:
                msg = f"object {blob.namespace}/{blob.name} already exists"
                raise BackendError(msg)
            self._blobs[key] = _copy(blob)

    def update(self, blob: Blob) -> None:
        with self._lock:
            self.calls["update"] += 1
            key = (blob.namespace, blob.name)
            if key not in self._blobs:
                msg = f"object {blob.namespace}/{blob.name} not found"
                raise BackendError(msg)
            self._blobs[key] = _copy(blob)


def _copy(blob: Blob) -> Blob:
    return Blob(
        name=blob.name,
        namespace=blob.namespace,
        data=dict(blob.data),
        type=blob.type,
    )
