"""Abstract base class for remote object backends.

A backend stores named, namespaced :class:`Blob` objects, each a
mapping from string key to bytes.  The store always writes the whole
object; backends never merge fields.

All backends must implement :meth:`~ObjectBackend.exists`,
:meth:`~ObjectBackend.get`, :meth:`~ObjectBackend.create`, and
:meth:`~ObjectBackend.update`.  A missing object is reported by
:meth:`get` as :class:`~acmestore.core.errors.NotFoundError`; every
other failure as :class:`~acmestore.core.errors.BackendError`.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from acmestore.config.settings import BackendSettings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Blob:
    """A named object in the remote backend.

    Attributes
    ----------
    name:
        Object name, unique within *namespace*.
    namespace:
        Scope the object lives in.
    data:
        Payload fields, ``key -> bytes``.
    type:
        Backend type tag (``"Opaque"`` for Kubernetes secrets).

    """

    name: str
    namespace: str
    data: dict[str, bytes] = field(default_factory=dict)
    type: str = "Opaque"


class ObjectBackend(abc.ABC):
    """Base class for all remote object backend implementations."""

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> ObjectBackend:  # noqa: ARG003
        """Build the backend from the ``backend`` configuration section."""
        return cls()

    @abc.abstractmethod
    def exists(self, namespace: str, name: str) -> bool:
        """Return whether the object *name* exists in *namespace*."""

    @abc.abstractmethod
    def get(self, namespace: str, name: str) -> Blob:
        """Fetch the object, raising ``NotFoundError`` if it is absent."""

    @abc.abstractmethod
    def create(self, blob: Blob) -> None:
        """Create *blob*; fails if it already exists."""

    @abc.abstractmethod
    def update(self, blob: Blob) -> None:
        """Replace the existing object's content with *blob* wholesale."""

    def close(self) -> None:  # noqa: B027
        """Release any resources held by the backend."""
