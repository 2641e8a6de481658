"""acmestore: durable ACME client state backed by a remote object.

Public API::

    from acmestore import AcmeStore
    from acmestore.backends import KubernetesSecretBackend

    store = AcmeStore(KubernetesSecretBackend(settings), namespace="ingress")
    store.set_http_challenge_token(token, "example.com", key_auth)
"""

__version__ = "0.3.0"

from acmestore.core.errors import (  # noqa: E402
    BackendError,
    CodecError,
    NotFoundError,
    StoreError,
)
from acmestore.store.store import AcmeStore  # noqa: E402

__all__ = [
    "AcmeStore",
    "BackendError",
    "CodecError",
    "NotFoundError",
    "StoreError",
    "__version__",
]
