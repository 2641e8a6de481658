"""ACME state store backed by a single remote object.

Holds the account, issued certificates, and in-flight HTTP-01 /
TLS-ALPN-01 challenges in one in-memory :class:`StoredData` record.
The record is loaded once at construction and every mutation is handed
to a :class:`PersistenceWriter`, which writes the whole record back in
the background (fire-and-forget).

Concurrency
-----------
One lock guards every field of the record.  Accessors hold it only for
their in-memory step and release it before handing the record to the
writer.  The writer takes the same lock while encoding.

Persistence failures are never raised to the caller that triggered the
mutation: the in-memory state is already updated and the call returns.
They are logged by the writer.

Two store instances writing the same object are not coordinated: the
backend sees plain overwrites and the last writer wins.

Usage::

    from acmestore import AcmeStore
    from acmestore.backends import InMemoryBackend

    with AcmeStore(InMemoryBackend(), namespace="default") as store:
        store.set_http_challenge_token("tok", "example.com", b"tok.thumb")
        store.get_http_challenge_token("tok", "example.com")
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from acmestore.core import codec
from acmestore.core.errors import CodecError, NotFoundError, StoreError
from acmestore.models import StoredData
from acmestore.store.writer import PersistenceWriter

if TYPE_CHECKING:
    from acmestore.backends.base import ObjectBackend
    from acmestore.config.settings import StoreSettings
    from acmestore.models import Account, Certificate

log = logging.getLogger(__name__)

DEFAULT_SECRET_NAME = "traefik-acme-storage"
DEFAULT_DATA_KEY = "acme"


class AcmeStore:
    """Concurrency-safe ACME state store with background persistence.

    Parameters
    ----------
    backend:
        Remote object backend, created once and reused for every call.
    namespace:
        Namespace of the backing object.
    secret_name:
        Name of the backing object.
    data_key:
        Key inside the object holding the encoded payload.
    queue_size:
        Bound on pending writes (``0`` = unbounded).
    shutdown_timeout:
        Seconds :meth:`close` waits for pending writes.

    Raises
    ------
    BackendError
        If the backing object cannot be read at construction.
    CodecError
        If the backing object exists but its payload is corrupt.

    """

    def __init__(
        self,
        backend: ObjectBackend,
        namespace: str,
        *,
        secret_name: str = DEFAULT_SECRET_NAME,
        data_key: str = DEFAULT_DATA_KEY,
        queue_size: int = 0,
        shutdown_timeout: float = 10.0,
    ) -> None:
        self._backend = backend
        self._namespace = namespace
        self._secret_name = secret_name
        self._data_key = data_key
        self._shutdown_timeout = shutdown_timeout
        self._lock = threading.Lock()
        self._data = StoredData()
        self._writer = PersistenceWriter(
            backend,
            namespace,
            secret_name,
            data_key,
            self._lock,
            queue_size=queue_size,
        )
        self._load()
        self._writer.start()

    @classmethod
    def from_settings(cls, backend: ObjectBackend, settings: StoreSettings) -> AcmeStore:
        """Build a store from the ``store`` configuration section."""
        return cls(
            backend,
            settings.namespace,
            secret_name=settings.secret_name,
            data_key=settings.data_key,
            queue_size=settings.queue_size,
            shutdown_timeout=settings.shutdown_timeout_seconds,
        )

    # -- lifecycle ---------------------------------------------------------

    def _load(self) -> None:
        loaded = load_stored_data(
            self._backend,
            self._namespace,
            self._secret_name,
            self._data_key,
        )
        if loaded is None:
            log.info(
                "No stored ACME state at %s/%s, starting empty",
                self._namespace,
                self._secret_name,
            )
            return
        with self._lock:
            self._data = loaded
        log.info(
            "Loaded ACME state from %s/%s (%d certificate(s), account=%s)",
            self._namespace,
            self._secret_name,
            len(loaded.certificates),
            "yes" if loaded.account is not None else "no",
        )

    def flush(self, timeout: float | None = None) -> bool:
        """Block until every queued write has been attempted."""
        return self._writer.flush(timeout)

    def close(self) -> None:
        """Write pending snapshots and stop the background writer.

        Mutations after this raise :class:`StoreError`; reads keep working.
        """
        self._writer.stop(timeout=self._shutdown_timeout)

    def __enter__(self) -> AcmeStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def writer(self) -> PersistenceWriter:
        return self._writer

    def _ensure_open(self) -> None:
        if self._writer.closed:
            msg = f"store {self._namespace}/{self._secret_name} is closed"
            raise StoreError(msg)

    def _persist(self) -> None:
        self._writer.submit(self._data)

    # -- account -----------------------------------------------------------

    def get_account(self) -> Account | None:
        with self._lock:
            return self._data.account

    def save_account(self, account: Account) -> None:
        self._ensure_open()
        with self._lock:
            self._data.account = account
        self._persist()

    # -- certificates ------------------------------------------------------

    def get_certificates(self) -> list[Certificate]:
        """Return the stored certificates.

        The returned list is the live one; it is replaced, never mutated,
        by :meth:`save_certificates`.
        """
        with self._lock:
            return self._data.certificates

    def save_certificates(self, certificates: list[Certificate]) -> None:
        """Replace the whole certificate list."""
        self._ensure_open()
        with self._lock:
            self._data.certificates = list(certificates)
        self._persist()

    # -- HTTP-01 -----------------------------------------------------------

    def get_http_challenge_token(self, token: str, domain: str) -> bytes:
        """Return the key authorization for *token* and *domain*.

        Raises :class:`NotFoundError` if either is unknown.
        """
        with self._lock:
            domains = self._data.http_challenges.get(token)
            if domains is None:
                msg = f"cannot find challenge for token {token}"
                raise NotFoundError(msg)
            key_auth = domains.get(domain)
        if key_auth is None:
            msg = f"cannot find challenge for token {token} and domain {domain}"
            raise NotFoundError(msg)
        return key_auth

    def set_http_challenge_token(self, token: str, domain: str, key_auth: bytes) -> None:
        """Record *key_auth* for *token* and *domain*.

        Raises :class:`ValueError` if *token* or *domain* is empty.
        """
        if not token or not domain:
            msg = f"token and domain must be non-empty (got {token!r}, {domain!r})"
            raise ValueError(msg)
        self._ensure_open()
        with self._lock:
            self._data.http_challenges.setdefault(token, {})[domain] = key_auth
        self._persist()

    def remove_http_challenge_token(self, token: str, domain: str) -> None:
        """Forget *domain* under *token*; unknown pairs are ignored.

        An emptied token map is left in place.
        """
        self._ensure_open()
        with self._lock:
            domains = self._data.http_challenges.get(token)
            if domains is not None:
                domains.pop(domain, None)
        self._persist()

    # -- TLS-ALPN-01 -------------------------------------------------------

    def add_tls_challenge(self, domain: str, certificate: Certificate) -> None:
        if not domain:
            msg = "domain must be non-empty"
            raise ValueError(msg)
        self._ensure_open()
        with self._lock:
            self._data.tls_challenges[domain] = certificate
        self._persist()

    def get_tls_challenge(self, domain: str) -> Certificate | None:
        with self._lock:
            return self._data.tls_challenges.get(domain)

    def remove_tls_challenge(self, domain: str) -> None:
        self._ensure_open()
        with self._lock:
            self._data.tls_challenges.pop(domain, None)
        self._persist()


def load_stored_data(
    backend: ObjectBackend,
    namespace: str,
    secret_name: str = DEFAULT_SECRET_NAME,
    data_key: str = DEFAULT_DATA_KEY,
) -> StoredData | None:
    """Read and decode the backing object.

    Returns ``None`` when the object does not exist yet (first run).
    Every other failure propagates: a :class:`BackendError` when the
    backend cannot be read, a :class:`CodecError` when the object exists
    but its payload is missing or corrupt.
    """
    try:
        blob = backend.get(namespace, secret_name)
    except NotFoundError:
        return None

    payload = blob.data.get(data_key)
    if payload is None:
        msg = f"Object {namespace}/{secret_name} has no '{data_key}' key"
        raise CodecError(msg)
    return codec.decode(payload)
