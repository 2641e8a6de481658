r"""Kubernetes Secret backend: stores blobs as core/v1 Secrets.

Talks to the Kubernetes REST API directly.  Two connection modes:

- **Proxy** (default): plain HTTP to ``kubectl proxy`` on
  ``http://localhost:8001``, which handles authentication.
- **In-cluster**: HTTPS to ``KUBERNETES_SERVICE_HOST`` using the pod's
  service-account token and cluster CA bundle.

The SSL context, opener, and bearer token are built once per backend
instance and reused for every call.

API contract
------------
**Get**: ``GET /api/v1/namespaces/{ns}/secrets/{name}`` (404 → missing)

**Create**: ``POST /api/v1/namespaces/{ns}/secrets``

**Update**: ``PUT /api/v1/namespaces/{ns}/secrets/{name}``

Request/response body (JSON)::

    {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "traefik-acme-storage", "namespace": "default"},
        "type": "Opaque",
        "data": {"acme": "<base64>"}
    }
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import http.client
import json
import logging
import os
import ssl
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import TYPE_CHECKING

from acmestore.backends.base import Blob, ObjectBackend
from acmestore.core.errors import BackendError, NotFoundError

if TYPE_CHECKING:
    from acmestore.config.settings import BackendSettings, KubernetesSettings

log = logging.getLogger(__name__)

_SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")


class KubernetesSecretBackend(ObjectBackend):
    """Stores each :class:`Blob` as a Kubernetes Secret."""

    def __init__(self, settings: KubernetesSettings) -> None:
        self._settings = settings
        self._base_url = self._resolve_base_url()
        self._token = self._read_token()
        self._opener = urllib.request.build_opener(
            urllib.request.HTTPSHandler(context=self._build_ssl_context()),
        )
        log.info("Kubernetes secret backend using API at %s", self._base_url)

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> KubernetesSecretBackend:
        return cls(settings.kubernetes)

    # -- connection setup ---------------------------------------------------

    def _resolve_base_url(self) -> str:
        if not self._settings.in_cluster:
            return self._settings.api_url.rstrip("/")
        host = os.environ.get("KUBERNETES_SERVICE_HOST")
        port = os.environ.get("KUBERNETES_SERVICE_PORT", "443")
        if not host:
            msg = "in_cluster is enabled but KUBERNETES_SERVICE_HOST is not set"
            raise BackendError(msg)
        if ":" in host:
            host = f"[{host}]"
        return f"https://{host}:{port}"

    def _token_path(self) -> Path | None:
        if self._settings.token_path:
            return Path(self._settings.token_path)
        if self._settings.in_cluster:
            return _SERVICE_ACCOUNT_DIR / "token"
        return None

    def _read_token(self) -> str | None:
        path = self._token_path()
        if path is None:
            return None
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            msg = f"Failed to read service-account token {path}: {exc}"
            raise BackendError(msg) from exc

    def _build_ssl_context(self) -> ssl.SSLContext:
        ctx = ssl.create_default_context()
        ca_path = self._settings.ca_cert_path
        if not ca_path and self._settings.in_cluster:
            default_ca = _SERVICE_ACCOUNT_DIR / "ca.crt"
            if default_ca.is_file():
                ca_path = str(default_ca)
        if ca_path:
            try:
                ctx.load_verify_locations(ca_path)
            except (OSError, ssl.SSLError) as exc:
                msg = f"Failed to load CA bundle {ca_path}: {exc}"
                raise BackendError(msg) from exc
        if not self._settings.verify_tls:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx

    # -- HTTP ---------------------------------------------------------------

    def _secrets_url(self, namespace: str, name: str | None = None) -> str:
        url = f"{self._base_url}/api/v1/namespaces/{urllib.parse.quote(namespace, safe='')}/secrets"
        if name is not None:
            url += "/" + urllib.parse.quote(name, safe="")
        return url

    def _request(self, method: str, url: str, payload: dict | None = None) -> dict:
        """Send one request and return the parsed JSON response body."""
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(
            url,
            data=data,
            method=method,
            headers={"Accept": "application/json"},
        )
        if data is not None:
            req.add_header("Content-Type", "application/json")
        if self._token:
            req.add_header("Authorization", f"Bearer {self._token}")

        try:
            with self._opener.open(req, timeout=self._settings.timeout_seconds) as resp:
                body = resp.read()
        except urllib.error.HTTPError as exc:
            if exc.code == 404 and method == "GET":
                msg = f"secret not found: {url}"
                raise NotFoundError(msg) from exc
            detail = ""
            with contextlib.suppress(Exception):
                detail = exc.read().decode("utf-8", errors="replace")[:500]
            msg = f"Kubernetes API {method} {url} returned HTTP {exc.code}: {detail}"
            raise BackendError(
                msg,
                retryable=exc.code >= 500 or exc.code == 429,
            ) from exc
        except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
            msg = f"Failed to reach Kubernetes API at {url}: {exc}"
            raise BackendError(msg, retryable=True) from exc

        try:
            return json.loads(body.decode("utf-8")) if body else {}
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            msg = f"Kubernetes API returned invalid JSON for {method} {url}: {exc}"
            raise BackendError(msg) from exc

    # -- ObjectBackend ------------------------------------------------------

    def exists(self, namespace: str, name: str) -> bool:
        try:
            self._request("GET", self._secrets_url(namespace, name))
        except NotFoundError:
            return False
        return True

    def get(self, namespace: str, name: str) -> Blob:
        secret = self._request("GET", self._secrets_url(namespace, name))
        return _blob_from_secret(secret, namespace, name)

    def create(self, blob: Blob) -> None:
        log.debug("Creating secret %s/%s", blob.namespace, blob.name)
        self._request("POST", self._secrets_url(blob.namespace), _secret_from_blob(blob))

    def update(self, blob: Blob) -> None:
        log.debug("Updating secret %s/%s", blob.namespace, blob.name)
        self._request(
            "PUT",
            self._secrets_url(blob.namespace, blob.name),
            _secret_from_blob(blob),
        )


# ---------------------------------------------------------------------------
# Secret <-> Blob
# ---------------------------------------------------------------------------


def _secret_from_blob(blob: Blob) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": blob.name, "namespace": blob.namespace},
        "type": blob.type,
        "data": {
            key: base64.b64encode(value).decode("ascii") for key, value in blob.data.items()
        },
    }


def _blob_from_secret(secret: dict, namespace: str, name: str) -> Blob:
    try:
        data = {
            key: base64.b64decode(value, validate=True)
            for key, value in (secret.get("data") or {}).items()
        }
    except (binascii.Error, ValueError, TypeError) as exc:
        msg = f"Secret {namespace}/{name} contains invalid base64 data: {exc}"
        raise BackendError(msg) from exc
    return Blob(
        name=name,
        namespace=namespace,
        data=data,
        type=secret.get("type") or "Opaque",
    )
