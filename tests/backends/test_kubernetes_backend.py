"""Tests for acmestore.backends.kubernetes: KubernetesSecretBackend.

The urllib opener is replaced with a recording stub; no network I/O.
"""

from __future__ import annotations

import base64
import http.client
import io
import json
import urllib.error
from unittest.mock import MagicMock

import pytest

from acmestore.backends.base import Blob
from acmestore.backends.kubernetes import KubernetesSecretBackend
from acmestore.config.settings import KubernetesSettings
from acmestore.core.errors import BackendError, NotFoundError

# ---------------------------------------------------------------------------
# Stubs
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, body: dict | None = None, status: int = 200):
        self._body = json.dumps(body).encode() if body is not None else b""
        self.status = status

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _http_error(code: int, body: bytes = b"") -> urllib.error.HTTPError:
    return urllib.error.HTTPError("http://k8s", code, "error", {}, io.BytesIO(body))


def _settings(**overrides) -> KubernetesSettings:
    values = {
        "api_url": "http://localhost:8001/",
        "in_cluster": False,
        "token_path": None,
        "ca_cert_path": None,
        "verify_tls": True,
        "timeout_seconds": 7,
    }
    values.update(overrides)
    return KubernetesSettings(**values)


@pytest.fixture()
def kube():
    backend = KubernetesSecretBackend(_settings())
    backend._opener = MagicMock()
    return backend


def _sent(kube, index: int = -1):
    """Return the urllib Request passed to the opener."""
    return kube._opener.open.call_args_list[index].args[0]


SECRET = {
    "apiVersion": "v1",
    "kind": "Secret",
    "metadata": {"name": "acme-state", "namespace": "default"},
    "type": "Opaque",
    "data": {"acme": base64.b64encode(b'{"Account": null}').decode()},
}


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestGet:
    def test_get_decodes_secret(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        blob = kube.get("default", "acme-state")
        assert blob == Blob(
            name="acme-state",
            namespace="default",
            data={"acme": b'{"Account": null}'},
            type="Opaque",
        )
        req = _sent(kube)
        assert req.get_method() == "GET"
        assert req.full_url == "http://localhost:8001/api/v1/namespaces/default/secrets/acme-state"

    def test_timeout_passed(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        kube.get("default", "acme-state")
        assert kube._opener.open.call_args.kwargs["timeout"] == 7

    def test_404_is_not_found(self, kube):
        kube._opener.open.side_effect = _http_error(404)
        with pytest.raises(NotFoundError):
            kube.get("default", "acme-state")

    def test_403_is_backend_error(self, kube):
        kube._opener.open.side_effect = _http_error(403, b"forbidden")
        with pytest.raises(BackendError, match="HTTP 403: forbidden") as exc_info:
            kube.get("default", "acme-state")
        assert exc_info.value.retryable is False

    def test_5xx_is_retryable(self, kube):
        kube._opener.open.side_effect = _http_error(503)
        with pytest.raises(BackendError) as exc_info:
            kube.get("default", "acme-state")
        assert exc_info.value.retryable is True

    def test_connection_error_is_retryable(self, kube):
        kube._opener.open.side_effect = urllib.error.URLError("refused")
        with pytest.raises(BackendError, match="Failed to reach") as exc_info:
            kube.get("default", "acme-state")
        assert exc_info.value.retryable is True

    def test_truncated_body_is_retryable(self, kube):
        response = MagicMock()
        response.__enter__.return_value = response
        response.__exit__.return_value = False
        response.read.side_effect = http.client.IncompleteRead(b"{\"kind\"")
        kube._opener.open.return_value = response
        with pytest.raises(BackendError, match="Failed to reach") as exc_info:
            kube.get("default", "acme-state")
        assert exc_info.value.retryable is True

    def test_invalid_json(self, kube):
        response = FakeResponse()
        response._body = b"<html>"
        kube._opener.open.return_value = response
        with pytest.raises(BackendError, match="invalid JSON"):
            kube.get("default", "acme-state")

    def test_invalid_base64_data(self, kube):
        kube._opener.open.return_value = FakeResponse({**SECRET, "data": {"acme": "***"}})
        with pytest.raises(BackendError, match="invalid base64"):
            kube.get("default", "acme-state")

    def test_secret_without_data(self, kube):
        kube._opener.open.return_value = FakeResponse({"metadata": {}})
        assert kube.get("default", "acme-state").data == {}


class TestExists:
    def test_true(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        assert kube.exists("default", "acme-state") is True

    def test_false_on_404(self, kube):
        kube._opener.open.side_effect = _http_error(404)
        assert kube.exists("default", "acme-state") is False

    def test_other_errors_propagate(self, kube):
        kube._opener.open.side_effect = _http_error(500)
        with pytest.raises(BackendError):
            kube.exists("default", "acme-state")


class TestWrite:
    def test_create_posts_to_collection(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        kube.create(Blob(name="acme-state", namespace="default", data={"acme": b"payload"}))
        req = _sent(kube)
        assert req.get_method() == "POST"
        assert req.full_url.endswith("/api/v1/namespaces/default/secrets")
        body = json.loads(req.data)
        assert body["kind"] == "Secret"
        assert body["type"] == "Opaque"
        assert body["metadata"] == {"name": "acme-state", "namespace": "default"}
        assert base64.b64decode(body["data"]["acme"]) == b"payload"
        assert req.get_header("Content-type") == "application/json"

    def test_update_puts_to_object(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        kube.update(Blob(name="acme-state", namespace="default", data={"acme": b"v2"}))
        req = _sent(kube)
        assert req.get_method() == "PUT"
        assert req.full_url.endswith("/secrets/acme-state")

    def test_update_404_is_backend_error(self, kube):
        kube._opener.open.side_effect = _http_error(404)
        with pytest.raises(BackendError):
            kube.update(Blob(name="acme-state", namespace="default"))

    def test_create_conflict(self, kube):
        kube._opener.open.side_effect = _http_error(409, b"AlreadyExists")
        with pytest.raises(BackendError, match="409"):
            kube.create(Blob(name="acme-state", namespace="default"))


class TestConnectionSetup:
    def test_token_sent_as_bearer(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("s3cret\n", encoding="utf-8")
        kube = KubernetesSecretBackend(_settings(token_path=str(token_file)))
        kube._opener = MagicMock()
        kube._opener.open.return_value = FakeResponse(SECRET)
        kube.get("default", "acme-state")
        assert _sent(kube).get_header("Authorization") == "Bearer s3cret"

    def test_no_token_no_header(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        kube.get("default", "acme-state")
        assert _sent(kube).get_header("Authorization") is None

    def test_unreadable_token(self, tmp_path):
        with pytest.raises(BackendError, match="token"):
            KubernetesSecretBackend(_settings(token_path=str(tmp_path / "missing")))

    def test_in_cluster_requires_service_host(self, monkeypatch):
        monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
        with pytest.raises(BackendError, match="KUBERNETES_SERVICE_HOST"):
            KubernetesSecretBackend(_settings(in_cluster=True))

    def test_in_cluster_url(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")
        monkeypatch.setenv("KUBERNETES_SERVICE_PORT", "6443")
        token_file = tmp_path / "token"
        token_file.write_text("t", encoding="utf-8")
        kube = KubernetesSecretBackend(
            _settings(in_cluster=True, token_path=str(token_file), verify_tls=False),
        )
        assert kube._base_url == "https://10.0.0.1:6443"

    def test_in_cluster_ipv6_host(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "fd00::1")
        monkeypatch.delenv("KUBERNETES_SERVICE_PORT", raising=False)
        token_file = tmp_path / "token"
        token_file.write_text("t", encoding="utf-8")
        kube = KubernetesSecretBackend(
            _settings(in_cluster=True, token_path=str(token_file), verify_tls=False),
        )
        assert kube._base_url == "https://[fd00::1]:443"

    def test_names_are_quoted(self, kube):
        kube._opener.open.return_value = FakeResponse(SECRET)
        kube.get("default", "a/b")
        assert _sent(kube).full_url.endswith("/secrets/a%2Fb")

    def test_missing_ca_bundle(self, tmp_path):
        with pytest.raises(BackendError, match="Failed to load CA bundle"):
            KubernetesSecretBackend(
                _settings(api_url="https://k8s.invalid", ca_cert_path=str(tmp_path / "ca.crt")),
            )

    def test_invalid_ca_bundle(self, tmp_path):
        ca_file = tmp_path / "ca.crt"
        ca_file.write_text("not a certificate\n", encoding="utf-8")
        with pytest.raises(BackendError, match="Failed to load CA bundle"):
            KubernetesSecretBackend(_settings(ca_cert_path=str(ca_file)))
