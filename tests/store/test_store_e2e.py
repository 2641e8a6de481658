"""End-to-end: state written by one store is loaded by the next."""

from __future__ import annotations

from acmestore.backends.memory import InMemoryBackend
from acmestore.core import codec
from acmestore.store import AcmeStore


def test_account_survives_restart(account):
    backend = InMemoryBackend()

    first = AcmeStore(backend, "default")
    assert first.get_account() is None
    first.save_account(account)
    assert first.flush(timeout=5)
    first.close()

    assert backend.calls["create"] == 1
    payload = backend.get("default", "traefik-acme-storage").data["acme"]
    assert codec.decode(payload).account == account

    with AcmeStore(backend, "default") as second:
        assert second.get_account() == account


def test_full_state_survives_restart(account, certificate, tls_certificate):
    backend = InMemoryBackend()

    with AcmeStore(backend, "default") as first:
        first.save_account(account)
        first.save_certificates([certificate])
        first.set_http_challenge_token("tok", "example.com", b"tok.thumb")
        first.set_http_challenge_token("tok", "www.example.com", b"tok.thumb")
        first.add_tls_challenge("example.org", tls_certificate)

    with AcmeStore(backend, "default") as second:
        assert second.get_account() == account
        assert second.get_certificates() == [certificate]
        assert second.get_http_challenge_token("tok", "www.example.com") == b"tok.thumb"
        assert second.get_tls_challenge("example.org") == tls_certificate


def test_second_instance_overwrites_first(account):
    """Two live instances are not coordinated: the last writer wins."""
    backend = InMemoryBackend()
    with AcmeStore(backend, "default") as first, AcmeStore(backend, "default") as second:
        first.save_account(account)
        assert first.flush(timeout=5)
        second.set_http_challenge_token("tok", "example.com", b"ka")
        assert second.flush(timeout=5)

    persisted = codec.decode(backend.get("default", "traefik-acme-storage").data["acme"])
    assert persisted.account is None
    assert persisted.http_challenges == {"tok": {"example.com": b"ka"}}
