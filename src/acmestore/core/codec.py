"""JSON codec for the persisted :class:`StoredData` payload.

The payload is indented JSON so an operator can inspect the backing
object directly.  Field names and the base64 encoding of byte values
match the format written by earlier releases, so existing objects keep
loading::

    {
      "Account": {"Email": "...", "Registration": {...},
                  "PrivateKey": "<base64>", "KeyType": "4096"},
      "Certificates": [
        {"Domain": {"Main": "example.com", "SANs": ["www.example.com"]},
         "Certificate": "<base64>", "Key": "<base64>"}
      ],
      "HTTPChallenges": {"<token>": {"example.com": "<base64>"}},
      "TLSChallenges": {"example.com": {"Domain": ..., ...}}
    }

Map keys are sorted on output, making the encoding deterministic.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from acmestore.core.errors import CodecError
from acmestore.models import Account, Certificate, Domain, StoredData

# ---------------------------------------------------------------------------
# Byte values
# ---------------------------------------------------------------------------


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _b64decode(value: Any, path: str) -> bytes:  # noqa: ANN401
    if value is None:
        return b""
    if not isinstance(value, str):
        msg = f"{path}: expected base64 string, got {type(value).__name__}"
        raise CodecError(msg)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = f"{path}: invalid base64 ({exc})"
        raise CodecError(msg) from exc


def _expect(value: Any, kind: type, path: str) -> Any:  # noqa: ANN401
    if not isinstance(value, kind):
        msg = f"{path}: expected {kind.__name__}, got {type(value).__name__}"
        raise CodecError(msg)
    return value


# ---------------------------------------------------------------------------
# Entities -> plain dicts
# ---------------------------------------------------------------------------


def _account_to_dict(account: Account | None) -> dict | None:
    if account is None:
        return None
    return {
        "Email": account.email,
        "Registration": account.registration,
        "PrivateKey": _b64encode(account.private_key),
        "KeyType": account.key_type,
    }


def _certificate_to_dict(cert: Certificate) -> dict:
    return {
        "Domain": {
            "Main": cert.domain.main,
            "SANs": list(cert.domain.sans) if cert.domain.sans else None,
        },
        "Certificate": _b64encode(cert.certificate),
        "Key": _b64encode(cert.key),
    }


def to_dict(data: StoredData) -> dict:
    """Convert *data* to the JSON-ready dict written to the backend."""
    return {
        "Account": _account_to_dict(data.account),
        "Certificates": [_certificate_to_dict(c) for c in data.certificates],
        "HTTPChallenges": {
            token: {domain: _b64encode(key_auth) for domain, key_auth in domains.items()}
            for token, domains in data.http_challenges.items()
        },
        "TLSChallenges": {
            domain: _certificate_to_dict(cert) for domain, cert in data.tls_challenges.items()
        },
    }


# ---------------------------------------------------------------------------
# Plain dicts -> entities
# ---------------------------------------------------------------------------


def _account_from_dict(raw: Any) -> Account | None:  # noqa: ANN401
    if raw is None:
        return None
    _expect(raw, dict, "Account")
    registration = raw.get("Registration")
    if registration is not None:
        _expect(registration, dict, "Account.Registration")
    return Account(
        email=_expect(raw.get("Email") or "", str, "Account.Email"),
        registration=registration,
        private_key=_b64decode(raw.get("PrivateKey"), "Account.PrivateKey"),
        key_type=_expect(raw.get("KeyType") or "", str, "Account.KeyType"),
    )


def _certificate_from_dict(raw: Any, path: str) -> Certificate:  # noqa: ANN401
    _expect(raw, dict, path)
    domain = _expect(raw.get("Domain") or {}, dict, f"{path}.Domain")
    sans = _expect(domain.get("SANs") or [], list, f"{path}.Domain.SANs")
    return Certificate(
        domain=Domain(
            main=_expect(domain.get("Main") or "", str, f"{path}.Domain.Main"),
            sans=tuple(_expect(s, str, f"{path}.Domain.SANs") for s in sans),
        ),
        certificate=_b64decode(raw.get("Certificate"), f"{path}.Certificate"),
        key=_b64decode(raw.get("Key"), f"{path}.Key"),
    )


def from_dict(raw: Any) -> StoredData:  # noqa: ANN401
    """Build a :class:`StoredData` from a decoded JSON document."""
    _expect(raw, dict, "payload")

    certificates = [
        _certificate_from_dict(c, f"Certificates[{i}]")
        for i, c in enumerate(_expect(raw.get("Certificates") or [], list, "Certificates"))
    ]

    http_challenges: dict[str, dict[str, bytes]] = {}
    for token, domains in _expect(raw.get("HTTPChallenges") or {}, dict, "HTTPChallenges").items():
        path = f"HTTPChallenges[{token}]"
        http_challenges[token] = {
            domain: _b64decode(key_auth, f"{path}[{domain}]")
            for domain, key_auth in _expect(domains or {}, dict, path).items()
        }

    tls_challenges = {
        domain: _certificate_from_dict(cert, f"TLSChallenges[{domain}]")
        for domain, cert in _expect(raw.get("TLSChallenges") or {}, dict, "TLSChallenges").items()
    }

    return StoredData(
        account=_account_from_dict(raw.get("Account")),
        certificates=certificates,
        http_challenges=http_challenges,
        tls_challenges=tls_challenges,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def encode(data: StoredData) -> bytes:
    """Serialise *data* to indented, key-sorted JSON bytes."""
    try:
        return json.dumps(to_dict(data), indent=2, sort_keys=True).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as exc:
        msg = f"Failed to encode stored data: {exc}"
        raise CodecError(msg) from exc


def decode(payload: bytes) -> StoredData:
    """Parse *payload* produced by :func:`encode`.

    Raises :class:`CodecError` on malformed JSON or an unexpected shape.
    """
    try:
        raw = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        msg = f"Stored payload is not valid JSON: {exc}"
        raise CodecError(msg) from exc
    return from_dict(raw)
