"""Sensitive data sanitization for log and CLI output.

Provides :func:`sanitize_for_logs` which redacts private key material
(stored account/certificate keys, JWK key values, PEM bodies) from data
structures before they are written to logs or printed.  Only metadata
(key type, curve, domains) is preserved.
"""

from __future__ import annotations

import re
from typing import Any

# JWK fields that contain raw key material
_JWK_SECRET_FIELDS = frozenset({"n", "e", "x", "y", "d", "p", "q", "dp", "dq", "qi", "k"})

# Persisted payload fields holding private keys
_PAYLOAD_SECRET_FIELDS = frozenset({"PrivateKey", "Key"})

_REDACTED = "[REDACTED]"

# Regex matching the base64 body inside PEM blocks
_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)


def sanitize_jwk(jwk: dict) -> dict:
    """Return a copy of *jwk* with key material replaced by ``[REDACTED]``."""
    return {key: _REDACTED if key in _JWK_SECRET_FIELDS else value for key, value in jwk.items()}


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks with ``[REDACTED]``.

    Preserves BEGIN/END markers so the type of object is still visible.
    """

    def _redact(m) -> str:
        return f"{m.group(1)}\n{_REDACTED}\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize sensitive material in *data*.

    Handles dicts (payload records, JWK-like structures), lists, and
    plain strings.  Non-sensitive data passes through unchanged.
    """
    if isinstance(data, dict):
        # Detect JWK-like dicts by presence of "kty"
        if "kty" in data:
            return sanitize_jwk(data)
        return {
            k: _REDACTED if k in _PAYLOAD_SECRET_FIELDS and v else sanitize_for_logs(v)
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        if "-----BEGIN " in data:
            return sanitize_pem(data)
        return data

    return data
