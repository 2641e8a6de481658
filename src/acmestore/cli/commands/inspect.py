"""Inspect subcommands: read-only views of the persisted state.

Usage::

    acmestore -c config.yaml inspect [--show-keys]
    acmestore -c config.yaml challenges

Both commands read the backing object once and never write to it.
"""

from __future__ import annotations

import json
import sys

from acmestore.backends import build_backend
from acmestore.core import codec
from acmestore.core.errors import CodecError
from acmestore.logging.sanitize import sanitize_for_logs
from acmestore.models.cert_info import parse_certificate
from acmestore.store import load_stored_data


def _load(config):
    settings = config.settings
    backend = build_backend(settings.backend)
    try:
        return load_stored_data(
            backend,
            settings.store.namespace,
            settings.store.secret_name,
            settings.store.data_key,
        )
    finally:
        backend.close()


def _certificate_summary(cert) -> dict:
    summary: dict = {"domains": cert.domain.to_str_array()}
    try:
        info = parse_certificate(cert)
    except CodecError as exc:
        summary["error"] = exc.detail
        return summary
    summary.update(
        {
            "subject": info.subject,
            "serial_number": info.serial_number,
            "fingerprint": info.fingerprint,
            "not_before": info.not_before.isoformat(),
            "not_after": info.not_after.isoformat(),
        }
    )
    return summary


def run_inspect(config, args) -> None:
    """Print the stored account and certificate metadata as JSON."""
    data = _load(config)
    if data is None:
        store = config.settings.store
        sys.stderr.write(f"no stored state at {store.namespace}/{store.secret_name}\n")
        sys.exit(1)

    account = codec.to_dict(data)["Account"]
    if not args.show_keys:
        account = sanitize_for_logs(account)

    result = {
        "account": account,
        "certificates": [_certificate_summary(c) for c in data.certificates],
    }
    print(json.dumps(result, indent=2, default=str))


def run_challenges(config, args) -> None:  # noqa: ARG001
    """Print pending HTTP-01 tokens and TLS-ALPN-01 domains."""
    data = _load(config)
    if data is None:
        data_http: dict = {}
        data_tls: list = []
    else:
        data_http = {
            token: sorted(domains) for token, domains in sorted(data.http_challenges.items())
        }
        data_tls = sorted(data.tls_challenges)

    print(json.dumps({"http-01": data_http, "tls-alpn-01": data_tls}, indent=2))
