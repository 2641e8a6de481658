"""Read-only metadata extracted from stored certificate PEM.

Stored certificates are opaque to the store itself; this helper is used
by diagnostics (the ``inspect`` CLI) to show what a record covers and
when it expires.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from acmestore.core.errors import CodecError
from acmestore.models.certificate import Certificate


@dataclass(frozen=True)
class CertificateInfo:
    subject: str
    sans: tuple[str, ...]
    not_before: datetime
    not_after: datetime
    serial_number: str
    fingerprint: str


def parse_certificate(cert: Certificate) -> CertificateInfo:
    """Parse the leaf certificate of *cert* and return its metadata.

    Raises :class:`CodecError` if the PEM bytes cannot be parsed.
    """
    try:
        leaf = x509.load_pem_x509_certificate(cert.certificate)
    except ValueError as exc:
        msg = f"Failed to parse certificate for {cert.domain.main!r}: {exc}"
        raise CodecError(msg) from exc

    try:
        san_ext = leaf.extensions.get_extension_for_class(
            x509.SubjectAlternativeName,
        )
        sans = tuple(san_ext.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        sans = ()

    leaf_der = leaf.public_bytes(serialization.Encoding.DER)
    return CertificateInfo(
        subject=leaf.subject.rfc4514_string(),
        sans=sans,
        not_before=leaf.not_valid_before_utc,
        not_after=leaf.not_valid_after_utc,
        serial_number=format(leaf.serial_number, "x"),
        fingerprint=hashlib.sha256(leaf_der).hexdigest(),
    )
