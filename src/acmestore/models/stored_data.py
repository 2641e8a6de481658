"""Root persisted record of a store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from acmestore.models.account import Account
    from acmestore.models.certificate import Certificate


@dataclass
class StoredData:
    """Everything a store keeps, serialized as one unit.

    Mutated in place for the lifetime of the owning store.  Callers
    must hold the store lock while reading or writing any field.

    Attributes
    ----------
    account:
        The registered ACME account, or ``None`` before registration.
    certificates:
        Issued certificates, in issuance order.
    http_challenges:
        HTTP-01 key authorizations, ``token -> domain -> key_auth``.
    tls_challenges:
        TLS-ALPN-01 challenge certificates, ``domain -> certificate``.

    """

    account: Account | None = None
    certificates: list[Certificate] = field(default_factory=list)
    http_challenges: dict[str, dict[str, bytes]] = field(default_factory=dict)
    tls_challenges: dict[str, Certificate] = field(default_factory=dict)
