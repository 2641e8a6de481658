"""Entity models for the ACME state store.

Account, certificate, and domain records are frozen dataclasses.  Use
:func:`dataclasses.replace` for modifications (copy-on-write).
:class:`StoredData` is the single mutable root record of a store.
"""

from acmestore.models.account import Account
from acmestore.models.certificate import Certificate, Domain
from acmestore.models.stored_data import StoredData

__all__ = [
    "Account",
    "Certificate",
    "Domain",
    "StoredData",
]
