"""Error taxonomy for the ACME state store.

Every failure raised by the store, the codec, or a backend derives
from :class:`StoreError` so callers can catch the whole family at once.

- :class:`NotFoundError` -- a lookup miss (HTTP challenge token/domain,
  or the remote object not existing yet).
- :class:`CodecError` -- the persisted payload could not be encoded or
  decoded.
- :class:`BackendError` -- the remote backend failed an
  exists/get/create/update call.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for all store failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(StoreError):
    """The requested entry or remote object does not exist."""


class CodecError(StoreError):
    """The persisted payload is not a valid encoding of the state."""


class BackendError(StoreError):
    """A call against the remote object backend failed.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure is transient (connection error, 5xx).

    """

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(detail)
