"""Certificate and Domain entities."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Domain:
    """Main domain plus subject alternative names covered by a certificate."""

    main: str
    sans: tuple[str, ...] = ()

    def to_str_array(self) -> list[str]:
        """Return the main domain followed by every SAN."""
        domains = [self.main] if self.main else []
        return domains + list(self.sans)


@dataclass(frozen=True)
class Certificate:
    domain: Domain
    certificate: bytes
    key: bytes
