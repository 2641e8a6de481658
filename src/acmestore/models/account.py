"""ACME account entity."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    email: str
    private_key: bytes
    key_type: str = ""
    registration: dict | None = None
