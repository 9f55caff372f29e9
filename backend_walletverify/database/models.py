"""
Domain models for database entities.

Used by the store facade and services; no ORM coupling so backends stay swappable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WalletRecord:
    """One wallet's claimed fingerprint and trust state."""

    address: str
    """Canonical lower-case 0x address; primary key."""
    fingerprint: str
    """Content-addressed identifier claimed for the wallet (compared case-sensitively)."""
    verified: bool
    created_at: int
    """Unix timestamp (seconds) of first registration; never changes."""
    verified_at: int | None = None
    """Unix timestamp of the last successful reconciliation; None while unverified."""
    updated_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire format (field names kept from the original registration API)."""
        return {
            "walletAddress": self.address,
            "hash": self.fingerprint,
            "auth": self.verified,
            "createdAt": self.created_at,
            "verifiedAt": self.verified_at,
            "updatedAt": self.updated_at,
        }
