"""Wallet address validation utilities."""

from __future__ import annotations

import re

from backend_walletverify.core.exceptions import InvalidAddress

# 20-byte EVM address, 0x-prefixed, either case on input
ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_wallet(w: str | None) -> bool:
    """Return True if w is a 0x-prefixed 40-hex-digit address."""
    return bool(w) and ADDRESS_PATTERN.match(w.strip()) is not None


def normalize_address(address: str | None) -> str:
    """
    Return the canonical (lower-case, trimmed) form of an address.
    Raises InvalidAddress if it does not match the address pattern.
    """
    candidate = (address or "").strip()
    if not candidate:
        raise InvalidAddress("Wallet address is required", address=address)
    if not ADDRESS_PATTERN.match(candidate):
        raise InvalidAddress(f"{candidate} is not a valid wallet address", address=candidate)
    return candidate.lower()
