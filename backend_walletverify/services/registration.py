"""
Registration service: accept a wallet's (address, fingerprint) claim and upsert it.

Every claim, including one that repeats the stored fingerprint, leaves the wallet
unverified until the next successful reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_walletverify.core.exceptions import InvalidClaim
from backend_walletverify.database import WalletRecord, WalletStore
from backend_walletverify.utils.wallet_utils import normalize_address
from backend_walletverify.verify_logging import get_logger, short_address

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    record: WalletRecord
    created: bool
    """True on first registration for the address, False when an existing claim was replaced."""


class RegistrationService:
    def __init__(self, store: WalletStore) -> None:
        self._store = store

    def register(self, address: str, fingerprint: str) -> RegistrationResult:
        """
        Validate and store the claim. Raises InvalidAddress, InvalidClaim or
        StoreUnavailable; nothing is written unless the whole upsert succeeds.
        """
        address = normalize_address(address)
        fingerprint = (fingerprint or "").strip()
        if not fingerprint:
            raise InvalidClaim("Wallet address and IPFS hash are required", address=address)
        record, created = self._store.upsert(address, fingerprint)
        logger.info("wallet_registered", wallet=short_address(address), created=created)
        return RegistrationResult(record=record, created=created)
