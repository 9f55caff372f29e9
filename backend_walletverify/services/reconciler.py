"""
Verification reconciler: compare a wallet's stored fingerprint with the one anchored
on-chain and mark the wallet verified on an exact match.

Outcomes:
- matched=True: record is now verified (verified_at >= created_at)
- matched=False: fingerprints differ; nothing is written
- RecordNotFound: no registration for the address (the ledger is not contacted)
- NotAnchored: the ledger has no fingerprint for the address
- OracleUnavailable / StoreUnavailable: infrastructure failure, nothing is written
- FingerprintSuperseded: a registration replaced the fingerprint mid-reconciliation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_walletverify.core.exceptions import NotAnchored, RecordNotFound
from backend_walletverify.database import Clock, WalletRecord, WalletStore, unix_now
from backend_walletverify.oracle import LedgerOracle
from backend_walletverify.utils.wallet_utils import normalize_address
from backend_walletverify.verify_logging import get_logger, short_address

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    matched: bool
    record: WalletRecord
    local_fingerprint: str
    remote_fingerprint: str

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"matched": self.matched, "data": self.record.to_dict()}
        if not self.matched:
            out["details"] = {
                "databaseHash": self.local_fingerprint,
                "contractHash": self.remote_fingerprint,
            }
        return out


class VerificationReconciler:
    def __init__(
        self,
        store: WalletStore,
        oracle: LedgerOracle,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._clock = clock or unix_now

    def reconcile(self, address: str) -> ReconciliationResult:
        address = normalize_address(address)

        record = self._store.get(address)
        if record is None:
            logger.info("reconcile_record_not_found", wallet=short_address(address))
            raise RecordNotFound("Wallet not found in database", address=address)

        remote = self._oracle.read_fingerprint(address)
        if remote is None:
            logger.info("reconcile_not_anchored", wallet=short_address(address))
            raise NotAnchored("Wallet not found in smart contract", address=address)

        # exact, case-sensitive: fingerprints are content identifiers
        if record.fingerprint != remote:
            logger.info("reconcile_mismatch", wallet=short_address(address))
            return ReconciliationResult(
                matched=False,
                record=record,
                local_fingerprint=record.fingerprint,
                remote_fingerprint=remote,
            )

        verified_at = max(self._clock(), record.created_at)
        updated = self._store.set_verified(address, verified_at, expected_fingerprint=record.fingerprint)
        logger.info("reconcile_matched", wallet=short_address(address), verified_at=verified_at)
        return ReconciliationResult(
            matched=True,
            record=updated,
            local_fingerprint=record.fingerprint,
            remote_fingerprint=remote,
        )
