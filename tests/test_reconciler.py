"""
Pytest tests for the verification reconciler: match, mismatch, absence, failures and
the register-during-reconcile race.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from backend_walletverify.core.exceptions import (
    FingerprintSuperseded,
    InvalidAddress,
    NotAnchored,
    OracleUnavailable,
    RecordNotFound,
)
from backend_walletverify.oracle import LedgerOracle

WALLET_A = "0x52908400098527886E0F7030069857D2E4169EE7"
WALLET_B = "0x8617E340B3D01FA5F11F306F4090FD50E238070D"
WALLET_C = "0xde709f2102306220921060314715629080e2fb77"
HASH_1 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
HASH_2 = "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o"


class DownOracle(LedgerOracle):
    def read_fingerprint(self, address: str) -> str | None:
        raise OracleUnavailable("connection refused")


class RegisteringOracle(LedgerOracle):
    """Replaces the wallet's claim while the ledger read is in flight, then answers with the old one."""

    def __init__(self, registration, new_fingerprint: str, anchored: str) -> None:
        self._registration = registration
        self._new_fingerprint = new_fingerprint
        self._anchored = anchored

    def read_fingerprint(self, address: str) -> str | None:
        self._registration.register(address, self._new_fingerprint)
        return self._anchored


def test_reconcile_match_marks_verified(registration, reconciler, oracle, store, clock):
    created = registration.register(WALLET_A, HASH_1).record
    oracle.anchor(WALLET_A, HASH_1)
    clock.advance(120)

    result = reconciler.reconcile(WALLET_A)

    assert result.matched is True
    assert result.record.verified is True
    assert result.record.verified_at == clock.now
    assert result.record.verified_at >= created.created_at
    stored = store.get(WALLET_A)
    assert stored.verified is True
    assert stored.fingerprint == HASH_1


def test_reconcile_mismatch_leaves_record_untouched(registration, reconciler, oracle, store):
    before = registration.register(WALLET_A, HASH_1).record
    oracle.anchor(WALLET_A, HASH_2)

    result = reconciler.reconcile(WALLET_A)

    assert result.matched is False
    assert result.local_fingerprint == HASH_1
    assert result.remote_fingerprint == HASH_2
    assert result.to_dict()["details"] == {"databaseHash": HASH_1, "contractHash": HASH_2}
    assert store.get(WALLET_A) == before


def test_fingerprint_comparison_is_case_sensitive(registration, reconciler, oracle, store):
    registration.register(WALLET_A, HASH_1)
    oracle.anchor(WALLET_A, HASH_1.lower())

    result = reconciler.reconcile(WALLET_A)

    assert result.matched is False
    assert store.get(WALLET_A).verified is False


def test_reconcile_not_anchored(registration, reconciler, store):
    before = registration.register(WALLET_B, HASH_1).record
    with pytest.raises(NotAnchored):
        reconciler.reconcile(WALLET_B)
    assert store.get(WALLET_B) == before


def test_reconcile_unknown_wallet_skips_oracle(reconciler, oracle):
    oracle.anchor(WALLET_C, HASH_1)
    with pytest.raises(RecordNotFound):
        reconciler.reconcile(WALLET_C)
    assert oracle.calls == []


def test_reconcile_malformed_address_touches_nothing(oracle):
    from backend_walletverify.database import WalletStore
    from backend_walletverify.services import VerificationReconciler

    store = MagicMock(spec=WalletStore)
    reconciler = VerificationReconciler(store, oracle)
    with pytest.raises(InvalidAddress):
        reconciler.reconcile("0xNOTHEX")
    store.get.assert_not_called()
    assert oracle.calls == []


def test_oracle_unavailable_propagates_without_mutation(registration, store, clock):
    from backend_walletverify.services import VerificationReconciler

    before = registration.register(WALLET_A, HASH_1).record
    reconciler = VerificationReconciler(store, DownOracle(), clock=clock)
    with pytest.raises(OracleUnavailable):
        reconciler.reconcile(WALLET_A)
    assert store.get(WALLET_A) == before


def test_concurrent_registration_wins_over_reconciliation(registration, store, clock):
    from backend_walletverify.services import VerificationReconciler

    registration.register(WALLET_A, HASH_1)
    oracle = RegisteringOracle(registration, new_fingerprint=HASH_2, anchored=HASH_1)
    reconciler = VerificationReconciler(store, oracle, clock=clock)

    with pytest.raises(FingerprintSuperseded):
        reconciler.reconcile(WALLET_A)

    record = store.get(WALLET_A)
    assert record.fingerprint == HASH_2
    assert record.verified is False
    assert record.verified_at is None


def test_registration_after_verification_returns_to_unverified(registration, reconciler, oracle, store):
    registration.register(WALLET_A, HASH_1)
    oracle.anchor(WALLET_A, HASH_1)
    assert reconciler.reconcile(WALLET_A).matched is True

    registration.register(WALLET_A, HASH_2)
    record = store.get(WALLET_A)
    assert record.verified is False
    assert record.verified_at is None

    oracle.anchor(WALLET_A, HASH_2)
    assert reconciler.reconcile(WALLET_A).matched is True


def test_verified_at_never_precedes_created_at(registration, store, oracle, clock):
    from backend_walletverify.services import VerificationReconciler

    created = registration.register(WALLET_A, HASH_1).record
    oracle.anchor(WALLET_A, HASH_1)
    # reconciler clock lagging behind the store clock
    reconciler = VerificationReconciler(store, oracle, clock=lambda: created.created_at - 30)

    result = reconciler.reconcile(WALLET_A)

    assert result.record.verified_at == created.created_at
