#!/usr/bin/env python3
"""
Reconcile stored wallet fingerprints against the verification contract.

Operator tool: runs the same reconciliation as POST /api/admin/verify, directly
against DATABASE_URL and the configured ledger (no admin token involved).

For each wallet prints one of: VERIFIED, MISMATCH, NOT_ANCHORED, NOT_FOUND, ERROR.
Exit code 1 if any wallet ended in ERROR.

Usage:
  python -m backend_walletverify.tools.reconcile_wallets --address 0xabc... [--address ...]
  python -m backend_walletverify.tools.reconcile_wallets --all-unverified
"""

from __future__ import annotations

import argparse
import sys
from collections import Counter

from backend_walletverify.config import Settings, load_settings
from backend_walletverify.core.exceptions import NotAnchored, RecordNotFound, VerificationError
from backend_walletverify.database import WalletStore, get_wallet_store
from backend_walletverify.oracle import LedgerOracle, RetryPolicy, build_ledger_oracle
from backend_walletverify.services import VerificationReconciler
from backend_walletverify.verify_logging import get_logger

logger = get_logger(__name__)

SEP = "=" * 60


def _log(msg: str) -> None:
    print(msg, flush=True)


def select_addresses(store: WalletStore, addresses: list[str], all_unverified: bool) -> list[str]:
    """Explicit addresses first, then (optionally) every unverified record, without duplicates."""
    selected = [a.strip().lower() for a in addresses if a.strip()]
    if all_unverified:
        selected.extend(r.address for r in store.list_all() if not r.verified)
    return list(dict.fromkeys(selected))


def reconcile_one(reconciler: VerificationReconciler, address: str) -> tuple[str, str]:
    """Return (status, detail) for one wallet; never raises VerificationError."""
    try:
        result = reconciler.reconcile(address)
    except RecordNotFound:
        return "NOT_FOUND", "not registered"
    except NotAnchored:
        return "NOT_ANCHORED", "no fingerprint on-chain"
    except VerificationError as e:
        return "ERROR", f"{e.kind}: {e.message}"
    if result.matched:
        return "VERIFIED", f"verified_at={result.record.verified_at}"
    return "MISMATCH", f"db={result.local_fingerprint} contract={result.remote_fingerprint}"


def run(
    settings: Settings,
    addresses: list[str],
    all_unverified: bool,
    *,
    store: WalletStore | None = None,
    oracle: LedgerOracle | None = None,
) -> int:
    store = store or get_wallet_store(settings.database_url)
    owns_oracle = oracle is None
    if oracle is None:
        oracle = build_ledger_oracle(
            settings.ledger_rpc_url,
            settings.contract_address,
            timeout_sec=settings.ledger_timeout_sec,
            retry=RetryPolicy(settings.ledger_retry_attempts, settings.ledger_retry_backoff_sec),
        )
    reconciler = VerificationReconciler(store, oracle)

    counts: Counter[str] = Counter()
    try:
        targets = select_addresses(store, addresses, all_unverified)
        _log(SEP)
        _log(f"Reconcile {len(targets)} wallet(s)")
        _log(SEP)

        for address in targets:
            status, detail = reconcile_one(reconciler, address)
            counts[status] += 1
            _log(f"{status:<13} {address} {detail}")
    finally:
        if owns_oracle:
            oracle.close()

    _log(SEP)
    _log(" ".join(f"{k}={v}" for k, v in sorted(counts.items())) or "nothing to do")
    logger.info("reconcile_batch_done", total=len(targets), **{k.lower(): v for k, v in counts.items()})
    return 1 if counts["ERROR"] else 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Reconcile wallet fingerprints against the verification contract")
    ap.add_argument("--address", action="append", default=[], help="Wallet address (repeatable)")
    ap.add_argument("--all-unverified", action="store_true", help="Also reconcile every unverified wallet in the store")
    args = ap.parse_args(argv)
    if not args.address and not args.all_unverified:
        ap.error("give at least one --address or --all-unverified")
    return run(load_settings(), args.address, args.all_unverified)


if __name__ == "__main__":
    sys.exit(main())
