"""
Ledger oracle package: read-only access to fingerprints anchored in the verification contract.
"""

from backend_walletverify.oracle.ledger_oracle import (
    ContractLedgerOracle,
    LedgerOracle,
    RetryingLedgerOracle,
    RetryPolicy,
    StaticLedgerOracle,
    build_ledger_oracle,
)

__all__ = [
    "ContractLedgerOracle",
    "LedgerOracle",
    "RetryingLedgerOracle",
    "RetryPolicy",
    "StaticLedgerOracle",
    "build_ledger_oracle",
]
