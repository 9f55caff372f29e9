"""
Core cross-cutting pieces: the error taxonomy shared by store, oracle, services and API.
"""

from backend_walletverify.core.exceptions import (
    FingerprintSuperseded,
    InvalidAddress,
    InvalidClaim,
    NotAnchored,
    OracleUnavailable,
    RecordNotFound,
    StoreUnavailable,
    Unauthorized,
    VerificationError,
)

__all__ = [
    "FingerprintSuperseded",
    "InvalidAddress",
    "InvalidClaim",
    "NotAnchored",
    "OracleUnavailable",
    "RecordNotFound",
    "StoreUnavailable",
    "Unauthorized",
    "VerificationError",
]
