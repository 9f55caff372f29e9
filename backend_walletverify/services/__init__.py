"""
Service layer: registration of fingerprint claims and reconciliation against the ledger.
"""

from backend_walletverify.services.reconciler import ReconciliationResult, VerificationReconciler
from backend_walletverify.services.registration import RegistrationResult, RegistrationService

__all__ = [
    "ReconciliationResult",
    "RegistrationResult",
    "RegistrationService",
    "VerificationReconciler",
]
