"""Admin authorization for reconciliation and listing."""

from backend_walletverify.auth.admin_gate import AdminGate, TokenAdminGate

__all__ = ["AdminGate", "TokenAdminGate"]
