"""
Database abstraction layer: wallet records (claimed fingerprint + trust state).

SQLAlchemy-backed WalletStore via get_wallet_store(); SQLite by default, PostgreSQL via URL.
"""

from backend_walletverify.database.database import (
    Clock,
    SQLAlchemyBackend,
    WalletStore,
    WalletStoreBackend,
    get_wallet_store,
    unix_now,
)
from backend_walletverify.database.models import WalletRecord

__all__ = [
    "Clock",
    "SQLAlchemyBackend",
    "WalletRecord",
    "WalletStore",
    "WalletStoreBackend",
    "get_wallet_store",
    "unix_now",
]
