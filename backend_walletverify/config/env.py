"""
Environment variable loading for WalletVerify.

- DATABASE_URL: SQLAlchemy URL (default: SQLite file in the working directory)
- LEDGER_RPC_URL: EVM JSON-RPC endpoint (POLYGON_AMOY_RPC_URL accepted as fallback)
- CONTRACT_ADDRESS: deployed verification contract
- ADMIN_USERNAME / ADMIN_PASSWORD / ADMIN_TOKEN_SECRET: admin gate
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_walletverify/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_DATABASE_URL = "sqlite:///wallet_verify.db"

# Left in .env templates before the contract is deployed
CONTRACT_ADDRESS_PLACEHOLDER = "0x..."


def load_verify_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set variables."""
    load_dotenv(_ENV_PATH)


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    return float(raw) if raw else default


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    return int(raw) if raw else default


def get_database_url() -> str:
    return env_str("DATABASE_URL") or DEFAULT_DATABASE_URL


def get_ledger_rpc_url() -> str:
    """
    Resolve the ledger RPC URL.
    Order: LEDGER_RPC_URL > POLYGON_AMOY_RPC_URL > empty (oracle reports unavailable).
    """
    return env_str("LEDGER_RPC_URL") or env_str("POLYGON_AMOY_RPC_URL")


def get_contract_address() -> str:
    """Return CONTRACT_ADDRESS, or empty when unset or still the template placeholder."""
    address = env_str("CONTRACT_ADDRESS")
    if address == CONTRACT_ADDRESS_PLACEHOLDER:
        return ""
    return address
