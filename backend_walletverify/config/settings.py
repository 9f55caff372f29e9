"""
Application settings.

Settings are read from the environment once, at startup, by load_settings() and
handed to component constructors. Nothing below the API/CLI entrypoints reads
the environment directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_walletverify.config.env import (
    DEFAULT_DATABASE_URL,
    env_float,
    env_int,
    env_str,
    get_contract_address,
    get_database_url,
    get_ledger_rpc_url,
    load_verify_env,
)

DEFAULT_LEDGER_TIMEOUT_SEC = 10.0
DEFAULT_ADMIN_TOKEN_TTL_SEC = 3600


@dataclass(frozen=True)
class Settings:
    """Typed service configuration."""

    database_url: str = DEFAULT_DATABASE_URL
    ledger_rpc_url: str = ""
    contract_address: str = ""
    ledger_timeout_sec: float = DEFAULT_LEDGER_TIMEOUT_SEC
    ledger_retry_attempts: int = 1
    ledger_retry_backoff_sec: float = 0.5
    admin_username: str = ""
    admin_password: str = ""
    admin_token_secret: str = ""
    admin_token_ttl_sec: int = DEFAULT_ADMIN_TOKEN_TTL_SEC
    api_host: str = "0.0.0.0"
    api_port: int = 5000

    @property
    def ledger_configured(self) -> bool:
        return bool(self.ledger_rpc_url and self.contract_address)


def load_settings() -> Settings:
    """Build Settings from environment variables (after loading .env)."""
    load_verify_env()
    return Settings(
        database_url=get_database_url(),
        ledger_rpc_url=get_ledger_rpc_url(),
        contract_address=get_contract_address(),
        ledger_timeout_sec=env_float("LEDGER_TIMEOUT_SEC", DEFAULT_LEDGER_TIMEOUT_SEC),
        ledger_retry_attempts=max(1, env_int("LEDGER_RETRY_ATTEMPTS", 1)),
        ledger_retry_backoff_sec=env_float("LEDGER_RETRY_BACKOFF_SEC", 0.5),
        admin_username=env_str("ADMIN_USERNAME"),
        admin_password=env_str("ADMIN_PASSWORD"),
        admin_token_secret=env_str("ADMIN_TOKEN_SECRET"),
        admin_token_ttl_sec=env_int("ADMIN_TOKEN_TTL_SEC", DEFAULT_ADMIN_TOKEN_TTL_SEC),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 5000),
    )
