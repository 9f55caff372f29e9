"""
Configuration management for Backend WalletVerify.

Loads settings from environment variables and an optional .env file and exposes
a single Settings object that the entrypoints pass into components.
"""

from backend_walletverify.config.settings import Settings, load_settings  # noqa: F401

__all__ = ["Settings", "load_settings"]
