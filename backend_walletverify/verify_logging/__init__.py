"""
Structured logging for Backend WalletVerify.

JSON logs with timestamp, level and event_type. Use get_logger() in every module.
"""

from backend_walletverify.verify_logging.logger import get_logger, short_address

__all__ = ["get_logger", "short_address"]
