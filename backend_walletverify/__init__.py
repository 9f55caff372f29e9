"""
Backend WalletVerify: identity fingerprint registration and on-chain reconciliation.

Wallets claim a content-addressed fingerprint off-chain; an administrator reconciles
the claim against the fingerprint anchored in the verification contract and the
wallet is marked verified on an exact match.
"""

__version__ = "0.1.0"
