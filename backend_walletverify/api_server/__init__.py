"""
API server package: HTTP/REST interface.

Wallet registration and lookup for clients; login, verification and listing for admins.
Delegates to the service layer; errors are rendered from the VerificationError taxonomy.
"""
