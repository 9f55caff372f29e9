"""
Application-level exceptions.

Every failure the registration and reconciliation paths can produce is a
VerificationError subclass with a stable `kind`, a message, and a context dict.
The API layer maps `status_code` onto HTTP; the engine itself never looks at it.
"""

from __future__ import annotations

from typing import Any


class VerificationError(Exception):
    """Base class: kind + message + optional context (e.g. mismatched fingerprints)."""

    kind = "VerificationError"
    status_code = 500

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.context: dict[str, Any] = context

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": self.context}


# --- Caller-fixable input errors ---


class InvalidAddress(VerificationError):
    kind = "InvalidAddress"
    status_code = 400


class InvalidClaim(VerificationError):
    kind = "InvalidClaim"
    status_code = 400


# --- Infrastructure failures (safe for the caller to retry) ---


class StoreUnavailable(VerificationError):
    kind = "StoreUnavailable"
    status_code = 503


class OracleUnavailable(VerificationError):
    kind = "OracleUnavailable"
    status_code = 503


# --- Expected domain outcomes: a precondition is not met yet ---


class RecordNotFound(VerificationError):
    kind = "RecordNotFound"
    status_code = 404


class NotAnchored(VerificationError):
    kind = "NotAnchored"
    status_code = 404


class FingerprintSuperseded(VerificationError):
    """The fingerprint compared against the ledger was replaced before it could be marked verified."""

    kind = "FingerprintSuperseded"
    status_code = 409


# --- Gate rejection ---


class Unauthorized(VerificationError):
    kind = "Unauthorized"
    status_code = 401
