"""
Admin gate: decides whether a caller may trigger reconciliation or list wallets.

TokenAdminGate exchanges the configured admin username/password for a signed,
time-bounded JWT (HS256) and authorizes requests that present one.
"""

from __future__ import annotations

import hmac
import secrets
from abc import ABC, abstractmethod

import jwt

from backend_walletverify.core.exceptions import Unauthorized
from backend_walletverify.database import Clock, unix_now
from backend_walletverify.verify_logging import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"
ADMIN_SCOPE = "admin"
DEFAULT_TOKEN_TTL_SEC = 3600


class AdminGate(ABC):
    @abstractmethod
    def authorize(self, credentials: str | None) -> bool:
        """True when the presented credentials grant admin access."""
        ...


class TokenAdminGate(AdminGate):
    def __init__(
        self,
        username: str,
        password: str,
        secret: str | None = None,
        *,
        ttl_sec: int = DEFAULT_TOKEN_TTL_SEC,
        clock: Clock | None = None,
    ) -> None:
        self._username = username or ""
        self._password = password or ""
        if not secret:
            logger.warning("admin_token_secret_missing", message="Using a per-process secret; tokens will not survive restarts")
            secret = secrets.token_urlsafe(48)
        self._secret = secret
        self._ttl_sec = ttl_sec
        self._clock = clock or unix_now

    @property
    def ttl_sec(self) -> int:
        return self._ttl_sec

    def _credentials_match(self, username: str, password: str) -> bool:
        if not self._username or not self._password:
            return False
        user_ok = hmac.compare_digest((username or "").encode(), self._username.encode())
        pass_ok = hmac.compare_digest((password or "").encode(), self._password.encode())
        return user_ok and pass_ok

    def login(self, username: str, password: str) -> str:
        """Return a signed admin token. Raises Unauthorized on bad or unconfigured credentials."""
        if not self._credentials_match(username, password):
            logger.warning("admin_login_rejected")
            raise Unauthorized("Invalid credentials")
        now = self._clock()
        claims = {
            "sub": self._username,
            "scope": ADMIN_SCOPE,
            "iat": now,
            "exp": now + self._ttl_sec,
        }
        logger.info("admin_login_succeeded")
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def authorize(self, credentials: str | None) -> bool:
        if not credentials:
            return False
        try:
            payload = jwt.decode(credentials, self._secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.info("admin_token_expired")
            return False
        except jwt.InvalidTokenError as e:
            logger.info("admin_token_invalid", error=str(e))
            return False
        return payload.get("scope") == ADMIN_SCOPE and payload.get("sub") == self._username
