"""
FastAPI server: wallet registration and admin reconciliation.

Public:  POST /api/wallet/register, GET /api/wallet/{address}, GET /health
Admin:   POST /api/admin/login, POST /api/admin/verify, GET /api/admin/wallets

Components (store, ledger oracle, admin gate) are built from Settings in create_app()
or injected by the caller (tests, CLI) and kept on app.state.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from backend_walletverify import __version__
from backend_walletverify.auth import AdminGate, TokenAdminGate
from backend_walletverify.config import Settings, load_settings
from backend_walletverify.core.exceptions import (
    InvalidAddress,
    InvalidClaim,
    RecordNotFound,
    Unauthorized,
    VerificationError,
)
from backend_walletverify.database import SQLAlchemyBackend, WalletStore, unix_now
from backend_walletverify.oracle import LedgerOracle, RetryPolicy, build_ledger_oracle
from backend_walletverify.services import RegistrationService, VerificationReconciler
from backend_walletverify.verify_logging import get_logger, short_address

logger = get_logger(__name__)

bearer = HTTPBearer(auto_error=False)


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """POST /api/wallet/register body. Presence and format are checked by the service."""

    walletAddress: str | None = Field(None, description="0x-prefixed wallet address")
    hash: str | None = Field(None, description="IPFS hash (content identifier) of the identity record")


class VerifyRequest(BaseModel):
    """POST /api/admin/verify body."""

    walletAddress: str | None = Field(None, description="Wallet to reconcile")


class LoginRequest(BaseModel):
    """POST /api/admin/login body."""

    username: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------


def get_registration(request: Request) -> RegistrationService:
    return request.app.state.registration


def get_reconciler(request: Request) -> VerificationReconciler:
    return request.app.state.reconciler


def get_store(request: Request) -> WalletStore:
    return request.app.state.store


def require_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> None:
    """Dependency: reject the request unless it carries a valid admin bearer token."""
    gate: AdminGate = request.app.state.gate
    token = credentials.credentials if credentials else None
    if not gate.authorize(token):
        raise Unauthorized("Missing or invalid admin token")


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------


def _body_validation_error(exc: RequestValidationError) -> VerificationError:
    """Map a rejected request body onto InvalidAddress (walletAddress) or InvalidClaim."""
    locs = [tuple(err.get("loc", ())) for err in exc.errors()]
    fields = sorted({".".join(str(p) for p in loc[1:]) for loc in locs if len(loc) > 1})
    if any(loc[1:2] == ("walletAddress",) for loc in locs):
        return InvalidAddress("walletAddress must be a 0x-prefixed address string", fields=fields)
    return InvalidClaim("Malformed request body", fields=fields)


def _build_oracle(settings: Settings) -> LedgerOracle:
    if not settings.ledger_configured:
        logger.warning(
            "ledger_not_configured",
            rpc_url_set=bool(settings.ledger_rpc_url),
            contract_address_set=bool(settings.contract_address),
        )
    return build_ledger_oracle(
        settings.ledger_rpc_url,
        settings.contract_address,
        timeout_sec=settings.ledger_timeout_sec,
        retry=RetryPolicy(
            attempts=settings.ledger_retry_attempts,
            backoff_sec=settings.ledger_retry_backoff_sec,
        ),
    )


def create_app(
    settings: Settings | None = None,
    *,
    store: WalletStore | None = None,
    oracle: LedgerOracle | None = None,
    gate: AdminGate | None = None,
) -> FastAPI:
    """Build the ASGI app. Anything not injected is constructed from settings."""
    settings = settings or load_settings()
    store = store or WalletStore(SQLAlchemyBackend(settings.database_url))
    oracle = oracle or _build_oracle(settings)
    gate = gate or TokenAdminGate(
        settings.admin_username,
        settings.admin_password,
        settings.admin_token_secret,
        ttl_sec=settings.admin_token_ttl_sec,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the wallets table on startup; release the ledger client on shutdown."""
        store.ensure_schema()
        logger.info("api_started", ledger_configured=settings.ledger_configured)
        try:
            yield
        finally:
            oracle.close()
            logger.info("api_stopped")

    app = FastAPI(
        title="Backend WalletVerify API",
        description="Wallet fingerprint registration and on-chain verification.",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.gate = gate
    app.state.registration = RegistrationService(store)
    app.state.reconciler = VerificationReconciler(store, oracle)

    @app.exception_handler(VerificationError)
    def verification_error_handler(request: Request, exc: VerificationError) -> JSONResponse:
        """Structured error body: error kind, message, details."""
        if exc.status_code >= 500:
            logger.warning("request_failed", path=request.url.path, error_kind=exc.kind, error=exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, **exc.to_dict()},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Body type errors use the same error body as every other rejected input."""
        error = _body_validation_error(exc)
        logger.info("request_rejected", path=request.url.path, error_kind=error.kind, fields=error.context.get("fields"))
        return verification_error_handler(request, error)

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Liveness probe: API is up."""
        return {"status": "ok", "timestamp": unix_now()}

    # --- Wallet (public) ---

    @app.post("/api/wallet/register")
    def register_wallet(
        body: RegisterRequest,
        registration: RegistrationService = Depends(get_registration),
    ) -> JSONResponse:
        """
        Store wallet address and fingerprint. 201 when newly registered, 200 when an
        existing claim was replaced (the wallet goes back to unverified either way).
        """
        result = registration.register(body.walletAddress or "", body.hash or "")
        message = "Wallet registered successfully" if result.created else "Wallet information updated successfully"
        return JSONResponse(
            status_code=201 if result.created else 200,
            content={
                "success": True,
                "created": result.created,
                "message": message,
                "data": result.record.to_dict(),
            },
        )

    @app.get("/api/wallet/{address}")
    def get_wallet(address: str, store: WalletStore = Depends(get_store)) -> dict[str, Any]:
        """Return the stored record for a wallet, 404 if never registered."""
        record = store.get(address)
        if record is None:
            raise RecordNotFound("Wallet not found", address=address.strip().lower())
        return {"success": True, "data": record.to_dict()}

    # --- Admin ---

    @app.post("/api/admin/login", response_model=LoginResponse)
    def admin_login(body: LoginRequest, request: Request) -> LoginResponse:
        """Exchange admin credentials for a bearer token."""
        admin_gate = request.app.state.gate
        if not isinstance(admin_gate, TokenAdminGate):
            raise Unauthorized("Login is not supported by the configured admin gate")
        token = admin_gate.login(body.username, body.password)
        return LoginResponse(token=token, expires_in=admin_gate.ttl_sec)

    @app.post("/api/admin/verify", dependencies=[Depends(require_admin)])
    def admin_verify(
        body: VerifyRequest,
        reconciler: VerificationReconciler = Depends(get_reconciler),
    ) -> dict[str, Any]:
        """
        Reconcile a wallet against the contract. A mismatch is a normal 200 response
        with matched=false and both fingerprints; failures use the error body.
        """
        result = reconciler.reconcile(body.walletAddress or "")
        if result.matched:
            return {"success": True, "message": "Wallet verified successfully", **result.to_dict()}
        logger.info("admin_verify_mismatch", wallet=short_address(result.record.address))
        return {"success": False, "message": "Hash mismatch - verification failed", **result.to_dict()}

    @app.get("/api/admin/wallets", dependencies=[Depends(require_admin)])
    def admin_list_wallets(store: WalletStore = Depends(get_store)) -> dict[str, Any]:
        """All wallet records, newest first."""
        records = store.list_all()
        return {"success": True, "count": len(records), "data": [r.to_dict() for r in records]}

    return app
