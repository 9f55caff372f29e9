"""
Wallet record store: one row per wallet address with its claimed fingerprint and trust state.

All access goes through WalletStore, which validates and canonicalizes addresses and
delegates persistence to a WalletStoreBackend. The SQLAlchemy backend works against
SQLite (default) or PostgreSQL via DATABASE_URL.

Concurrency: upsert is a single transaction per address (a lost insert race is retried
as an update), and set_verified is a compare-and-set on the fingerprint that was
checked against the ledger, so a concurrent registration always wins.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from sqlalchemy import Boolean, Column, Integer, String, Text, create_engine, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend_walletverify.core.exceptions import (
    FingerprintSuperseded,
    InvalidClaim,
    RecordNotFound,
    StoreUnavailable,
)
from backend_walletverify.database.models import WalletRecord
from backend_walletverify.utils.wallet_utils import normalize_address
from backend_walletverify.verify_logging import get_logger, short_address

logger = get_logger(__name__)

Base = declarative_base()

Clock = Callable[[], int]


def unix_now() -> int:
    return int(time.time())


# -----------------------------------------------------------------------------
# SQLAlchemy model
# -----------------------------------------------------------------------------


class WalletRow(Base):
    """Persisted wallet record; address is stored lower-case only."""

    __tablename__ = "wallets"

    address = Column(String(42), primary_key=True)
    fingerprint = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(Integer, nullable=False, index=True)  # Unix
    verified_at = Column(Integer, nullable=True)  # Unix; null while unverified
    updated_at = Column(Integer, nullable=True)

    def to_record(self) -> WalletRecord:
        return WalletRecord(
            address=self.address,
            fingerprint=self.fingerprint,
            verified=bool(self.verified),
            created_at=self.created_at,
            verified_at=self.verified_at,
            updated_at=self.updated_at,
        )


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class WalletStoreBackend(ABC):
    """Persistence interface. Addresses passed in are already canonical."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables if they do not exist."""
        ...

    @abstractmethod
    def upsert(self, address: str, fingerprint: str) -> tuple[WalletRecord, bool]:
        """Insert or replace the fingerprint and reset trust. Returns (record, created)."""
        ...

    @abstractmethod
    def get(self, address: str) -> WalletRecord | None:
        ...

    @abstractmethod
    def set_verified(
        self,
        address: str,
        timestamp: int,
        expected_fingerprint: str | None = None,
    ) -> WalletRecord:
        """
        Mark verified. When expected_fingerprint is given, only if the stored fingerprint
        still equals it. Raises RecordNotFound or FingerprintSuperseded.
        """
        ...

    @abstractmethod
    def list_all(self) -> list[WalletRecord]:
        """All records, newest first."""
        ...


# -----------------------------------------------------------------------------
# SQLAlchemy backend
# -----------------------------------------------------------------------------


class SQLAlchemyBackend(WalletStoreBackend):
    """SQLAlchemy implementation; one session (transaction) per operation."""

    def __init__(self, url: str, *, clock: Clock | None = None) -> None:
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._url = url
        self._clock = clock or unix_now
        self._engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(
            autoflush=False,
            expire_on_commit=False,
            bind=self._engine,
        )

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _store_errors(self, operation: str, address: str | None = None) -> Iterator[None]:
        """Re-raise driver failures as StoreUnavailable."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception("store_operation_failed", operation=operation, wallet=short_address(address), error=str(e))
            raise StoreUnavailable(f"Wallet store unavailable during {operation}", operation=operation) from e

    def ensure_schema(self) -> None:
        with self._store_errors("ensure_schema"):
            Base.metadata.create_all(bind=self._engine)
        logger.info("wallet_store_schema_ready", url=self._url.split("?")[0].split("//")[-1])

    def _upsert_once(self, address: str, fingerprint: str, now: int) -> tuple[WalletRecord, bool]:
        with self._session_scope() as session:
            row = session.get(WalletRow, address, with_for_update=True)
            created = row is None
            if created:
                row = WalletRow(
                    address=address,
                    fingerprint=fingerprint,
                    verified=False,
                    created_at=now,
                    verified_at=None,
                    updated_at=now,
                )
                session.add(row)
            else:
                # trust belongs to a fingerprint, so any claim resets it
                row.fingerprint = fingerprint
                row.verified = False
                row.verified_at = None
                row.updated_at = now
            session.flush()
            record = row.to_record()
        return record, created

    def upsert(self, address: str, fingerprint: str) -> tuple[WalletRecord, bool]:
        now = self._clock()
        with self._store_errors("upsert", address):
            try:
                return self._upsert_once(address, fingerprint, now)
            except IntegrityError:
                # lost the insert race for a new address; the row exists now
                logger.info("wallet_upsert_insert_race", wallet=short_address(address))
                return self._upsert_once(address, fingerprint, now)

    def get(self, address: str) -> WalletRecord | None:
        with self._store_errors("get", address):
            with self._session_scope() as session:
                row = session.get(WalletRow, address)
                return row.to_record() if row else None

    def set_verified(
        self,
        address: str,
        timestamp: int,
        expected_fingerprint: str | None = None,
    ) -> WalletRecord:
        with self._store_errors("set_verified", address):
            with self._session_scope() as session:
                stmt = update(WalletRow).where(WalletRow.address == address)
                if expected_fingerprint is not None:
                    stmt = stmt.where(WalletRow.fingerprint == expected_fingerprint)
                result = session.execute(
                    stmt.values(verified=True, verified_at=timestamp, updated_at=timestamp)
                    .execution_options(synchronize_session=False)
                )
                current = session.get(WalletRow, address, populate_existing=True)
                if current is None:
                    raise RecordNotFound("Wallet not found in database", address=address)
                if result.rowcount == 0:
                    raise FingerprintSuperseded(
                        "Wallet fingerprint changed during verification",
                        address=address,
                        expectedHash=expected_fingerprint,
                        currentHash=current.fingerprint,
                    )
                return current.to_record()

    def list_all(self) -> list[WalletRecord]:
        with self._store_errors("list_all"):
            with self._session_scope() as session:
                rows = (
                    session.query(WalletRow)
                    .order_by(WalletRow.created_at.desc(), WalletRow.address)
                    .all()
                )
                return [r.to_record() for r in rows]


# -----------------------------------------------------------------------------
# Store facade: validation + canonical addresses; backend is swappable.
# -----------------------------------------------------------------------------


class WalletStore:
    """
    Wallet record store.

    Every operation canonicalizes the address first; a malformed address raises
    InvalidAddress before the backend is touched.
    """

    def __init__(self, backend: WalletStoreBackend) -> None:
        self._backend = backend

    def ensure_schema(self) -> None:
        self._backend.ensure_schema()

    def upsert(self, address: str, fingerprint: str) -> tuple[WalletRecord, bool]:
        """Create or overwrite the claim for address; always leaves it unverified."""
        address = normalize_address(address)
        fingerprint = (fingerprint or "").strip()
        if not fingerprint:
            raise InvalidClaim("Fingerprint is required", address=address)
        return self._backend.upsert(address, fingerprint)

    def get(self, address: str) -> WalletRecord | None:
        return self._backend.get(normalize_address(address))

    def set_verified(
        self,
        address: str,
        timestamp: int,
        expected_fingerprint: str | None = None,
    ) -> WalletRecord:
        return self._backend.set_verified(normalize_address(address), timestamp, expected_fingerprint)

    def list_all(self) -> list[WalletRecord]:
        return self._backend.list_all()


def get_wallet_store(url: str, *, clock: Clock | None = None) -> WalletStore:
    """
    Return a WalletStore over SQLAlchemy for the given URL, schema ensured.

    url: e.g. "sqlite:///wallet_verify.db" or "postgresql+psycopg://user:pw@host/db".
    """
    store = WalletStore(SQLAlchemyBackend(url, clock=clock))
    store.ensure_schema()
    return store
