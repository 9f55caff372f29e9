"""
Pytest fixtures for WalletVerify tests. Each test gets a fresh temporary SQLite store,
a dictionary-backed ledger oracle, and a token admin gate with known credentials.
"""

from __future__ import annotations

import pytest

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse-battery-staple"
ADMIN_SECRET = "test-secret-for-admin-tokens-0123456789abcdef"


class FakeClock:
    """Deterministic Unix-seconds clock."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    """WalletStore on a temporary SQLite file, schema created."""
    from backend_walletverify.database import get_wallet_store

    return get_wallet_store(f"sqlite:///{tmp_path / 'wallets.db'}", clock=clock)


@pytest.fixture
def oracle():
    """Dictionary-backed oracle that records which addresses were looked up."""
    from backend_walletverify.oracle import StaticLedgerOracle

    class RecordingLedgerOracle(StaticLedgerOracle):
        def __init__(self) -> None:
            super().__init__()
            self.calls: list[str] = []
            self.closed = False

        def read_fingerprint(self, address: str) -> str | None:
            self.calls.append(address)
            return super().read_fingerprint(address)

        def close(self) -> None:
            self.closed = True

    return RecordingLedgerOracle()


@pytest.fixture
def gate():
    from backend_walletverify.auth import TokenAdminGate

    return TokenAdminGate(ADMIN_USERNAME, ADMIN_PASSWORD, ADMIN_SECRET)


@pytest.fixture
def registration(store):
    from backend_walletverify.services import RegistrationService

    return RegistrationService(store)


@pytest.fixture
def reconciler(store, oracle, clock):
    from backend_walletverify.services import VerificationReconciler

    return VerificationReconciler(store, oracle, clock=clock)


@pytest.fixture
def app(store, oracle, gate):
    from backend_walletverify.api_server.server import create_app
    from backend_walletverify.config import Settings

    return create_app(Settings(), store=store, oracle=oracle, gate=gate)


@pytest.fixture
def client(app):
    """FastAPI TestClient over the injected store/oracle/gate."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def admin_headers(client):
    r = client.post("/api/admin/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}
