"""
Pytest tests for the FastAPI surface: registration, lookup, admin login, verify and listing.

Store, oracle and gate are injected via conftest fixtures.
"""

from __future__ import annotations

from backend_walletverify.core.exceptions import OracleUnavailable
from backend_walletverify.oracle import LedgerOracle

WALLET = "0x52908400098527886E0F7030069857D2E4169EE7"
WALLET_2 = "0x8617E340B3D01FA5F11F306F4090FD50E238070D"
HASH_1 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
HASH_2 = "QmT78zSuBmuS4z925WZfrqQ1qHaJ56DQaTfyMUF7F8ff5o"


class DownOracle(LedgerOracle):
    def read_fingerprint(self, address: str) -> str | None:
        raise OracleUnavailable("Ledger RPC timed out", method="eth_call")


def register(client, address=WALLET, fingerprint=HASH_1):
    return client.post("/api/wallet/register", json={"walletAddress": address, "hash": fingerprint})


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


# --- Registration ---


def test_register_created_then_updated(client):
    r1 = register(client)
    assert r1.status_code == 201
    body1 = r1.json()
    assert body1["success"] is True
    assert body1["created"] is True
    assert body1["data"]["walletAddress"] == WALLET.lower()
    assert body1["data"]["hash"] == HASH_1
    assert body1["data"]["auth"] is False

    r2 = register(client, fingerprint=HASH_2)
    assert r2.status_code == 200
    body2 = r2.json()
    assert body2["created"] is False
    assert body2["data"]["hash"] == HASH_2
    assert body2["data"]["createdAt"] == body1["data"]["createdAt"]


def test_register_invalid_address(client):
    r = register(client, address="0xNOTHEX")
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "InvalidAddress"


def test_register_missing_fields(client):
    r = client.post("/api/wallet/register", json={"walletAddress": WALLET})
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidClaim"

    r = client.post("/api/wallet/register", json={"hash": HASH_1})
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidAddress"


def test_get_wallet(client):
    register(client)
    r = client.get(f"/api/wallet/{WALLET.upper().replace('0X', '0x')}")
    assert r.status_code == 200
    assert r.json()["data"]["hash"] == HASH_1

    r = client.get(f"/api/wallet/{WALLET_2}")
    assert r.status_code == 404
    assert r.json()["error"] == "RecordNotFound"

    r = client.get("/api/wallet/not-an-address")
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidAddress"


# --- Admin auth ---


def test_admin_login_rejects_bad_password(client):
    r = client.post("/api/admin/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["error"] == "Unauthorized"


def test_admin_endpoints_require_token(client):
    r = client.post("/api/admin/verify", json={"walletAddress": WALLET})
    assert r.status_code == 401
    assert r.headers.get("www-authenticate") == "Bearer"

    r = client.get("/api/admin/wallets", headers={"Authorization": "Bearer admin-authenticated"})
    assert r.status_code == 401


# --- Verify ---


def test_verify_match(client, oracle, admin_headers):
    register(client)
    oracle.anchor(WALLET, HASH_1)

    r = client.post("/api/admin/verify", json={"walletAddress": WALLET}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["matched"] is True
    assert body["data"]["auth"] is True
    assert body["data"]["verifiedAt"] >= body["data"]["createdAt"]

    r = client.get(f"/api/wallet/{WALLET}")
    assert r.json()["data"]["auth"] is True


def test_verify_mismatch_is_well_formed(client, oracle, admin_headers):
    register(client)
    oracle.anchor(WALLET, HASH_2)

    r = client.post("/api/admin/verify", json={"walletAddress": WALLET}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False
    assert body["matched"] is False
    assert body["details"] == {"databaseHash": HASH_1, "contractHash": HASH_2}
    assert body["data"]["auth"] is False


def test_verify_not_anchored(client, admin_headers):
    register(client)
    r = client.post("/api/admin/verify", json={"walletAddress": WALLET}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "NotAnchored"


def test_verify_unknown_wallet(client, oracle, admin_headers):
    r = client.post("/api/admin/verify", json={"walletAddress": WALLET_2}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "RecordNotFound"
    assert oracle.calls == []


def test_verify_missing_address(client, admin_headers):
    r = client.post("/api/admin/verify", json={}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidAddress"


def test_verify_oracle_unavailable(store, gate):
    from fastapi.testclient import TestClient

    from backend_walletverify.api_server.server import create_app
    from backend_walletverify.config import Settings

    client = TestClient(create_app(Settings(), store=store, oracle=DownOracle(), gate=gate))
    register(client)
    token = gate.login("admin", "correct-horse-battery-staple")

    r = client.post(
        "/api/admin/verify",
        json={"walletAddress": WALLET},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 503
    body = r.json()
    assert body["error"] == "OracleUnavailable"
    assert body["details"] == {"method": "eth_call"}
    assert store.get(WALLET).verified is False


# --- Listing ---


def test_list_wallets_newest_first(client, clock, admin_headers):
    register(client, address=WALLET)
    clock.advance(10)
    register(client, address=WALLET_2, fingerprint=HASH_2)

    r = client.get("/api/admin/wallets", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert [w["walletAddress"] for w in body["data"]] == [WALLET_2.lower(), WALLET.lower()]


# --- Body validation ---


def test_register_long_fingerprint_is_accepted(client):
    long_hash = "Qm" + "a" * 600
    r = register(client, fingerprint=long_hash)
    assert r.status_code == 201
    assert r.json()["data"]["hash"] == long_hash


def test_register_non_string_address_is_invalid_address(client):
    r = client.post("/api/wallet/register", json={"walletAddress": 123, "hash": HASH_1})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "InvalidAddress"
    assert body["details"]["fields"] == ["walletAddress"]


def test_register_non_string_hash_is_invalid_claim(client):
    r = client.post("/api/wallet/register", json={"walletAddress": WALLET, "hash": ["Qm1"]})
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidClaim"


def test_register_malformed_json_is_invalid_claim(client):
    r = client.post(
        "/api/wallet/register",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidClaim"


def test_verify_non_string_address_is_invalid_address(client, admin_headers):
    r = client.post("/api/admin/verify", json={"walletAddress": 42}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidAddress"


# --- Lifecycle ---


def test_shutdown_closes_oracle(app, oracle):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        assert c.get("/health").status_code == 200
        assert oracle.closed is False
    assert oracle.closed is True
