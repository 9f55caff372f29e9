"""
Ledger oracle: read-only lookup of the fingerprint anchored on-chain for a wallet.

The verification contract exposes `getHash(address) view returns (string)`. We call it
with a raw JSON-RPC eth_call and decode the ABI string ourselves; nothing here ever
signs or submits a transaction.

Outcomes of read_fingerprint():
- str: the anchored fingerprint, exactly as stored on-chain (no case folding)
- None: the address was never anchored (contract returns the empty string)
- OracleUnavailable: transport error, timeout, RPC error, undecodable result, or
  missing RPC URL / contract address
"""

from __future__ import annotations

import itertools
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import httpx

from backend_walletverify.core.exceptions import OracleUnavailable
from backend_walletverify.utils.wallet_utils import is_valid_wallet, normalize_address
from backend_walletverify.verify_logging import get_logger, short_address

logger = get_logger(__name__)

# keccak256("getHash(address)")[:4]
GET_HASH_SELECTOR = "1da0b8fc"
ABI_WORD_HEX = 64
DEFAULT_TIMEOUT_SEC = 10.0


class LedgerOracle(ABC):
    """Read-only source of the authoritative fingerprint for an address."""

    @abstractmethod
    def read_fingerprint(self, address: str) -> str | None:
        """Return the anchored fingerprint, or None when the address is not anchored."""
        ...

    def close(self) -> None:
        """Release network resources. No-op for oracles that hold none."""
        return None


# -----------------------------------------------------------------------------
# ABI helpers
# -----------------------------------------------------------------------------


def encode_get_hash_call(address: str) -> str:
    """Calldata for getHash(address): selector + address left-padded to 32 bytes."""
    canonical = normalize_address(address)
    return "0x" + GET_HASH_SELECTOR + canonical[2:].rjust(ABI_WORD_HEX, "0")


def decode_abi_string(result: str) -> str:
    """
    Decode a single ABI-encoded `string` return value (0x-hex).

    Layout: word 0 = offset to the string, word at offset = byte length, then data.
    Raises ValueError on anything malformed.
    """
    if not isinstance(result, str) or not result.startswith("0x"):
        raise ValueError(f"unexpected eth_call result: {result!r}")
    raw = bytes.fromhex(result[2:])
    if len(raw) < 64:
        raise ValueError(f"eth_call result too short ({len(raw)} bytes)")
    offset = int.from_bytes(raw[0:32], "big")
    if offset + 32 > len(raw):
        raise ValueError("string offset out of range")
    length = int.from_bytes(raw[offset:offset + 32], "big")
    start = offset + 32
    if start + length > len(raw):
        raise ValueError("string length out of range")
    return raw[start:start + length].decode("utf-8")


# -----------------------------------------------------------------------------
# Contract-backed oracle
# -----------------------------------------------------------------------------


class ContractLedgerOracle(LedgerOracle):
    """
    Reads getHash(address) from the verification contract over EVM JSON-RPC.

    rpc_url / contract_address come from Settings; either one missing makes every
    read fail with OracleUnavailable rather than failing at startup.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        client: httpx.Client | None = None,
    ) -> None:
        self._rpc_url = (rpc_url or "").strip()
        self._contract_address = (contract_address or "").strip()
        self._client = client or httpx.Client(timeout=timeout_sec)
        self._request_ids = itertools.count(1)

    def close(self) -> None:
        """Close the HTTP client, including one passed in by the caller."""
        self._client.close()

    def _check_configured(self) -> None:
        if not self._rpc_url:
            raise OracleUnavailable("Ledger RPC URL not configured")
        if not is_valid_wallet(self._contract_address):
            raise OracleUnavailable(
                "Contract address not configured. Deploy the contract and set CONTRACT_ADDRESS",
                contractAddress=self._contract_address,
            )

    def _rpc_post(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._request_ids), "method": method, "params": params}
        try:
            r = self._client.post(self._rpc_url, json=payload)
            r.raise_for_status()
            data = r.json()
        except httpx.TimeoutException as e:
            logger.warning("ledger_rpc_timeout", method=method, error=str(e))
            raise OracleUnavailable("Ledger RPC timed out", method=method) from e
        except httpx.HTTPError as e:
            logger.warning("ledger_rpc_transport_error", method=method, error=str(e))
            raise OracleUnavailable(f"Ledger RPC request failed: {e}", method=method) from e
        except ValueError as e:
            logger.warning("ledger_rpc_bad_json", method=method, error=str(e))
            raise OracleUnavailable("Ledger RPC returned invalid JSON", method=method) from e
        if not isinstance(data, dict):
            raise OracleUnavailable("Ledger RPC returned an unexpected payload", method=method)
        err = data.get("error")
        if err:
            logger.warning("ledger_rpc_error", method=method, rpc_error=err)
            raise OracleUnavailable("Ledger RPC error", method=method, rpcError=err)
        return data.get("result")

    def read_fingerprint(self, address: str) -> str | None:
        self._check_configured()
        call = {"to": self._contract_address, "data": encode_get_hash_call(address)}
        result = self._rpc_post("eth_call", [call, "latest"])
        if result in (None, "0x"):
            # no code at the contract address, or the function is missing
            raise OracleUnavailable(
                "Contract returned no data; check CONTRACT_ADDRESS and network",
                contractAddress=self._contract_address,
            )
        try:
            fingerprint = decode_abi_string(result)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning("ledger_result_undecodable", wallet=short_address(address), error=str(e))
            raise OracleUnavailable("Could not decode contract result", error=str(e)) from e
        if not fingerprint:
            logger.info("ledger_fingerprint_absent", wallet=short_address(address))
            return None
        logger.debug("ledger_fingerprint_read", wallet=short_address(address))
        return fingerprint


# -----------------------------------------------------------------------------
# Injectable retry policy
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryPolicy:
    """attempts includes the first try; attempts=1 means no retry."""

    attempts: int = 1
    backoff_sec: float = 0.5


class RetryingLedgerOracle(LedgerOracle):
    """Retries OracleUnavailable from the wrapped oracle. Absence is returned as-is."""

    def __init__(
        self,
        inner: LedgerOracle,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._inner = inner
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    def read_fingerprint(self, address: str) -> str | None:
        attempts = max(1, self._policy.attempts)
        attempt = 1
        while True:
            try:
                return self._inner.read_fingerprint(address)
            except OracleUnavailable as e:
                if attempt >= attempts:
                    raise
                logger.info(
                    "ledger_read_retry",
                    wallet=short_address(address),
                    attempt=attempt,
                    attempts=attempts,
                    error=e.message,
                )
                self._sleep(self._policy.backoff_sec * attempt)
                attempt += 1

    def close(self) -> None:
        self._inner.close()


# -----------------------------------------------------------------------------
# Static oracle (local development and tests)
# -----------------------------------------------------------------------------


class StaticLedgerOracle(LedgerOracle):
    """Dictionary-backed oracle. Keys are matched case-insensitively like the contract does."""

    def __init__(self, anchored: Mapping[str, str] | None = None) -> None:
        self._anchored = {k.lower(): v for k, v in (anchored or {}).items()}

    def anchor(self, address: str, fingerprint: str) -> None:
        self._anchored[address.lower()] = fingerprint

    def read_fingerprint(self, address: str) -> str | None:
        return self._anchored.get(address.lower()) or None


def build_ledger_oracle(
    rpc_url: str,
    contract_address: str,
    *,
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    retry: RetryPolicy | None = None,
) -> LedgerOracle:
    """Contract oracle wrapped in the retry policy (a single attempt by default)."""
    oracle = ContractLedgerOracle(rpc_url, contract_address, timeout_sec=timeout_sec)
    return RetryingLedgerOracle(oracle, retry or RetryPolicy())
