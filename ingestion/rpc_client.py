"""Ledger RPC client - historical signature and transaction queries."""

import itertools
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .config import MonitorConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """Raised when the RPC provider answers with an error."""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


def account_pre_balance(tx: Dict[str, Any], address: str) -> Optional[int]:
    """
    Lamport balance of `address` before `tx` executed.

    Only static account keys are searched; returns None when the address
    is not one of them or the transaction carries no meta.
    """
    meta = tx.get("meta")
    if not meta:
        return None

    account_keys = tx["transaction"]["message"]["accountKeys"]
    for index, key in enumerate(account_keys):
        pubkey = key["pubkey"] if isinstance(key, dict) else key
        if pubkey == address:
            pre_balances = meta.get("preBalances") or []
            if index < len(pre_balances):
                return pre_balances[index]
            return None
    return None


class LedgerQueryClient:
    """
    JSON-RPC client for the historical queries the wallet heuristics need.

    Usage:
        async with LedgerQueryClient(config=config) as client:
            sigs = await client.get_signatures_for_address(wallet, limit=4)
    """

    def __init__(
        self,
        session: aiohttp.ClientSession = None,
        config: MonitorConfig = DEFAULT_CONFIG,
    ):
        """
        Args:
            session: Optional aiohttp session (created on enter if not provided)
            config: Monitor configuration (endpoint and timeout)
        """
        self._session = session
        self._owns_session = session is None
        self.url = config.rpc_http_url
        self.timeout = aiohttp.ClientTimeout(total=config.rpc_timeout_seconds)
        self._ids = itertools.count(1)

    async def __aenter__(self):
        await self.open()
        return self

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def _call(self, method: str, params: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        async with self._session.post(
            self.url,
            json=payload,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"},
        ) as response:
            if response.status != 200:
                error_text = await response.text()
                raise RpcError(method, f"HTTP {response.status}: {error_text[:200]}")
            data = await response.json()

        error = data.get("error")
        if error:
            raise RpcError(method, error.get("message", str(error)), error.get("code"))
        return data.get("result")

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int,
        commitment: str = "confirmed",
    ) -> List[Dict[str, Any]]:
        """
        Most recent signatures involving `address`, newest first.

        Each entry carries at least `signature`, `slot` and `blockTime`
        (which may be None).
        """
        result = await self._call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": commitment}],
        )
        return result or []

    async def get_transaction(
        self,
        signature: str,
        commitment: str = "confirmed",
    ) -> Optional[Dict[str, Any]]:
        """Full transaction for `signature`, or None if the node has none."""
        return await self._call(
            "getTransaction",
            [
                signature,
                {
                    "commitment": commitment,
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
