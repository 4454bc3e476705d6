"""Solana JSON-RPC transport over httpx.

Only the transport raises ChainQueryFailure; everything above it converts
failures into conservative defaults.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ..config import Settings
from ..errors import ChainQueryFailure

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ChainRpc(ABC):
    """The chain-query capability the core depends on."""

    @abstractmethod
    async def get_token_account_balance(self, address: str) -> dict:
        """Return the RPC ``value`` object: amount, decimals, uiAmountString."""

    @abstractmethod
    async def get_signatures_for_address(self, address: str, limit: int = 200,
                                         before: Optional[str] = None) -> list[dict]:
        """Most-recent-first signature infos for ``address``."""

    @abstractmethod
    async def get_parsed_transaction(self, signature: str) -> Optional[dict]:
        """Parsed (jsonParsed) transaction, or None if unknown."""

    @abstractmethod
    async def get_account_info(self, address: str) -> Optional[dict]:
        """Parsed account ``value``, or None if the account does not exist."""

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Lamport balance of ``address``."""


class SolanaRpcClient(ChainRpc):
    """Async JSON-RPC client with bounded retry on rate limits and 5xx."""

    def __init__(self, url: str, *, timeout: float = 15.0, max_retries: int = 2,
                 retry_delay: float = 0.5, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._ids = itertools.count(1)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SolanaRpcClient":
        return cls(settings.rpc_url, timeout=settings.rpc_timeout,
                   max_retries=settings.rpc_max_retries,
                   retry_delay=settings.rpc_retry_delay)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def call(self, method: str, params: list) -> Any:
        """POST one JSON-RPC request and return its ``result``."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        last_error = "no attempt made"

        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning("Retrying %s after error (attempt %d/%d, delay %.2fs): %s",
                               method, attempt, self.max_retries, delay, last_error)
                await asyncio.sleep(delay)
            try:
                resp = await self._client.post(self.url, json=payload)
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"
                continue

            if resp.status_code in RETRYABLE_STATUS:
                last_error = f"HTTP {resp.status_code}"
                continue
            if resp.status_code != 200:
                raise ChainQueryFailure(method, f"HTTP {resp.status_code}", resp.status_code)

            try:
                body = resp.json()
            except ValueError:
                raise ChainQueryFailure(method, "response is not JSON") from None
            if not isinstance(body, dict):
                raise ChainQueryFailure(method, "unexpected response shape")
            if body.get("error"):
                err = body["error"]
                if isinstance(err, dict):
                    raise ChainQueryFailure(method, str(err.get("message", err)), err.get("code"))
                raise ChainQueryFailure(method, str(err))
            return body.get("result")

        raise ChainQueryFailure(method, last_error)

    # ─── Methods ───────────────────────────────────────────────────

    async def get_token_account_balance(self, address: str) -> dict:
        result = await self.call("getTokenAccountBalance", [address])
        if not isinstance(result, dict) or not isinstance(result.get("value"), dict):
            raise ChainQueryFailure("getTokenAccountBalance", "missing value")
        return result["value"]

    async def get_signatures_for_address(self, address: str, limit: int = 200,
                                         before: Optional[str] = None) -> list[dict]:
        opts: dict[str, Any] = {"limit": limit}
        if before:
            opts["before"] = before
        result = await self.call("getSignaturesForAddress", [address, opts])
        return result if isinstance(result, list) else []

    async def get_parsed_transaction(self, signature: str) -> Optional[dict]:
        return await self.call("getTransaction", [
            signature,
            {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0},
        ])

    async def get_account_info(self, address: str) -> Optional[dict]:
        result = await self.call("getAccountInfo", [address, {"encoding": "jsonParsed"}])
        return result.get("value") if isinstance(result, dict) else None

    async def get_balance(self, address: str) -> int:
        result = await self.call("getBalance", [address])
        if isinstance(result, dict):
            return int(result.get("value", 0))
        return int(result or 0)
