"""
memocracy.chain.query — Balances and transfer history for a wallet.

Every public read here is fail-closed: an unreachable RPC node, a timeout, a
malformed address or a missing token account all read as zero (or None for
optional lookups) instead of raising, so eligibility and scoring stay total.

Transaction history is fetched in batches of at most ``batch_size`` concurrent
requests with a ``batch_delay`` pause between batches, to stay under the RPC
provider's rate limits.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from solders.pubkey import Pubkey

from ..config import Settings
from ..errors import ChainQueryFailure, ValidationError
from ..signatures import decode_public_key
from .models import AssetKind, BalanceSnapshot, MintInfo, TransferEvent
from .rpc import ChainRpc, SolanaRpcClient

logger = logging.getLogger(__name__)

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

_SPL_TRANSFER_TYPES = ("transfer", "transferChecked")


def parse_pubkey(address: str) -> Optional[Pubkey]:
    """Parse a base58 address; None when it is not a valid 32-byte key."""
    try:
        return Pubkey(decode_public_key(address))
    except (ValueError, TypeError):
        return None


def associated_token_address(wallet: str, mint: str) -> str:
    """Deterministic associated token account for ``(wallet, mint)``.

    Off-curve owners (PDAs) are allowed.
    """
    owner = parse_pubkey(wallet)
    mint_key = parse_pubkey(mint)
    if owner is None or mint_key is None:
        raise ValueError(f"invalid wallet or mint address: {wallet!r}, {mint!r}")
    ata, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(Pubkey.from_string(TOKEN_PROGRAM_ID)), bytes(mint_key)],
        Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return str(ata)


def parse_amount(value: str, field: str = "amount") -> int:
    """Parse a non-negative integer amount given as a string (raw units)."""
    try:
        amount = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number, got {value!r}") from None
    if amount < 0:
        raise ValidationError(f"{field} must be non-negative, got {value!r}")
    return amount


def parse_transfer_events(tx: Optional[dict], signature: str = "") -> list[TransferEvent]:
    """Lift native and SPL-token transfer instructions out of a parsed transaction.

    Errored transactions, or ones without metadata, contribute nothing.
    """
    if not tx or not isinstance(tx, dict):
        return []
    meta = tx.get("meta")
    if not isinstance(meta, dict) or meta.get("err"):
        return []

    message = (tx.get("transaction") or {}).get("message") or {}
    signature = signature or ((tx.get("transaction") or {}).get("signatures") or [""])[0]
    slot = tx.get("slot")
    block_time = tx.get("blockTime")

    events = []
    for ix in message.get("instructions") or []:
        parsed = ix.get("parsed") if isinstance(ix, dict) else None
        if not isinstance(parsed, dict):
            continue
        info = parsed.get("info") or {}
        if not isinstance(info, dict):
            continue
        program = ix.get("program")
        kind = parsed.get("type")

        try:
            if program == "system" and kind == "transfer":
                events.append(TransferEvent(
                    signature=signature, slot=slot, block_time=block_time,
                    source_wallet=info["source"], dest_wallet=info["destination"],
                    asset_kind=AssetKind.NATIVE, amount_raw=int(info["lamports"]),
                ))
            elif program == "spl-token" and kind in _SPL_TRANSFER_TYPES:
                if "amount" in info:
                    amount = int(info["amount"])
                else:
                    amount = int((info.get("tokenAmount") or {}).get("amount", 0))
                events.append(TransferEvent(
                    signature=signature, slot=slot, block_time=block_time,
                    source_wallet=info.get("authority") or info.get("multisigAuthority", ""),
                    dest_wallet=info["destination"],
                    asset_kind=AssetKind.FUNGIBLE_TOKEN, amount_raw=amount,
                    mint=info.get("mint"),
                ))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Skipping malformed %s instruction in %s: %s", program, signature, e)
    return events


class ChainQueryClient:
    """Read balances and recent transfer history through a ChainRpc."""

    def __init__(self, rpc: ChainRpc, *, batch_size: int = 10, batch_delay: float = 0.2,
                 signature_limit: int = 200):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.rpc = rpc
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.signature_limit = signature_limit

    @classmethod
    def from_settings(cls, settings: Settings, rpc: Optional[ChainRpc] = None) -> "ChainQueryClient":
        return cls(rpc or SolanaRpcClient.from_settings(settings),
                   batch_size=settings.batch_size, batch_delay=settings.batch_delay,
                   signature_limit=settings.signature_scan_limit)

    # ─── Balances ──────────────────────────────────────────────────

    async def get_balance_snapshot(self, wallet: str, mint: str) -> BalanceSnapshot:
        try:
            ata = associated_token_address(wallet, mint)
        except ValueError as e:
            logger.warning("Balance lookup skipped: %s", e)
            return BalanceSnapshot.empty(wallet, mint)

        try:
            value = await self.rpc.get_token_account_balance(ata)
            raw = int(value.get("amount", 0))
            decimals = int(value.get("decimals", 0))
        except ChainQueryFailure as e:
            logger.warning("Failed to get SPL balance for %s/%s: %s", wallet, mint, e)
            return BalanceSnapshot.empty(wallet, mint)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Malformed balance response for %s/%s: %s", wallet, mint, e)
            return BalanceSnapshot.empty(wallet, mint)

        return BalanceSnapshot(wallet, mint, raw, Decimal(raw).scaleb(-decimals))

    async def get_balance(self, wallet: str, mint: str) -> int:
        """Raw token balance of ``wallet`` for ``mint``; 0 on any failure."""
        snapshot = await self.get_balance_snapshot(wallet, mint)
        return snapshot.raw_amount

    async def has_token_balance(self, wallet: str, mint: str, min_amount: str) -> bool:
        """True iff the raw balance is at least ``min_amount``.

        A threshold of "0" is always met; an RPC failure reads as zero balance.
        """
        required = parse_amount(min_amount, "min_amount")
        if required == 0:
            return True
        return await self.get_balance(wallet, mint) >= required

    async def get_sol_balance(self, wallet: str) -> int:
        if parse_pubkey(wallet) is None:
            return 0
        try:
            return await self.rpc.get_balance(wallet)
        except ChainQueryFailure as e:
            logger.warning("Failed to get SOL balance for %s: %s", wallet, e)
            return 0

    async def get_mint_info(self, mint: str) -> Optional[MintInfo]:
        """Mint and freeze authorities of ``mint``; None when unavailable."""
        if parse_pubkey(mint) is None:
            return None
        try:
            account = await self.rpc.get_account_info(mint)
        except ChainQueryFailure as e:
            logger.warning("Failed to fetch mint info for %s: %s", mint, e)
            return None
        try:
            info = account["data"]["parsed"]["info"]
            return MintInfo(
                mint=mint,
                mint_authority=info.get("mintAuthority"),
                freeze_authority=info.get("freezeAuthority"),
                supply=int(info.get("supply", 0)),
                decimals=int(info.get("decimals", 0)),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Account %s is not a parsed SPL mint", mint)
            return None

    # ─── Transaction history ───────────────────────────────────────

    async def _fetch_transaction(self, signature: str) -> Optional[dict]:
        try:
            return await self.rpc.get_parsed_transaction(signature)
        except ChainQueryFailure as e:
            logger.debug("Skipping transaction %s: %s", signature, e)
            return None

    async def fetch_transactions(self, address: str, limit: Optional[int] = None,
                                 before: Optional[str] = None) -> list[tuple[str, Optional[dict]]]:
        """Most-recent-first ``(signature, parsed_tx)`` pairs for ``address``.

        Raises ChainQueryFailure only if the signature listing itself fails;
        individual transaction failures come back as ``None``.
        """
        limit = limit or self.signature_limit
        infos = await self.rpc.get_signatures_for_address(address, limit=limit, before=before)
        signatures = [i["signature"] for i in infos
                      if isinstance(i, dict) and i.get("signature") and not i.get("err")]

        results: list[tuple[str, Optional[dict]]] = []
        for start in range(0, len(signatures), self.batch_size):
            if start and self.batch_delay:
                await asyncio.sleep(self.batch_delay)
            batch = signatures[start:start + self.batch_size]
            txs = await asyncio.gather(*(self._fetch_transaction(s) for s in batch))
            results.extend(zip(batch, txs))
        return results

    async def transfer_events(self, address: str, limit: Optional[int] = None,
                              before: Optional[str] = None) -> list[TransferEvent]:
        """Transfer events from the bounded recent-history window of ``address``."""
        events: list[TransferEvent] = []
        for signature, tx in await self.fetch_transactions(address, limit, before):
            events.extend(parse_transfer_events(tx, signature))
        return events

    async def scan_deposits(self, address: str, before: Optional[str] = None,
                            limit: int = 100) -> list[TransferEvent]:
        """Native inbound transfers to ``address`` (founding-wallet refresh)."""
        if parse_pubkey(address) is None:
            return []
        try:
            events = await self.transfer_events(address, limit=limit, before=before)
        except ChainQueryFailure as e:
            logger.warning("Error scanning wallet transactions for %s: %s", address, e)
            return []
        return [e for e in events
                if e.asset_kind is AssetKind.NATIVE and e.dest_wallet == address
                and e.source_wallet != address]

