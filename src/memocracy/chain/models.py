"""Value types produced by the chain layer."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class AssetKind(Enum):
    NATIVE = "NATIVE"
    FUNGIBLE_TOKEN = "FUNGIBLE_TOKEN"


class AssetFilter(Enum):
    """Which transfers count toward a contribution."""
    ANY = "ANY"
    SOL = "SOL"
    USDC = "USDC"

    def accepts(self, kind: AssetKind) -> bool:
        if self is AssetFilter.ANY:
            return True
        if self is AssetFilter.SOL:
            return kind is AssetKind.NATIVE
        return kind is AssetKind.FUNGIBLE_TOKEN


@dataclass(frozen=True)
class BalanceSnapshot:
    """Point-in-time token balance. Never cached by the core."""
    wallet_address: str
    mint_address: str
    raw_amount: int
    ui_amount: Decimal

    @classmethod
    def empty(cls, wallet: str, mint: str) -> "BalanceSnapshot":
        return cls(wallet, mint, 0, Decimal(0))


@dataclass(frozen=True)
class TransferEvent:
    """A single transfer instruction lifted out of a parsed transaction.

    For FUNGIBLE_TOKEN events ``source_wallet`` is the signing authority and
    ``dest_wallet`` is the destination *token account*, not its owner.
    """
    signature: str
    slot: Optional[int]
    block_time: Optional[int]
    source_wallet: str
    dest_wallet: str
    asset_kind: AssetKind
    amount_raw: int
    mint: Optional[str] = None


@dataclass(frozen=True)
class MintInfo:
    mint: str
    mint_authority: Optional[str]
    freeze_authority: Optional[str]
    supply: int
    decimals: int

    @property
    def mint_disabled(self) -> bool:
        return self.mint_authority is None

    @property
    def freeze_disabled(self) -> bool:
        return self.freeze_authority is None
