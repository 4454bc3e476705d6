"""DexScreener market data and assembly of TokenMetrics for the coin score."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from ..chain.query import ChainQueryClient
from ..config import DEFAULT_DEXSCREENER_URL, Settings
from .checks import contract_age_days
from .engine import TokenMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketSnapshot:
    """Figures from a token's most liquid trading pair."""
    mint: str
    name: str
    symbol: str
    price_usd: float
    price_change_24h: float
    volume_24h: float
    liquidity_usd: Optional[float]
    market_cap: Optional[float]
    buys_24h: Optional[int]
    sells_24h: Optional[int]
    pair_created_at: Optional[int]
    pair_address: str = ""


def _float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def best_pair(pairs: list[dict]) -> dict:
    """The pair with the highest USD liquidity (first one wins ties)."""
    best = pairs[0]
    for pair in pairs[1:]:
        if _float((pair.get("liquidity") or {}).get("usd")) > _float((best.get("liquidity") or {}).get("usd")):
            best = pair
    return best


def snapshot_from_pair(mint: str, pair: dict) -> MarketSnapshot:
    base = pair.get("baseToken") or {}
    h24 = (pair.get("txns") or {}).get("h24") or {}
    liquidity = (pair.get("liquidity") or {}).get("usd")
    return MarketSnapshot(
        mint=mint,
        name=base.get("name") or "Unknown Token",
        symbol=base.get("symbol") or "UNK",
        price_usd=_float(pair.get("priceUsd")),
        price_change_24h=_float((pair.get("priceChange") or {}).get("h24")),
        volume_24h=_float((pair.get("volume") or {}).get("h24")),
        liquidity_usd=_float(liquidity) if liquidity is not None else None,
        market_cap=_float(pair["marketCap"]) if pair.get("marketCap") is not None else None,
        buys_24h=h24.get("buys"),
        sells_24h=h24.get("sells"),
        pair_created_at=pair.get("pairCreatedAt"),
        pair_address=pair.get("pairAddress", ""),
    )


class DexScreenerClient:
    def __init__(self, base_url: str = DEFAULT_DEXSCREENER_URL, timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "DexScreenerClient":
        return cls(settings.dexscreener_url)

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url)

    async def get_token_data(self, mint: str) -> Optional[MarketSnapshot]:
        """Market snapshot for ``mint``; None if unknown or unreachable."""
        try:
            resp = await self._get(f"{self.base_url}/{mint}")
        except httpx.HTTPError as e:
            logger.warning("DexScreener fetch failed for %s: %s", mint, e)
            return None
        if resp.status_code != 200:
            logger.warning("DexScreener API %s for %s", resp.status_code, mint)
            return None

        try:
            pairs = resp.json().get("pairs") or []
        except (ValueError, AttributeError):
            logger.warning("DexScreener returned malformed body for %s", mint)
            return None
        if not pairs:
            return None
        return snapshot_from_pair(mint, best_pair(pairs))


async def collect_token_metrics(mint: str, market: Optional[MarketSnapshot],
                                chain: Optional[ChainQueryClient] = None,
                                upvotes: int = 0, downvotes: int = 0,
                                now_ms: Optional[int] = None) -> TokenMetrics:
    """Gather everything compute_trust_score needs for ``mint``."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    mint_info = await chain.get_mint_info(mint) if chain is not None else None

    return TokenMetrics(
        mint=mint,
        contract_age_days=contract_age_days(market.pair_created_at, now_ms) if market else None,
        mint_disabled=mint_info.mint_disabled if mint_info else None,
        freeze_disabled=mint_info.freeze_disabled if mint_info else None,
        liquidity_usd=market.liquidity_usd if market else None,
        market_cap=market.market_cap if market else None,
        volume_24h=market.volume_24h if market else None,
        buys_24h=market.buys_24h if market else None,
        sells_24h=market.sells_24h if market else None,
        price_change_24h=market.price_change_24h if market else None,
        upvotes=upvotes,
        downvotes=downvotes,
    )
