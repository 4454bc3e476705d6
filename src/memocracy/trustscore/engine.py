"""Coin trust score: six factor checks combined by a fixed weight vector.

Signal weights:
    maturity              15%
    security              20%
    liquidity             25%
    trading               20%
    stability              5%
    community_sentiment   15%

Each factor is normalized to 0-100 (score / max_score) before weighting, so
the overall score spans the full 0-100 range and every tier is reachable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional

from .checks import (
    FactorResult,
    community_sentiment_score,
    liquidity_score,
    maturity_score,
    round_half_up,
    security_score,
    stability_score,
    trading_score,
)

WEIGHTS = {
    "maturity": 0.15,
    "security": 0.20,
    "liquidity": 0.25,
    "trading": 0.20,
    "stability": 0.05,
    "community_sentiment": 0.15,
}

# Two distinct tables; founding wallets are held to a stricter lower bar.
COIN_TIER_THRESHOLDS = ((80, "DIAMOND"), (65, "GOLD"), (45, "SILVER"), (25, "BRONZE"))
FOUNDING_WALLET_TIER_THRESHOLDS = ((80, "DIAMOND"), (65, "GOLD"), (50, "SILVER"), (30, "BRONZE"))
UNRATED = "UNRATED"

TIER_EMOJI = {
    "DIAMOND": "💎",
    "GOLD": "🥇",
    "SILVER": "🥈",
    "BRONZE": "🥉",
}


def tier_for(score: int, thresholds=COIN_TIER_THRESHOLDS) -> str:
    for floor, tier in thresholds:
        if score >= floor:
            return tier
    return UNRATED


def tier_emoji(tier: str) -> str:
    return TIER_EMOJI.get(tier, "❓")


@dataclass(frozen=True)
class TokenMetrics:
    """Everything the coin score depends on. None means "not available"."""
    mint: str
    contract_age_days: Optional[int] = None
    mint_disabled: Optional[bool] = None
    freeze_disabled: Optional[bool] = None
    liquidity_usd: Optional[float] = None
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    buys_24h: Optional[int] = None
    sells_24h: Optional[int] = None
    price_change_24h: Optional[float] = None
    upvotes: int = 0
    downvotes: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TrustScoreResult:
    mint: str
    overall_score: int
    tier: str
    factors: dict[str, FactorResult] = field(default_factory=dict)
    flags: dict = field(default_factory=dict)
    metrics: dict = field(default_factory=dict)

    @property
    def breakdown(self) -> dict[str, int]:
        return {name: f.score for name, f in self.factors.items()}

    def to_dict(self) -> dict:
        return {
            "mint": self.mint,
            "overall_score": self.overall_score,
            "tier": self.tier,
            "breakdown": self.breakdown,
            "factors": {name: f.to_dict() for name, f in self.factors.items()},
            "flags": dict(self.flags),
            "metrics": dict(self.metrics),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrustScoreResult":
        return cls(
            mint=data["mint"],
            overall_score=data["overall_score"],
            tier=data["tier"],
            factors={name: FactorResult(**f) for name, f in data.get("factors", {}).items()},
            flags=dict(data.get("flags", {})),
            metrics=dict(data.get("metrics", {})),
        )


def score_factors(m: TokenMetrics) -> dict[str, FactorResult]:
    return {
        "maturity": maturity_score(m.contract_age_days),
        "security": security_score(m.mint_disabled, m.freeze_disabled),
        "liquidity": liquidity_score(m.liquidity_usd, m.market_cap, m.volume_24h),
        "trading": trading_score(m.buys_24h, m.sells_24h, m.volume_24h, m.market_cap),
        "stability": stability_score(m.price_change_24h),
        "community_sentiment": community_sentiment_score(m.upvotes, m.downvotes, m.market_cap),
    }


def weighted_overall(factors: dict[str, FactorResult]) -> int:
    total = 0.0
    for name, weight in WEIGHTS.items():
        f = factors[name]
        total += weight * (100 * f.score / f.max_score)
    return max(0, min(100, round_half_up(total)))


def compute_trust_score(metrics: TokenMetrics) -> TrustScoreResult:
    """Score ``metrics``. Pure: identical metrics give an identical result."""
    factors = score_factors(metrics)
    overall = weighted_overall(factors)
    trading = factors["trading"].details
    return TrustScoreResult(
        mint=metrics.mint,
        overall_score=overall,
        tier=tier_for(overall, COIN_TIER_THRESHOLDS),
        factors=factors,
        flags={
            "mint_disabled": bool(metrics.mint_disabled),
            "freeze_disabled": bool(metrics.freeze_disabled),
        },
        metrics={
            "contract_age_days": metrics.contract_age_days,
            "liquidity_usd": metrics.liquidity_usd,
            "sell_pressure_24h": trading.get("sell_pressure"),
        },
    )
