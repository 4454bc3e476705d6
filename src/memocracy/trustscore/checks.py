"""Per-factor trust checks for a token.

Each check is a pure function of its inputs and returns a FactorResult whose
``score`` never exceeds ``max_score``. Missing inputs (None) score zero for
their component.

Factor caps:
    maturity               50
    security               25
    liquidity              35
    trading                30
    stability              20
    community_sentiment   100
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

MS_PER_DAY = 24 * 60 * 60 * 1000
MIN_VOTES_FOR_FULL_WEIGHT = 10


@dataclass(frozen=True)
class FactorResult:
    score: int
    max_score: int
    rating: str
    explanation: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "max_score": self.max_score,
            "rating": self.rating,
            "explanation": self.explanation,
            "details": dict(self.details),
        }


def _step(value: float, table: tuple, default: int = 0, above: bool = True) -> int:
    """First points whose bound ``value`` clears (``>`` if above else ``<``)."""
    for bound, points in table:
        if (value > bound) if above else (value < bound):
            return points
    return default


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def contract_age_days(pair_created_at_ms: Optional[int], now_ms: int) -> Optional[int]:
    if not pair_created_at_ms:
        return None
    return max(0, (now_ms - pair_created_at_ms) // MS_PER_DAY)


# ─── Maturity ──────────────────────────────────────────────────────

_MATURITY = (
    (7, 0, "Very New", "Token is less than a week old. High risk period."),
    (30, 10, "New", "Token is less than a month old. Still establishing."),
    (90, 20, "Established", "Token has survived initial launch period."),
    (180, 30, "Mature", "Token has proven track record over 90+ days."),
    (365, 40, "Very Mature", "Token has been active for 6+ months. Strong track record."),
)


def maturity_score(age_days: Optional[int]) -> FactorResult:
    if age_days is None:
        return FactorResult(0, 50, "Unknown", "Contract creation date not available",
                            {"contract_age_days": None})
    for bound, points, rating, explanation in _MATURITY:
        if age_days < bound:
            break
    else:
        points, rating = 50, "Highly Established"
        explanation = "Token has been active for 1+ year. Excellent longevity."
    return FactorResult(points, 50, rating, explanation, {"contract_age_days": age_days})


# ─── Security ──────────────────────────────────────────────────────

def security_score(mint_disabled: Optional[bool], freeze_disabled: Optional[bool]) -> FactorResult:
    """15 points for a disabled mint authority, 10 for a disabled freeze authority."""
    if mint_disabled is None or freeze_disabled is None:
        return FactorResult(0, 25, "Unknown",
                            "Failed to fetch security information from blockchain.",
                            {"mint_disabled": None, "freeze_disabled": None})

    score = (15 if mint_disabled else 0) + (10 if freeze_disabled else 0)
    if score == 25:
        rating, explanation = "Excellent", "Both mint and freeze authorities are disabled. Token is secure."
    elif score >= 15:
        rating, explanation = "Good", "Mint authority disabled, but freeze authority still active."
    elif score >= 10:
        rating, explanation = "Moderate", "Freeze authority disabled, but mint authority still active."
    else:
        rating, explanation = "Poor", "Both authorities are active. High risk of manipulation."
    return FactorResult(score, 25, rating, explanation,
                        {"mint_disabled": mint_disabled, "freeze_disabled": freeze_disabled})


# ─── Liquidity ─────────────────────────────────────────────────────

_LIQUIDITY_USD = ((5_000_000, 15), (1_000_000, 12), (500_000, 9), (100_000, 6),
                  (50_000, 3), (10_000, 1))
_MC_LIQUIDITY_RATIO = ((20, 10), (50, 7), (100, 4), (200, 1))
_VOLUME_MC_PCT = ((30, 5), (20, 4), (10, 3), (5, 1))
_MC_BONUS = ((50_000_000, 5), (10_000_000, 3), (1_000_000, 1))

_LIQUIDITY_RATINGS = (
    (30, "Excellent", "Very high liquidity with excellent ratios. Major coin. Safe for trading."),
    (25, "Very Good", "High liquidity with healthy ratios. Safe for trading."),
    (20, "Good", "Adequate liquidity with acceptable ratios."),
    (15, "Moderate", "Limited liquidity. Be cautious with large trades."),
    (10, "Low", "Low liquidity. High slippage risk."),
)


def liquidity_score(liquidity_usd: Optional[float], market_cap: Optional[float],
                    volume_24h: Optional[float]) -> FactorResult:
    mc_liquidity_ratio = market_cap / liquidity_usd if market_cap and liquidity_usd else None
    volume_mc_pct = volume_24h / market_cap * 100 if market_cap and volume_24h else None

    score = 0
    if liquidity_usd:
        score += _step(liquidity_usd, _LIQUIDITY_USD)
    if mc_liquidity_ratio is not None:
        score += _step(mc_liquidity_ratio, _MC_LIQUIDITY_RATIO, above=False)
    if volume_mc_pct is not None:
        score += _step(volume_mc_pct, _VOLUME_MC_PCT)
    if market_cap:
        score += _step(market_cap, _MC_BONUS)
    score = min(score, 35)

    rating, explanation = "Very Low", "Very low liquidity. Extreme caution advised."
    for floor, r, e in _LIQUIDITY_RATINGS:
        if score >= floor:
            rating, explanation = r, e
            break
    return FactorResult(score, 35, rating, explanation, {
        "liquidity_usd": liquidity_usd or None,
        "mc_liquidity_ratio": mc_liquidity_ratio,
        "volume_mc_ratio": volume_mc_pct,
    })


# ─── Trading ───────────────────────────────────────────────────────

_SELL_PRESSURE = ((0.8, 15), (1.0, 10), (1.2, 5))
_VOLUME_24H = ((5_000_000, 10), (1_000_000, 8), (500_000, 6), (100_000, 4),
               (50_000, 2), (10_000, 1))

_TRADING_RATINGS = (
    (25, "Excellent", "Exceptional trading activity with strong buy pressure. Major coin."),
    (20, "Very Good", "Strong buy pressure with high volume. Bullish signal."),
    (15, "Good", "Healthy trading activity with balanced pressure."),
    (10, "Moderate", "Some trading activity, watch for trends."),
    (5, "Low", "Low trading activity or sell pressure detected."),
)


def trading_score(buys_24h: Optional[int], sells_24h: Optional[int],
                  volume_24h: Optional[float], market_cap: Optional[float]) -> FactorResult:
    """Sell pressure is sells/buys; it is only defined when both counts are non-zero."""
    sell_pressure = sells_24h / buys_24h if buys_24h and sells_24h else None
    volume = volume_24h or 0

    score = 0
    if sell_pressure is not None:
        score += _step(sell_pressure, _SELL_PRESSURE, above=False)
    score += _step(volume, _VOLUME_24H)
    if market_cap:
        if market_cap > 50_000_000 and volume > 1_000_000:
            score += 5
        elif market_cap > 10_000_000 and volume > 500_000:
            score += 3
        elif market_cap > 1_000_000 and volume > 100_000:
            score += 1
    score = min(score, 30)

    rating, explanation = "Very Low", "Very low trading activity. High risk."
    for floor, r, e in _TRADING_RATINGS:
        if score >= floor:
            rating, explanation = r, e
            break
    return FactorResult(score, 30, rating, explanation, {
        "buys_24h": buys_24h or None,
        "sells_24h": sells_24h or None,
        "sell_pressure": sell_pressure,
        "volume_24h": volume_24h,
    })


# ─── Stability ─────────────────────────────────────────────────────

_STABILITY = (
    (5, 20, "Very Stable"),
    (10, 15, "Stable"),
    (25, 10, "Moderate"),
    (50, 5, "Volatile"),
)


def stability_score(price_change_24h: Optional[float]) -> FactorResult:
    change = abs(price_change_24h or 0)
    score, volatility = 0, "Extremely Volatile"
    for bound, points, label in _STABILITY:
        if change < bound:
            score, volatility = points, label
            break

    if score >= 15:
        rating, explanation = "Excellent", "Price is stable. Low volatility indicates healthy price action."
    elif score >= 10:
        rating, explanation = "Good", "Moderate price movement. Normal for active tokens."
    elif score >= 5:
        rating, explanation = "Moderate", "High volatility detected. Price is moving significantly."
    else:
        rating, explanation = "Poor", "Extreme volatility. High speculation or manipulation risk."
    return FactorResult(score, 20, rating, explanation, {
        "price_change_24h": price_change_24h,
        "volatility_rating": volatility,
    })


# ─── Community sentiment ───────────────────────────────────────────

_MC_COMMUNITY_PROXY = (
    (50_000_000, 60, "Large Community (Market Cap)",
     "Major coin with $50M+ market cap indicates large community"),
    (10_000_000, 45, "Significant Community (Market Cap)",
     "Significant coin with $10M+ market cap indicates good community"),
    (1_000_000, 30, "Established Community (Market Cap)",
     "Established coin with $1M+ market cap indicates community presence"),
    (100_000, 15, "Small Community (Market Cap)", "Small coin with $100k+ market cap"),
)


def community_sentiment_score(upvotes: int, downvotes: int,
                              market_cap: Optional[float] = None) -> FactorResult:
    """Approval rate damped below ten votes; market cap stands in when nobody voted."""
    market_cap = market_cap or 0
    total = upvotes + downvotes

    if total == 0:
        score, rating, explanation = 0, "No Data", "No community votes yet"
        for bound, points, r, e in _MC_COMMUNITY_PROXY:
            if market_cap > bound:
                score, rating, explanation = points, r, e
                break
        return FactorResult(score, 100, rating, explanation, {
            "upvotes": 0, "downvotes": 0, "total_votes": 0, "approval_rate": 0.0,
            "market_cap": market_cap,
        })

    approval = upvotes / total
    score = round_half_up(approval * 100 * min(total / MIN_VOTES_FOR_FULL_WEIGHT, 1))
    if total >= 5:
        if market_cap > 10_000_000:
            score += 10
        elif market_cap > 1_000_000:
            score += 5
    score = min(score, 100)

    if approval >= 0.75:
        rating = "Excellent"
    elif approval >= 0.60:
        rating = "Good"
    elif approval >= 0.45:
        rating = "Fair"
    else:
        rating = "Poor"
    explanation = f"{upvotes}/{total} community approval ({round_half_up(approval * 100)}%)"
    return FactorResult(score, 100, rating, explanation, {
        "upvotes": upvotes, "downvotes": downvotes, "total_votes": total,
        "approval_rate": approval, "market_cap": market_cap,
    })
