"""Trust scoring for coins and founding wallets."""

from .checks import FactorResult, contract_age_days
from .engine import (
    COIN_TIER_THRESHOLDS,
    FOUNDING_WALLET_TIER_THRESHOLDS,
    WEIGHTS,
    TokenMetrics,
    TrustScoreResult,
    compute_trust_score,
    tier_emoji,
    tier_for,
)
from .founding_wallet import (
    FoundingWalletScore,
    FoundingWalletState,
    ProposalSummary,
    WalletStatus,
    compute_founding_wallet_score,
)
from .freshness import FRESHNESS_WINDOW, TrustScoreService, is_fresh
from .market_data import DexScreenerClient, MarketSnapshot, collect_token_metrics

__all__ = [
    "COIN_TIER_THRESHOLDS", "FOUNDING_WALLET_TIER_THRESHOLDS", "FRESHNESS_WINDOW", "WEIGHTS",
    "DexScreenerClient", "FactorResult", "FoundingWalletScore", "FoundingWalletState",
    "MarketSnapshot", "ProposalSummary", "TokenMetrics", "TrustScoreResult",
    "TrustScoreService", "WalletStatus", "collect_token_metrics", "compute_founding_wallet_score",
    "compute_trust_score", "contract_age_days", "is_fresh", "tier_emoji", "tier_for",
]
