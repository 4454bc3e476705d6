"""Reputation score for a fundraising ("founding") wallet.

Signal weights:
    transparency   35%  — proposals, comments, transactions, description, goal
    execution      35%  — funding status, executed proposals, goal progress
    community      30%  — contributors, proposal votes, comment ratings

Each sub-score is capped at 100. Tiers use FOUNDING_WALLET_TIER_THRESHOLDS,
which differ from the coin thresholds.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

from .checks import round_half_up
from .engine import FOUNDING_WALLET_TIER_THRESHOLDS, tier_for

WEIGHTS = {
    "transparency": 0.35,
    "execution": 0.35,
    "community": 0.30,
}

MIN_DESCRIPTION_LENGTH = 50


class WalletStatus(Enum):
    ACTIVE = "ACTIVE"
    FUNDED = "FUNDED"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class ProposalSummary:
    status: str
    vote_count: int = 0

    @property
    def executed(self) -> bool:
        return self.status == "EXECUTED"


@dataclass(frozen=True)
class FoundingWalletState:
    """Current persisted state of a founding wallet.

    ``comment_ratings`` holds one entry per visible comment (None if the
    comment carries no rating).
    """
    wallet_id: str
    status: WalletStatus = WalletStatus.ACTIVE
    description: str = ""
    funding_goal_usd: Optional[float] = None
    funding_goal_lamports: Optional[int] = None
    current_balance_usd: float = 0.0
    contributor_count: int = 0
    transaction_count: int = 0
    proposals: tuple[ProposalSummary, ...] = ()
    comment_ratings: tuple[Optional[int], ...] = ()


@dataclass
class FoundingWalletScore:
    wallet_id: str
    overall_score: int
    tier: str
    transparency_score: int
    execution_score: int
    community_score: int
    total_contributors: int
    total_contributions_usd: float
    completion_rate: Optional[float]
    average_rating: Optional[float]
    components: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


# ─── Sub-scores ────────────────────────────────────────────────────

def transparency_score(state: FoundingWalletState) -> float:
    score = 0.0
    score += min(len(state.proposals) * 10, 30)
    score += min(len(state.comment_ratings) * 2, 20)
    score += min(state.transaction_count, 20)
    if len(state.description or "") > MIN_DESCRIPTION_LENGTH:
        score += 20
    if state.funding_goal_usd or state.funding_goal_lamports:
        score += 10
    return min(score, 100.0)


def execution_score(state: FoundingWalletState) -> float:
    score = 50.0
    if state.status is WalletStatus.COMPLETED:
        score += 30
    elif state.status is WalletStatus.FUNDED:
        score += 20

    if state.proposals:
        executed = sum(1 for p in state.proposals if p.executed)
        score += executed / len(state.proposals) * 20

    if state.funding_goal_usd and state.funding_goal_usd > 0:
        progress = state.current_balance_usd / state.funding_goal_usd
        if progress >= 1.0:
            score += 20
        elif progress >= 0.5:
            score += 10
    return min(score, 100.0)


def average_rating(state: FoundingWalletState) -> Optional[float]:
    if not state.comment_ratings:
        return None
    return sum(r or 0 for r in state.comment_ratings) / len(state.comment_ratings)


def community_score(state: FoundingWalletState) -> float:
    score = 0.0
    score += min(state.contributor_count * 5, 40)
    score += min(sum(p.vote_count for p in state.proposals) * 2, 30)
    rating = average_rating(state)
    if rating:
        score += rating / 5 * 30
    return min(score, 100.0)


def compute_founding_wallet_score(state: FoundingWalletState) -> FoundingWalletScore:
    """Score ``state``. Pure: the same state always yields the same score."""
    components = {
        "transparency": transparency_score(state),
        "execution": execution_score(state),
        "community": community_score(state),
    }
    overall = round_half_up(sum(WEIGHTS[k] * v for k, v in components.items()))
    rating = average_rating(state)
    finished = state.status in (WalletStatus.FUNDED, WalletStatus.COMPLETED)

    return FoundingWalletScore(
        wallet_id=state.wallet_id,
        overall_score=overall,
        tier=tier_for(overall, FOUNDING_WALLET_TIER_THRESHOLDS),
        transparency_score=round_half_up(components["transparency"]),
        execution_score=round_half_up(components["execution"]),
        community_score=round_half_up(components["community"]),
        total_contributors=state.contributor_count,
        total_contributions_usd=state.current_balance_usd,
        completion_rate=1.0 if finished else None,
        average_rating=round_half_up(rating * 10) / 10 if rating else None,
        components=components,
    )
