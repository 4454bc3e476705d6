"""
memocracy.eligibility — Decide whether a wallet may vote in a poll.

Access modes:
    COIN    — wallet must hold at least ``coin_min_hold`` raw units of the coin
    WALLET  — wallet must have contributed at least ``min_contribution_usd`` to
              the project wallet (and hold its parent coin, if it has one);
              the project wallet itself is always eligible

Every applicable check runs so the caller gets every reason at once.
Misconfigured polls and chain failures become reasons, never exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from .chain.contributions import ContributionAggregator, parse_usd
from .chain.models import AssetFilter
from .chain.query import ChainQueryClient, parse_amount
from .errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

OWNER_REASON = "Founding wallet owner - full access granted"
UNKNOWN_FAILURE_REASON = "Cannot read balance / RPC error"


class AccessMode(Enum):
    COIN = "COIN"
    WALLET = "WALLET"


@dataclass(frozen=True)
class CoinRef:
    mint: str
    symbol: str


@dataclass(frozen=True)
class ProjectWalletRef:
    address: str
    label: str
    coin: Optional[CoinRef] = None


@dataclass(frozen=True)
class PollPolicy:
    access_mode: AccessMode
    coin: Optional[CoinRef] = None
    coin_min_hold: str = "1"
    project_wallet: Optional[ProjectWalletRef] = None
    min_contribution_usd: str = "0"
    contribution_filter: AssetFilter = AssetFilter.ANY


@dataclass
class EligibilityDecision:
    eligible: bool
    reasons: list[str] = field(default_factory=list)
    is_privileged_owner: bool = False

    def to_dict(self) -> dict:
        return {
            "eligible": self.eligible,
            "reasons": list(self.reasons),
            "is_privileged_owner": self.is_privileged_owner,
        }


def _fmt(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


class EligibilityEvaluator:
    def __init__(self, chain: ChainQueryClient,
                 contributions: Optional[ContributionAggregator] = None):
        self.chain = chain
        self.contributions = contributions or ContributionAggregator(chain)

    async def evaluate(self, policy: PollPolicy, wallet: str) -> EligibilityDecision:
        if (policy.access_mode is AccessMode.WALLET and policy.project_wallet is not None
                and wallet == policy.project_wallet.address):
            return EligibilityDecision(True, [OWNER_REASON], is_privileged_owner=True)

        reasons: list[str] = []
        eligible = True

        if policy.access_mode is AccessMode.COIN:
            if policy.coin is None:
                reasons.append("Poll configuration error: no coin specified")
                eligible = False
            else:
                eligible &= await self._run(
                    reasons, self._check_balance(wallet, policy.coin, policy.coin_min_hold))

        elif policy.access_mode is AccessMode.WALLET:
            if policy.project_wallet is None:
                reasons.append("Poll configuration error: no project wallet specified")
                eligible = False
            else:
                eligible &= await self._run(reasons, self._check_contribution(wallet, policy))
                if policy.project_wallet.coin is not None:
                    eligible &= await self._run(reasons, self._check_balance(
                        wallet, policy.project_wallet.coin, policy.coin_min_hold))

        if not eligible and not reasons:
            reasons.append(UNKNOWN_FAILURE_REASON)

        logger.info("Eligibility for %s: %s", wallet, eligible,
                    extra={"event": "eligibility", "mode": policy.access_mode.value})
        return EligibilityDecision(eligible, reasons)

    # ─── Checks ────────────────────────────────────────────────────
    # Each returns a failure reason, or None when the check passes.

    @staticmethod
    async def _run(reasons: list[str], check) -> bool:
        try:
            reason = await check
        except ConfigurationError as e:
            reason = str(e)
        if reason:
            reasons.append(reason)
            return False
        return True

    async def _check_balance(self, wallet: str, coin: CoinRef, min_hold: str) -> Optional[str]:
        min_hold = min_hold or "1"
        try:
            required = parse_amount(min_hold, "coin_min_hold")
        except ValidationError as e:
            raise ConfigurationError(f"Poll configuration error: {e}") from None
        if required == 0:
            return None

        balance = await self.chain.get_balance(wallet, coin.mint)
        if balance >= required:
            return None
        return f"Not enough {coin.symbol} balance (need ≥ {min_hold}, have {balance})"

    async def _check_contribution(self, wallet: str, policy: PollPolicy) -> Optional[str]:
        project = policy.project_wallet
        min_usd = policy.min_contribution_usd or "0"
        try:
            required = parse_usd(min_usd, "min_contribution_usd")
        except ValidationError as e:
            raise ConfigurationError(f"Poll configuration error: {e}") from None
        if required == 0:
            return None

        actual = await self.contributions.contribution_usd(
            wallet, project.address, policy.contribution_filter)
        if actual >= required:
            return None
        return (f"No sufficient contribution found to {project.label} "
                f"(need ≥ ${min_usd} USD, have ${_fmt(actual)} USD)")
