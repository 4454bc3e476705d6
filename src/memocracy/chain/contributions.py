"""Best-effort contribution totals from recent wallet history.

Limitations, kept on purpose for compatibility with existing polls:

* only the most recent ``signature_limit`` transactions of the *source*
  wallet are scanned; older contributions are not seen;
* token transfers are credited when the source wallet signed them, without
  checking the destination token account's owner or mint;
* raw amounts are turned into USD with a single fixed divisor, regardless
  of asset or price at transfer time.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from ..errors import ChainQueryFailure, ValidationError
from .models import AssetFilter, AssetKind, TransferEvent
from .query import ChainQueryClient, parse_pubkey

logger = logging.getLogger(__name__)

CONTRIBUTION_USD_DIVISOR = 1_000_000


def parse_usd(value: str, field: str = "min_usd") -> Decimal:
    """Parse a non-negative decimal USD amount given as a string."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}") from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field} must be a non-negative number, got {value!r}")
    return amount


def raw_to_usd(raw_total: int) -> Decimal:
    return Decimal(raw_total) / CONTRIBUTION_USD_DIVISOR


def counts_toward(event: TransferEvent, source: str, dest: str,
                  asset_filter: AssetFilter) -> bool:
    """Whether ``event`` is credited as a ``source`` -> ``dest`` contribution."""
    if not asset_filter.accepts(event.asset_kind):
        return False
    if event.asset_kind is AssetKind.NATIVE:
        return event.source_wallet == source and event.dest_wallet == dest
    return event.source_wallet == source


class ContributionAggregator:
    """Sum what a wallet has sent to a project wallet."""

    def __init__(self, chain: ChainQueryClient):
        self.chain = chain

    async def sum_transfers_to(self, source: str, dest: str,
                               asset_filter: AssetFilter = AssetFilter.ANY) -> int:
        """Raw total transferred from ``source`` to ``dest``. 0 on any failure."""
        if parse_pubkey(source) is None or parse_pubkey(dest) is None:
            logger.warning("Contribution lookup skipped: invalid address %r -> %r", source, dest)
            return 0
        try:
            events = await self.chain.transfer_events(source)
        except ChainQueryFailure as e:
            logger.warning("Failed to sum transfers %s -> %s: %s", source, dest, e)
            return 0
        return sum(e.amount_raw for e in events if counts_toward(e, source, dest, asset_filter))

    async def contribution_usd(self, source: str, dest: str,
                               asset_filter: AssetFilter = AssetFilter.ANY) -> Decimal:
        return raw_to_usd(await self.sum_transfers_to(source, dest, asset_filter))

    async def has_sufficient_contribution(self, source: str, dest: str, min_usd: str,
                                          asset_filter: AssetFilter = AssetFilter.ANY) -> bool:
        required = parse_usd(min_usd)
        if required == 0:
            return True
        return await self.contribution_usd(source, dest, asset_filter) >= required
