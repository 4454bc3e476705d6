"""On-chain reads: balances, transaction history and contribution totals."""

from .contributions import CONTRIBUTION_USD_DIVISOR, ContributionAggregator
from .models import AssetFilter, AssetKind, BalanceSnapshot, MintInfo, TransferEvent
from .query import ChainQueryClient, associated_token_address, parse_transfer_events
from .rpc import ChainRpc, SolanaRpcClient

__all__ = [
    "AssetFilter", "AssetKind", "BalanceSnapshot", "ChainQueryClient", "ChainRpc",
    "CONTRIBUTION_USD_DIVISOR", "ContributionAggregator", "MintInfo", "SolanaRpcClient",
    "TransferEvent", "associated_token_address", "parse_transfer_events",
]
