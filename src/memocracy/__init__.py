"""memocracy — Wallet identity, poll eligibility and trust scoring for token communities."""

from memocracy.auth import AuthService
from memocracy.chain import (
    AssetFilter, AssetKind, BalanceSnapshot, ChainQueryClient, ChainRpc,
    CONTRIBUTION_USD_DIVISOR, ContributionAggregator, MintInfo, SolanaRpcClient,
    TransferEvent, associated_token_address, parse_transfer_events,
)
from memocracy.config import Settings
from memocracy.eligibility import (
    AccessMode, CoinRef, EligibilityDecision, EligibilityEvaluator,
    PollPolicy, ProjectWalletRef,
)
from memocracy.errors import (
    AuthenticationError, ChainQueryFailure, ConfigurationError,
    InvalidNonce, InvalidSignature, MemocracyError, ValidationError,
)
from memocracy.nonces import NonceStore
from memocracy.session import SessionContext, SessionManager
from memocracy.signatures import SignatureVerifier
from memocracy.storage import (
    MemoryNonceBackend, MemoryScoreBackend, NonceBackend, ScoreBackend,
    SQLiteNonceBackend, SQLiteScoreBackend,
)
from memocracy.trustscore import (
    COIN_TIER_THRESHOLDS, FOUNDING_WALLET_TIER_THRESHOLDS,
    FoundingWalletScore, FoundingWalletState, TokenMetrics, TrustScoreResult,
    TrustScoreService, compute_founding_wallet_score, compute_trust_score,
    is_fresh, tier_for,
)

__version__ = "0.1.0"
