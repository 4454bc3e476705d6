"""
memocracy.auth — Challenge/signature authentication of wallets.

Flow:
    1. request_challenge(wallet)        → nonce (replaces any outstanding one)
    2. wallet signs the flow's message template over that nonce
    3. verify_challenge(...)            → nonce checked, signature verified,
                                          nonce consumed atomically

Only one of several concurrent verifications of the same nonce can succeed;
the others fail with InvalidNonce. A failed signature check leaves the nonce
unconsumed.
"""

import logging
from typing import Callable, Optional

from .errors import AuthenticationError, InvalidNonce, InvalidSignature
from .messages import (
    coin_vote_message,
    leaderboard_message,
    normalize_leaderboard_username,
    vote_login_message,
)
from .nonces import NonceStore
from .schemas import CoinVoteRequest, LeaderboardSubmission
from .session import SessionContext, SessionManager
from .signatures import SignatureVerifier

logger = logging.getLogger(__name__)

MessageBuilder = Callable[[str], str]


class AuthService:
    """Compose NonceStore + SignatureVerifier (+ optional SessionManager)."""

    def __init__(self, nonces: Optional[NonceStore] = None,
                 verifier: Optional[SignatureVerifier] = None,
                 sessions: Optional[SessionManager] = None):
        self.nonces = nonces or NonceStore()
        self.verifier = verifier or SignatureVerifier()
        self.sessions = sessions

    def request_challenge(self, wallet: str) -> str:
        return self.nonces.issue(wallet)

    def verify_challenge(self, identity: str, nonce: str, signature_b64: str,
                         message_builder: MessageBuilder) -> None:
        """Verify ``signature_b64`` over ``message_builder(nonce)`` and consume the nonce.

        Raises InvalidNonce or InvalidSignature. Both share the same
        ``public_message`` for display.
        """
        try:
            self.nonces.check(identity, nonce)
            message = message_builder(nonce)
            self.verifier.verify_or_raise(message, signature_b64, identity)
            self.nonces.consume(identity, nonce)
        except AuthenticationError as e:
            kind = "nonce" if isinstance(e, InvalidNonce) else "signature"
            logger.warning("Challenge verification failed for %s (%s)", identity, kind,
                           extra={"event": "auth_failure", "kind": kind})
            raise

    # ─── Flows ─────────────────────────────────────────────────────

    def login(self, wallet: str, nonce: str, signature_b64: str,
              on_session: Optional[Callable[[SessionContext, str], None]] = None,
              ) -> SessionContext:
        """Vote/session login. Returns the session context for ``wallet``.

        ``on_session`` receives the context and its signed token so the
        transport layer can set its cookie.
        """
        if self.sessions is None:
            raise RuntimeError("AuthService was created without a SessionManager")
        self.verify_challenge(wallet, nonce, signature_b64, vote_login_message)
        ctx, token = self.sessions.issue(wallet)
        if on_session is not None:
            on_session(ctx, token)
        logger.info("Wallet %s authenticated", wallet)
        return ctx

    def verify_leaderboard_submission(self, submission: LeaderboardSubmission) -> str:
        """Verify a signed leaderboard score. Returns the normalized username."""
        username = normalize_leaderboard_username(submission.username)
        self.verify_challenge(
            submission.wallet, submission.nonce, submission.signature,
            lambda n: leaderboard_message(submission.score, n, username),
        )
        return username

    def verify_coin_vote(self, request: CoinVoteRequest) -> None:
        self.verify_challenge(
            request.wallet, request.nonce, request.signature,
            lambda n: coin_vote_message(request.vote, request.coin_mint, n),
        )


__all__ = ["AuthService", "InvalidNonce", "InvalidSignature", "MessageBuilder"]
