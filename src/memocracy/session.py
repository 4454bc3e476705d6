"""Request-scoped wallet sessions carried in a signed token.

There is no process-wide "current wallet": protected operations receive a
SessionContext explicitly, recovered from the token the transport layer keeps
in its cookie.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from .config import MIN_SESSION_SECRET_LENGTH
from .errors import ValidationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "session"
SESSION_COOKIE = "sv_session"


@dataclass(frozen=True)
class SessionContext:
    wallet: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


class SessionManager:
    """Issue and read HS256-signed session tokens."""

    def __init__(self, secret: str, max_age: int = 60 * 60 * 24 * 7,
                 clock: Optional[Callable[[], datetime]] = None):
        if not secret or len(secret) < MIN_SESSION_SECRET_LENGTH:
            raise ValidationError(
                f"session secret must be at least {MIN_SESSION_SECRET_LENGTH} characters"
            )
        self._secret = secret
        self.max_age = max_age
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, wallet: str) -> tuple[SessionContext, str]:
        now = self._clock().replace(microsecond=0)
        ctx = SessionContext(wallet=wallet, issued_at=now,
                             expires_at=now + timedelta(seconds=self.max_age))
        token = jwt.encode(
            {
                "wallet": wallet,
                "type": TOKEN_TYPE,
                "iat": int(ctx.issued_at.timestamp()),
                "exp": int(ctx.expires_at.timestamp()),
            },
            self._secret,
            algorithm=ALGORITHM,
        )
        return ctx, token

    def read(self, token: Optional[str]) -> Optional[SessionContext]:
        """Decode a token; expired, tampered or foreign tokens yield None."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "iat"]},
            )
        except jwt.InvalidTokenError as e:
            logger.warning("Rejected session token: %s", e)
            return None

        if payload.get("type") != TOKEN_TYPE or not payload.get("wallet"):
            return None

        ctx = SessionContext(
            wallet=payload["wallet"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
        if ctx.is_expired(self._clock()):
            return None
        return ctx
