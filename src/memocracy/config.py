"""Runtime configuration read from the environment.

Environment:
    SOLANA_RPC_URL        — JSON-RPC endpoint (default public mainnet)
    RPC_TIMEOUT           — per-request timeout in seconds (default 15)
    RPC_MAX_RETRIES       — retries on 429/5xx/transport errors (default 2)
    RPC_RETRY_DELAY       — base backoff in seconds (default 0.5)
    RPC_BATCH_SIZE        — max concurrent transaction fetches (default 10)
    RPC_BATCH_DELAY       — pause between fetch batches in seconds (default 0.2)
    SIGNATURE_SCAN_LIMIT  — transaction-history window (default 200)
    SESSION_SECRET        — HS256 key for session tokens (>= 32 chars)
    SESSION_MAX_AGE       — session lifetime in seconds (default 7 days)
    DEXSCREENER_API_URL   — market data endpoint
    LOG_LEVEL             — logging level (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ValidationError

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_DEXSCREENER_URL = "https://api.dexscreener.com/latest/dex/tokens"
MIN_SESSION_SECRET_LENGTH = 32


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    rpc_timeout: float = 15.0
    rpc_max_retries: int = 2
    rpc_retry_delay: float = 0.5
    batch_size: int = 10
    batch_delay: float = 0.2
    signature_scan_limit: int = 200
    session_secret: Optional[str] = None
    session_max_age: int = 60 * 60 * 24 * 7
    dexscreener_url: str = DEFAULT_DEXSCREENER_URL
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``os.environ`` (or an explicit mapping)."""
        env = os.environ if env is None else env

        secret = env.get("SESSION_SECRET") or None
        if secret is not None and len(secret) < MIN_SESSION_SECRET_LENGTH:
            raise ValidationError(
                f"SESSION_SECRET must be at least {MIN_SESSION_SECRET_LENGTH} characters"
            )

        return cls(
            rpc_url=env.get("SOLANA_RPC_URL") or DEFAULT_RPC_URL,
            rpc_timeout=_float(env, "RPC_TIMEOUT", 15.0),
            rpc_max_retries=_int(env, "RPC_MAX_RETRIES", 2),
            rpc_retry_delay=_float(env, "RPC_RETRY_DELAY", 0.5),
            batch_size=_int(env, "RPC_BATCH_SIZE", 10, minimum=1),
            batch_delay=_float(env, "RPC_BATCH_DELAY", 0.2),
            signature_scan_limit=_int(env, "SIGNATURE_SCAN_LIMIT", 200, minimum=1),
            session_secret=secret,
            session_max_age=_int(env, "SESSION_MAX_AGE", 60 * 60 * 24 * 7, minimum=1),
            dexscreener_url=env.get("DEXSCREENER_API_URL") or DEFAULT_DEXSCREENER_URL,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
