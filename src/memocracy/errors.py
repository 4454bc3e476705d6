"""
memocracy.errors — Exception taxonomy shared by every core module.

Authentication failures are distinguishable by type for the caller, but all
of them carry the same ``public_message`` so nothing leaks to the end user
about which check failed.
"""

from __future__ import annotations

from typing import Optional


class MemocracyError(Exception):
    """Base class for all memocracy errors."""


# ─── Authentication ────────────────────────────────────────────────

class AuthenticationError(MemocracyError):
    """A challenge/signature check failed."""

    public_message = "Invalid or expired challenge"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(detail or self.public_message)


class InvalidNonce(AuthenticationError):
    """Nonce missing, already consumed, or issued to another identity."""


class InvalidSignature(AuthenticationError):
    """Ed25519 verification of the expected message failed."""


# ─── Chain ─────────────────────────────────────────────────────────

class ChainQueryFailure(MemocracyError):
    """RPC transport or protocol error.

    Raised only by the transport; the chain layer converts it into a
    conservative zero/None before it reaches eligibility or scoring.
    """

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        self.method = method
        self.code = code
        super().__init__(f"{method}: {message}")


# ─── Configuration / input ─────────────────────────────────────────

class ConfigurationError(MemocracyError):
    """A poll references a coin or wallet that is not configured."""


class ValidationError(MemocracyError, ValueError):
    """Malformed input. The message is safe to show to the caller verbatim."""
