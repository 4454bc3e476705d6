"""
memocracy.messages — Canonical signing-message templates.

The server rebuilds these byte-for-byte and verifies the wallet's signature
over them, so any field embedded in a message must be canonicalized the same
way on both sides (trimmed, fixed separators, percent-encoded username).
"""

from urllib.parse import quote

from .errors import ValidationError

VOTE_LOGIN_MESSAGE_PREFIX = "SOLANA_VOTE_LOGIN"
LEADERBOARD_MESSAGE_PREFIX = "MEMOCRACY_LEADERBOARD"
VOTE_DIRECTIONS = ("UP", "DOWN")

# Characters JavaScript's encodeURIComponent leaves unescaped (besides alnum).
_URI_COMPONENT_SAFE = "-_.!~*'()"


def percent_encode(value: str) -> str:
    """Percent-encode exactly like JavaScript ``encodeURIComponent``."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def normalize_leaderboard_username(username: str) -> str:
    """Trim a leaderboard username; an empty result is rejected."""
    normalized = (username or "").strip()
    if not normalized:
        raise ValidationError("Username is required")
    return normalized


def vote_login_message(nonce: str) -> str:
    return f"{VOTE_LOGIN_MESSAGE_PREFIX}:{nonce}"


def leaderboard_message(score: int, nonce: str, username: str) -> str:
    """Leaderboard submission message; ``username`` is trimmed and percent-encoded."""
    encoded = percent_encode(normalize_leaderboard_username(username))
    return f"{LEADERBOARD_MESSAGE_PREFIX}:{score}:{nonce}:{encoded}"


def coin_vote_message(direction: str, coin_mint: str, nonce: str) -> str:
    if direction not in VOTE_DIRECTIONS:
        raise ValidationError("Vote must be UP or DOWN")
    return f"Vote {direction} for coin {coin_mint}\nNonce: {nonce}"
