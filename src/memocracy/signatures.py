"""
memocracy.signatures — Ed25519 verification of wallet-signed messages.

Solana wallets sign the raw UTF-8 bytes of the message (no pre-hashing).
Signatures travel base64-encoded; public keys are base58 wallet addresses.
"""

import base64
import binascii
import logging

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from .errors import InvalidSignature

logger = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def decode_public_key(public_key_b58: str) -> bytes:
    """Decode a base58 wallet address into its 32-byte ed25519 public key."""
    try:
        raw = base58.b58decode(public_key_b58)
    except ValueError as e:
        raise ValueError(f"public key is not valid base58: {e}") from None
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(raw)}")
    return raw


def decode_signature(signature_b64: str) -> bytes:
    try:
        raw = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("signature is not valid base64") from None
    if len(raw) != SIGNATURE_LENGTH:
        raise ValueError(f"signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}")
    return raw


class SignatureVerifier:
    """Verify ed25519 signatures against base58 public keys."""

    def verify(self, message: str, signature_b64: str, public_key_b58: str) -> bool:
        """True iff ``signature_b64`` signs exactly ``message`` for ``public_key_b58``.

        Malformed encodings count as a failed verification.
        """
        try:
            key = VerifyKey(decode_public_key(public_key_b58))
            signature = decode_signature(signature_b64)
        except ValueError as e:
            logger.debug("Rejecting malformed signature input: %s", e)
            return False
        try:
            key.verify(message.encode("utf-8"), signature)
        except BadSignatureError:
            return False
        return True

    def verify_or_raise(self, message: str, signature_b64: str, public_key_b58: str) -> None:
        if not self.verify(message, signature_b64, public_key_b58):
            raise InvalidSignature("signature does not match expected message")
