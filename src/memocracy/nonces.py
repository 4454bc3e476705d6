"""
memocracy.nonces — Single-use challenges bound to a wallet identity.

Lifecycle per nonce: ISSUED → CONSUMED (terminal). Issuing a new nonce for an
identity removes any nonce that identity has not used yet.
"""

import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from .errors import InvalidNonce
from .storage import MemoryNonceBackend, NonceBackend, NonceRecord

logger = logging.getLogger(__name__)

NONCE_BYTES = 32


class NonceStore:
    """Issue and atomically consume challenges on top of a NonceBackend."""

    def __init__(self, backend: Optional[NonceBackend] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.backend = backend or MemoryNonceBackend()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, identity: str) -> str:
        """Invalidate outstanding nonces for ``identity`` and return a fresh one."""
        if not identity:
            raise ValueError("identity is required")
        value = secrets.token_urlsafe(NONCE_BYTES)
        dropped = self.backend.replace_unconsumed(NonceRecord(
            id=uuid.uuid4().hex,
            identity=identity,
            value=value,
            issued_at=self._clock(),
        ))
        if dropped:
            logger.debug("Replaced %d outstanding nonce(s) for %s", dropped, identity)
        return value

    def check(self, identity: str, value: str) -> NonceRecord:
        """Raise InvalidNonce unless ``value`` is an unconsumed nonce of ``identity``.

        Advisory only: a concurrent verifier may still consume it first.
        """
        record = self.backend.get_by_value(value) if value else None
        if record is None or record.consumed or record.identity != identity:
            raise InvalidNonce("nonce missing, consumed, or issued to another identity")
        return record

    def consume(self, identity: str, value: str) -> None:
        """Atomically mark the nonce consumed. Exactly one caller can win."""
        if not value or not self.backend.consume(value, identity, self._clock()):
            raise InvalidNonce("nonce missing, consumed, or issued to another identity")
