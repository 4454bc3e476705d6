"""
memocracy.logs — Structured JSON logging with request-scoped context.

Every module logs through ``logging.getLogger(__name__)``; this module only
configures the ``memocracy`` parent logger and stamps each record with the
request id and wallet bound for the current request.
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from pythonjsonlogger.json import JsonFormatter

# ─── Context vars for the current request ─────────────────────────

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
wallet_var: ContextVar[str] = ContextVar("wallet", default="")


class RequestContextFilter(logging.Filter):
    def filter(self, record):
        record.request_id = request_id_var.get("")
        record.wallet = wallet_var.get("")
        return True


@contextmanager
def bind_request_context(wallet: str = "", request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id (and optionally a wallet) for log records emitted inside the block."""
    rid = request_id or str(uuid.uuid4())[:8]
    rid_token = request_id_var.set(rid)
    wallet_token = wallet_var.set(wallet)
    try:
        yield rid
    finally:
        wallet_var.reset(wallet_token)
        request_id_var.reset(rid_token)


def setup_structured_logging(level: str = "INFO") -> logging.Logger:
    """Configure JSON structured logging on the ``memocracy`` logger."""
    logger = logging.getLogger("memocracy")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(wallet)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestContextFilter())
        logger.addHandler(handler)

    return logger
