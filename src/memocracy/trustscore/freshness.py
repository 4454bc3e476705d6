"""
memocracy.trustscore.freshness — One-hour freshness policy around the coin score.

A persisted score younger than FRESHNESS_WINDOW is returned exactly as stored.
Otherwise the metrics are reloaded, the score recomputed, and the stored
record replaced as a whole (never merged with the previous one).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from ..storage import MemoryScoreBackend, ScoreBackend, ScoreRecord
from .engine import TokenMetrics, TrustScoreResult, compute_trust_score

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(hours=1)

MetricsLoader = Callable[[str], Awaitable[TokenMetrics]]


def is_fresh(last_checked_at: Optional[datetime], now: datetime,
             window: timedelta = FRESHNESS_WINDOW) -> bool:
    if last_checked_at is None:
        return False
    return now - last_checked_at < window


@dataclass
class CachedScore:
    result: TrustScoreResult
    last_checked_at: datetime
    cached: bool

    def to_dict(self) -> dict:
        data = self.result.to_dict()
        data["last_checked_at"] = self.last_checked_at.isoformat()
        data["cached"] = self.cached
        return data


class TrustScoreService:
    """Serve coin trust scores through a ScoreBackend with freshness checks."""

    def __init__(self, backend: Optional[ScoreBackend] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.backend = backend or MemoryScoreBackend()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_score(self, mint: str, metrics_loader: MetricsLoader,
                        force: bool = False) -> CachedScore:
        now = self._clock()
        record = None if force else self.backend.load(mint)
        if record is not None and is_fresh(record.last_checked_at, now):
            logger.debug("Trust score cache hit for %s", mint)
            return CachedScore(TrustScoreResult.from_dict(record.payload),
                               record.last_checked_at, cached=True)

        metrics = await metrics_loader(mint)
        result = compute_trust_score(metrics)
        self.backend.save(ScoreRecord(mint, result.to_dict(), now))
        logger.info("Trust score for %s recomputed: %d (%s)", mint,
                    result.overall_score, result.tier,
                    extra={"event": "trust_score", "mint": mint})
        return CachedScore(result, now, cached=False)
