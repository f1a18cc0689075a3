"""
Duplicate detection against stored history.

A candidate is a duplicate of a stored transaction for the same owner when
the dates are within the window, the amounts differ by less than the
tolerance, and the raw descriptions are more than threshold-similar by
normalized Levenshtein distance.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Optional

import structlog
from rapidfuzz.distance import Levenshtein

from statement_ingest.config import settings
from statement_ingest.errors import DuplicateCheckFailure
from statement_ingest.observability.metrics import duplicate_check_failures_total
from statement_ingest.schemas.records import NormalizedTransaction
from statement_ingest.store.base import TransactionHistoryRepository

logger = structlog.get_logger(__name__)


def similarity(a: str, b: str) -> float:
    """1 - levenshtein(a, b) / max(len(a), len(b)); two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


class DuplicateDetector:

    def __init__(
        self,
        history: TransactionHistoryRepository,
        window_days: Optional[int] = None,
        amount_tolerance: Optional[Decimal] = None,
        similarity_threshold: Optional[float] = None,
        history_limit: Optional[int] = None,
    ):
        self.history = history
        self.window = timedelta(days=window_days if window_days is not None else settings.DEDUP_WINDOW_DAYS)
        self.amount_tolerance = (
            amount_tolerance if amount_tolerance is not None
            else Decimal(settings.DEDUP_AMOUNT_TOLERANCE)
        )
        self.similarity_threshold = (
            similarity_threshold if similarity_threshold is not None
            else settings.DEDUP_SIMILARITY_THRESHOLD
        )
        self.history_limit = history_limit if history_limit is not None else settings.DEDUP_HISTORY_LIMIT

    def matches(self, candidate: NormalizedTransaction, stored: NormalizedTransaction) -> bool:
        if abs(candidate.date - stored.date) > self.window:
            return False
        if abs(candidate.amount - stored.amount) >= self.amount_tolerance:
            return False
        return similarity(candidate.description_raw, stored.description_raw) > self.similarity_threshold

    async def find_duplicate(self, candidate: NormalizedTransaction) -> Optional[NormalizedTransaction]:
        """
        Stored transaction the candidate duplicates, or None.
        A failed history lookup is logged and treated as no duplicate.
        """
        try:
            history = await self.history.list_transactions(
                candidate.owner_id,
                candidate.date - self.window,
                candidate.date + self.window,
                limit=self.history_limit,
            )
        except Exception as e:
            failure = DuplicateCheckFailure(f"History lookup failed: {e}")
            duplicate_check_failures_total.inc()
            logger.warning(
                "duplicate_check_failed",
                owner_id=candidate.owner_id,
                description=candidate.description_raw,
                error_code=failure.error_code,
                error=str(e),
            )
            return None

        for stored in history:
            if self.matches(candidate, stored):
                return stored
        return None

    async def is_duplicate(self, candidate: NormalizedTransaction) -> bool:
        return await self.find_duplicate(candidate) is not None
