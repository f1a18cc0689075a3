"""
Rule-based categorization.

Each active rule is scored against the cleaned description and the merchant
guess:
- +0.3 per keyword found (case-insensitive substring)
- +0.4 per pattern that matches (case-insensitive regex search)
- +0.5 per merchant rule found (case-insensitive substring)
The score is capped at 1.0 and must be strictly above the floor to count.
Scores use Decimal so that boundary sums (0.3 + 0.4) compare exactly.
"""

import re
from decimal import Decimal
from typing import Optional

import structlog

from statement_ingest.config import settings
from statement_ingest.schemas.records import CategoryMatch, CategoryRule, NormalizedTransaction
from statement_ingest.store.base import CategoryRuleRepository

logger = structlog.get_logger(__name__)

KEYWORD_WEIGHT = Decimal("0.3")
PATTERN_WEIGHT = Decimal("0.4")
MERCHANT_WEIGHT = Decimal("0.5")
MAX_SCORE = Decimal("1.0")


def confidence_floor() -> Decimal:
    return Decimal(settings.CATEGORY_CONFIDENCE_FLOOR)


def is_confident(score: Decimal, floor: Optional[Decimal] = None) -> bool:
    return score > (floor if floor is not None else confidence_floor())


def score_rule(transaction: NormalizedTransaction, rule: CategoryRule) -> Decimal:
    description = (transaction.description_cleaned or "").lower()
    merchant = (transaction.merchant_name_guess or "").lower()
    score = Decimal("0")

    for keyword in rule.keywords:
        needle = keyword.lower()
        if needle and (needle in description or needle in merchant):
            score += KEYWORD_WEIGHT

    for pattern in rule.patterns:
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error:
            logger.debug("category_pattern_invalid", category_id=rule.id, pattern=pattern)
            continue
        if regex.search(description) or regex.search(merchant):
            score += PATTERN_WEIGHT

    for merchant_rule in rule.merchant_rules:
        needle = merchant_rule.lower()
        if needle and (needle in merchant or needle in description):
            score += MERCHANT_WEIGHT

    return min(score, MAX_SCORE)


def categorize(
    transaction: NormalizedTransaction,
    rules: list[CategoryRule],
    floor: Optional[Decimal] = None,
) -> Optional[CategoryMatch]:
    """Best rule above the floor. Ties go to the earlier rule."""
    best_rule: Optional[CategoryRule] = None
    best_score = Decimal("0")

    for rule in rules:
        if not rule.is_active:
            continue
        score = score_rule(transaction, rule)
        if score > best_score:
            best_rule, best_score = rule, score

    if best_rule is None or not is_confident(best_score, floor):
        return None

    return CategoryMatch(
        category_id=best_rule.id,
        category_name=best_rule.name,
        confidence=float(best_score),
    )


class Categorizer:
    """Loads each owner's rules once and categorizes against them."""

    def __init__(self, rules: CategoryRuleRepository, floor: Optional[Decimal] = None):
        self.rules = rules
        self.floor = floor
        self._cache: dict[str, list[CategoryRule]] = {}

    async def rules_for(self, owner_id: str) -> list[CategoryRule]:
        if owner_id not in self._cache:
            loaded = await self.rules.list_category_rules(owner_id)
            self._cache[owner_id] = [r for r in loaded if r.is_active]
            logger.debug("category_rules_loaded", owner_id=owner_id, count=len(self._cache[owner_id]))
        return self._cache[owner_id]

    async def categorize(self, transaction: NormalizedTransaction) -> Optional[CategoryMatch]:
        rules = await self.rules_for(transaction.owner_id)
        return categorize(transaction, rules, self.floor)
