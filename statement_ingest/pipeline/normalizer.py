"""
Transaction normalization: ParsedTransaction -> NormalizedTransaction.

Cleaning order matters. Asterisks go first, so masked card numbers like
1234****5678 reach merchant extraction as a plain digit run and are dropped
by the pure-digit token filter.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from statement_ingest.models.enums import TransactionKind
from statement_ingest.schemas.records import NormalizedTransaction, ParsedTransaction


CENTS = Decimal("0.01")

ASTERISKS = re.compile(r"\*+")
WHITESPACE = re.compile(r"\s+")
LEADING_DIGITS = re.compile(r"^\d+\s*")

TYPE_KEYWORDS = re.compile(
    r"\b(?:DEBIT|CREDIT|PURCHASE|PAYMENT|TRANSFER|DEPOSIT|WITHDRAWAL)\b"
)
MASKED_CARD = re.compile(
    r"(?<!\S)(?:\d{4}\*+\d{4}|[X*#]{2,}\d{2,4}|\d{2,4}[X*#]{2,}\d{0,4})(?!\S)"
)
SHORT_DATE = re.compile(r"\b\d{2}/\d{2}\b")
STOP_WORDS = {"THE", "AND", "OF", "FOR", "TO", "FROM"}
MERCHANT_TOKENS = 3


def clean_description(raw: str) -> str:
    s = ASTERISKS.sub("", raw or "")
    s = WHITESPACE.sub(" ", s).strip()
    s = LEADING_DIGITS.sub("", s).strip()
    return s.upper()


def extract_merchant_name(cleaned: str) -> Optional[str]:
    """
    Best-effort merchant guess from a cleaned description:
    the first few meaningful tokens once type keywords, masked card numbers
    and dd/dd dates are removed.
    """
    s = TYPE_KEYWORDS.sub(" ", cleaned.upper())
    s = MASKED_CARD.sub(" ", s)
    s = SHORT_DATE.sub(" ", s)

    tokens = [
        token for token in s.split()
        if len(token) > 2 and not token.isdigit() and token not in STOP_WORDS
    ]
    if not tokens:
        return None
    return " ".join(tokens[:MERCHANT_TOKENS])


def kind_for_amount(amount: Decimal) -> TransactionKind:
    return TransactionKind.CREDIT if amount >= 0 else TransactionKind.DEBIT


def normalize(
    parsed: ParsedTransaction,
    owner_id: str,
    account_id: str,
    upload_batch_id: str,
) -> NormalizedTransaction:
    amount = Decimal(parsed.amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    cleaned = clean_description(parsed.description)

    return NormalizedTransaction(
        owner_id=owner_id,
        date=parsed.date,
        amount=amount,
        kind=kind_for_amount(amount),
        description_raw=parsed.description,
        description_cleaned=cleaned,
        merchant_name_guess=extract_merchant_name(cleaned),
        account_id=account_id,
        upload_batch_id=upload_batch_id,
        parser_confidence=parsed.confidence,
        source_format=parsed.source_format,
        external_id=getattr(parsed, "external_id", None),
        raw_payload=parsed.raw_payload,
    )
