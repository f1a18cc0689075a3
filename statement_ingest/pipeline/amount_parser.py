"""
Statement amount parser.

Handles the amount conventions seen in bank exports:
- $1,234.56 / 1,234.56 / 1234.56 / USD 1234.56
- (1,234.56)        -> negative (parentheses)
- 1,234.56 DR       -> negative (DR/CR suffix)
- 1,234.56 CR       -> positive
- -1,234.56         -> negative (leading minus)
- 1,234.56-         -> negative (trailing minus)

Spreadsheet cells may already be numeric; those are taken as-is.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from pydantic import BaseModel


CURRENCY_SYMBOLS = re.compile(r"[$€£¥₹]")
CURRENCY_CODES = re.compile(r"\b(?:USD|EUR|GBP|CAD|AUD)\b", re.IGNORECASE)
DR_CR_SUFFIX = re.compile(r"^(.+?)\s*(DR|CR)$", re.IGNORECASE)
UNICODE_MINUS = chr(8722)

AmountInput = Union[str, int, float, Decimal, None]


class AmountParseResult(BaseModel):
    amount: Optional[Decimal] = None
    raw_text: str
    is_negative: bool = False
    sign_convention: Optional[str] = None  # PARENTHESES, DR_CR, MINUS, NONE, NUMERIC

    @property
    def ok(self) -> bool:
        return self.amount is not None


def _strip_currency(s: str) -> str:
    s = CURRENCY_SYMBOLS.sub("", s)
    s = CURRENCY_CODES.sub("", s)
    return s.strip()


def parse_amount(raw: AmountInput) -> AmountParseResult:
    """
    Parse a signed monetary amount.

    Returns a result with amount=None when the input is blank, textual, or
    not a finite number. Never raises for bad input.
    """
    if raw is None or isinstance(raw, bool):
        return AmountParseResult(raw_text="" if raw is None else str(raw))

    if isinstance(raw, (int, float, Decimal)):
        try:
            amount = Decimal(str(raw))
        except InvalidOperation:
            return AmountParseResult(raw_text=str(raw))
        if not amount.is_finite():
            return AmountParseResult(raw_text=str(raw))
        return AmountParseResult(
            amount=amount,
            raw_text=str(raw),
            is_negative=amount < 0,
            sign_convention="NUMERIC",
        )

    s = _strip_currency(str(raw).strip())
    if not s or s in ("-", "--", "---"):
        return AmountParseResult(raw_text=str(raw))

    is_negative = False
    sign_convention = "NONE"

    # Parentheses: (100.00) -> negative
    if s.startswith("(") and s.endswith(")"):
        s = _strip_currency(s[1:-1])
        is_negative = True
        sign_convention = "PARENTHESES"

    # DR/CR suffix
    m = DR_CR_SUFFIX.match(s)
    if m:
        s = m.group(1).strip()
        is_negative = m.group(2).upper() == "DR"
        sign_convention = "DR_CR"

    # Trailing minus: 100.00-
    if not is_negative and s.endswith("-"):
        s = s[:-1].strip()
        is_negative = True
        sign_convention = "MINUS"

    # Leading minus: -100.00 (currency symbol may sit after the sign)
    if not is_negative and (s.startswith("-") or s.startswith(UNICODE_MINUS)):
        s = _strip_currency(s[1:])
        is_negative = True
        sign_convention = "MINUS"

    # Leading plus is harmless
    if s.startswith("+"):
        s = s[1:].strip()

    s = s.replace(",", "").replace(" ", "")

    try:
        amount = Decimal(s)
    except (InvalidOperation, ValueError):
        return AmountParseResult(raw_text=str(raw))

    if not amount.is_finite():
        return AmountParseResult(raw_text=str(raw))

    if is_negative:
        amount = -abs(amount)

    return AmountParseResult(
        amount=amount,
        raw_text=str(raw),
        is_negative=is_negative,
        sign_convention=sign_convention,
    )


def is_amount_like(text: AmountInput) -> bool:
    """Quick check if a cell looks like it could be a monetary amount."""
    return parse_amount(text).ok
