"""
Statement date parser.

Strategy:
1. Native date/datetime cells pass straight through
2. Try unambiguous formats first (ISO, named month)
3. For numeric formats: assume mm/dd (US default), dd/mm when dayfirst
4. Two-digit years pivot at 50
"""

import re
from datetime import date, datetime
from typing import Optional, Union

from dateutil import parser as dateutil_parser
from pydantic import BaseModel


DateInput = Union[str, date, datetime, None]


class DateParseResult(BaseModel):
    parsed_date: Optional[date] = None
    raw_text: str
    format_detected: str
    is_ambiguous: bool = False

    @property
    def ok(self) -> bool:
        return self.parsed_date is not None


MONTHS = r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\w*"

# Ordered by specificity (try most specific first). Patterns are anchored
# at both ends so that trailing garbage fails the whole cell.
DATE_FORMATS = [
    # ISO, optionally with a time part
    (r'(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ][\d:.]+Z?)?', 'YYYY-MM-DD', False),
    (r'(\d{4})/(\d{1,2})/(\d{1,2})', 'YYYY/MM/DD', False),
    (r'(\d{4})(\d{2})(\d{2})', 'YYYYMMDD', False),

    # Named month
    (r'(\d{1,2})(?:st|nd|rd|th)?\s+' + MONTHS + r',?\s+(\d{2,4})', 'DD_MON_YYYY', False),
    (MONTHS + r'\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{2,4})', 'MON_DD_YYYY', False),
    (r'(\d{1,2})-' + MONTHS + r'-(\d{2,4})', 'DD-MON-YYYY', False),

    # Numeric (potentially ambiguous)
    (r'(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})', 'NN/NN/YYYY', True),
    (r'(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2})', 'NN/NN/YY', True),
]


def _two_digit_year(yy: int) -> int:
    return 1900 + yy if yy > 50 else 2000 + yy


def parse_statement_date(raw: DateInput, dayfirst: bool = False) -> DateParseResult:
    """
    Parse a statement date cell.

    Numeric dates read month-first unless dayfirst is set. A numeric date
    where both parts are <= 12 and differ is flagged ambiguous but still
    parsed with the configured order.
    """
    if raw is None:
        return DateParseResult(raw_text="", format_detected="UNKNOWN")

    if isinstance(raw, datetime):
        return DateParseResult(parsed_date=raw.date(), raw_text=raw.isoformat(), format_detected="NATIVE")
    if isinstance(raw, date):
        return DateParseResult(parsed_date=raw, raw_text=raw.isoformat(), format_detected="NATIVE")

    raw_text = str(raw)
    raw_clean = raw_text.strip()
    if not raw_clean:
        return DateParseResult(raw_text=raw_text, format_detected="UNKNOWN")

    for pattern, format_name, potentially_ambiguous in DATE_FORMATS:
        m = re.fullmatch(pattern, raw_clean, re.IGNORECASE)
        if not m:
            continue

        try:
            parsed = _parse_by_format(m, format_name, dayfirst)
        except (ValueError, OverflowError):
            continue

        is_ambiguous = False
        if potentially_ambiguous:
            first, second = int(m.group(1)), int(m.group(2))
            is_ambiguous = first <= 12 and second <= 12 and first != second

        return DateParseResult(
            parsed_date=parsed,
            raw_text=raw_text,
            format_detected=format_name,
            is_ambiguous=is_ambiguous,
        )

    return DateParseResult(raw_text=raw_text, format_detected="UNKNOWN")


def _parse_by_format(match, format_name: str, dayfirst: bool) -> date:
    """Parse date from regex match based on detected format."""

    if format_name in ('YYYY-MM-DD', 'YYYY/MM/DD', 'YYYYMMDD'):
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    if format_name in ('NN/NN/YYYY', 'NN/NN/YY'):
        first = int(match.group(1))
        second = int(match.group(2))
        year = int(match.group(3))
        if format_name == 'NN/NN/YY':
            year = _two_digit_year(year)
        if dayfirst:
            return date(year, second, first)
        return date(year, first, second)

    # Named month: dateutil handles the month names
    text = match.group(0)
    parsed = dateutil_parser.parse(text, dayfirst=True, fuzzy=False).date()
    year_group = match.group(3)
    if len(year_group) == 2:
        parsed = parsed.replace(year=_two_digit_year(int(year_group)))
    return parsed


def coerce_date(raw: DateInput, dayfirst: bool = False) -> Optional[date]:
    return parse_statement_date(raw, dayfirst=dayfirst).parsed_date


def is_date_like(text: DateInput) -> bool:
    """Quick check if a cell looks like it could be a date."""
    if isinstance(text, (date, datetime)):
        return True
    if not text:
        return False
    text = str(text).strip()
    date_patterns = [
        r'\d{1,2}[/\-\.]\d{1,2}[/\-\.]\d{2,4}',
        r'\d{1,2}\s+(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)',
        r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\w*\.?\s+\d{1,2}',
        r'\d{4}-\d{2}-\d{2}',
    ]
    return any(re.search(p, text, re.IGNORECASE) for p in date_patterns)
