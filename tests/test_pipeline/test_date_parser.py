"""
Tests for the statement date parser.
"""

from datetime import date, datetime

import pytest

from statement_ingest.pipeline.date_parser import (
    coerce_date,
    is_date_like,
    parse_statement_date,
)


class TestParseStatementDate:
    """Test month-first date parsing."""

    def test_mm_dd_yyyy_slash(self):
        result = parse_statement_date("01/02/2024")
        assert result.parsed_date == date(2024, 1, 2)  # US: month first
        assert result.format_detected == "NN/NN/YYYY"

    def test_dayfirst_flag(self):
        result = parse_statement_date("01/02/2024", dayfirst=True)
        assert result.parsed_date == date(2024, 2, 1)

    def test_dd_mon_yyyy(self):
        result = parse_statement_date("15 Jan 2024")
        assert result.parsed_date == date(2024, 1, 15)
        assert not result.is_ambiguous

    def test_mon_dd_yyyy(self):
        result = parse_statement_date("Jan 15, 2024")
        assert result.parsed_date == date(2024, 1, 15)

    def test_full_month_name(self):
        result = parse_statement_date("5 February 2024")
        assert result.parsed_date == date(2024, 2, 5)

    def test_dd_mon_yy_dashes(self):
        result = parse_statement_date("15-Mar-24")
        assert result.parsed_date == date(2024, 3, 15)

    def test_iso_format(self):
        result = parse_statement_date("2024-03-15")
        assert result.parsed_date == date(2024, 3, 15)

    def test_iso_with_time(self):
        result = parse_statement_date("2024-03-15T10:30:00")
        assert result.parsed_date == date(2024, 3, 15)

    def test_compact_yyyymmdd(self):
        result = parse_statement_date("20240315")
        assert result.parsed_date == date(2024, 3, 15)

    def test_two_digit_year(self):
        result = parse_statement_date("03/15/24")
        assert result.parsed_date == date(2024, 3, 15)

    def test_ordinal_date(self):
        result = parse_statement_date("1st Jan 2024")
        assert result.parsed_date == date(2024, 1, 1)

    def test_ambiguous_date_flagged(self):
        result = parse_statement_date("05/06/2024")
        assert result.parsed_date == date(2024, 5, 6)
        assert result.is_ambiguous

    def test_unambiguous_date_not_flagged(self):
        result = parse_statement_date("06/25/2024")
        assert result.parsed_date == date(2024, 6, 25)
        assert not result.is_ambiguous

    def test_impossible_month_first_date_fails(self):
        assert parse_statement_date("25/06/2024").parsed_date is None

    @pytest.mark.parametrize("raw", ["not a date", "", "   ", None, "2024-13-45"])
    def test_unparseable_returns_none(self, raw):
        result = parse_statement_date(raw)
        assert result.parsed_date is None
        assert not result.ok

    def test_native_date_passthrough(self):
        assert parse_statement_date(date(2024, 4, 1)).parsed_date == date(2024, 4, 1)

    def test_native_datetime_truncated(self):
        result = parse_statement_date(datetime(2024, 4, 1, 13, 45))
        assert result.parsed_date == date(2024, 4, 1)
        assert result.format_detected == "NATIVE"

    def test_coerce_date(self):
        assert coerce_date("2024-01-31") == date(2024, 1, 31)
        assert coerce_date("garbage") is None


class TestIsDateLike:
    """Test quick date pattern check."""

    def test_mm_dd_yyyy(self):
        assert is_date_like("01/02/2024")

    def test_named_month(self):
        assert is_date_like("15 Jan 2024")
        assert is_date_like("Jan 15, 2024")

    def test_iso(self):
        assert is_date_like("2024-01-15")

    def test_native(self):
        assert is_date_like(date(2024, 1, 15))

    def test_not_date(self):
        assert not is_date_like("hello world")

    def test_empty(self):
        assert not is_date_like("")
