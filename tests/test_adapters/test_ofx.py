"""
Tests for the OFX/QFX adapter.
"""

from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.adapters.ofx import FinancialExchangeAdapter
from statement_ingest.errors import MalformedInputError
from statement_ingest.models.enums import SourceFormat


class TestFinancialExchangeAdapter:

    @pytest.mark.asyncio
    async def test_parses_statement_transactions(self, ofx_factory):
        data = ofx_factory([
            ("20240103", "-52.99", "FIT0001", "ADOBE", "Creative Cloud"),
            ("20240105", "1500.00", "FIT0002", "CLIENT DEPOSIT", "Invoice 1042"),
        ])
        parsed = await FinancialExchangeAdapter().parse(data, "bank.ofx")

        assert len(parsed) == 2
        first = parsed[0]
        assert first.source_format == SourceFormat.FINANCIAL_EXCHANGE
        assert first.date == date(2024, 1, 3)
        assert first.description == "ADOBE"
        assert first.amount == Decimal("-52.99")
        assert first.external_id == "FIT0001"
        assert first.confidence == pytest.approx(0.95)
        assert first.raw_payload["memo"] == "Creative Cloud"
        assert parsed[1].amount == Decimal("1500.00")

    @pytest.mark.asyncio
    async def test_many_transactions(self, ofx_factory, ofx_rows_factory):
        parsed = await FinancialExchangeAdapter().parse(ofx_factory(ofx_rows_factory(10)), "bank.qfx")

        assert len(parsed) == 10
        assert [p.external_id for p in parsed][:3] == ["FIT0000", "FIT0001", "FIT0002"]

    @pytest.mark.asyncio
    async def test_garbage_is_malformed(self):
        with pytest.raises(MalformedInputError):
            await FinancialExchangeAdapter().parse(b"this is not an ofx file", "bank.ofx")
