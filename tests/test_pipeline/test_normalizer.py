"""
Tests for transaction normalization.
"""

from datetime import date
from decimal import Decimal

from statement_ingest.models.enums import SourceFormat, TransactionKind
from statement_ingest.pipeline.normalizer import (
    clean_description,
    extract_merchant_name,
    kind_for_amount,
    normalize,
)
from statement_ingest.schemas.records import (
    DelimitedTextTransaction,
    FinancialExchangeTransaction,
)


class TestCleanDescription:

    def test_collapses_whitespace_and_uppercases(self):
        assert clean_description("  amazon   web\tservices ") == "AMAZON WEB SERVICES"

    def test_strips_asterisks(self):
        assert clean_description("SQ *COFFEE SHOP") == "SQ COFFEE SHOP"

    def test_strips_leading_reference_digits(self):
        assert clean_description("000123 payroll deposit") == "PAYROLL DEPOSIT"

    def test_masked_card_number_becomes_digit_run(self):
        assert clean_description("PURCHASE 1234****5678 ADOBE") == "PURCHASE 12345678 ADOBE"

    def test_empty(self):
        assert clean_description("") == ""


class TestExtractMerchantName:

    def test_drops_type_keywords_and_card_numbers(self):
        cleaned = clean_description("DEBIT PURCHASE 1234****5678 ADOBE CREATIVE CLOUD 03/15")
        assert extract_merchant_name(cleaned) == "ADOBE CREATIVE CLOUD"

    def test_keeps_first_three_tokens(self):
        assert extract_merchant_name("HOME DEPOT STORE NUMBER 4521") == "HOME DEPOT STORE"

    def test_skips_short_tokens_and_stop_words(self):
        assert extract_merchant_name("THE SOLAR CO OF AMERICA") == "SOLAR AMERICA"

    def test_masked_x_card(self):
        assert extract_merchant_name("XXXX4821 SHELL OIL") == "SHELL OIL"

    def test_nothing_meaningful(self):
        assert extract_merchant_name("DEBIT 12345 03/15") is None


class TestNormalize:

    def _parsed(self, amount="-52.999", description="ADOBE *CREATIVE CLOUD"):
        return DelimitedTextTransaction(
            date=date(2024, 3, 15),
            description=description,
            amount=Decimal(amount),
            confidence=0.85,
            raw_payload={"Amount": amount},
            row_number=2,
        )

    def test_amount_quantized_half_up(self):
        txn = normalize(self._parsed("-52.995"), "owner", "acct", "batch")
        assert txn.amount == Decimal("-53.00")

    def test_debit_kind_for_negative(self):
        txn = normalize(self._parsed("-10.00"), "owner", "acct", "batch")
        assert txn.kind == TransactionKind.DEBIT

    def test_credit_kind_for_zero_and_positive(self):
        assert kind_for_amount(Decimal("0")) == TransactionKind.CREDIT
        assert kind_for_amount(Decimal("12.50")) == TransactionKind.CREDIT

    def test_carries_identity_and_provenance(self):
        txn = normalize(self._parsed(), "owner", "acct", "batch")
        assert txn.owner_id == "owner"
        assert txn.account_id == "acct"
        assert txn.upload_batch_id == "batch"
        assert txn.description_raw == "ADOBE *CREATIVE CLOUD"
        assert txn.description_cleaned == "ADOBE CREATIVE CLOUD"
        assert txn.parser_confidence == 0.85
        assert txn.source_format == SourceFormat.DELIMITED_TEXT
        assert txn.raw_payload == {"Amount": "-52.999"}
        assert txn.category_id is None

    def test_external_id_from_ofx(self):
        parsed = FinancialExchangeTransaction(
            date=date(2024, 1, 5),
            description="PAYROLL",
            amount=Decimal("2500.00"),
            confidence=0.95,
            external_id="FIT0001",
        )
        txn = normalize(parsed, "owner", "acct", "batch")
        assert txn.external_id == "FIT0001"
        assert txn.kind == TransactionKind.CREDIT

    def test_with_category_returns_copy(self):
        txn = normalize(self._parsed(), "owner", "acct", "batch")
        categorized = txn.with_category("cat-1", 0.8)
        assert categorized.category_id == "cat-1"
        assert categorized.category_confidence == 0.8
        assert categorized.id == txn.id
        assert txn.category_id is None
