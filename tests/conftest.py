"""
Shared test fixtures.
"""

import csv
import io
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
import xlwt
from openpyxl import Workbook

from statement_ingest.models.enums import SourceFormat, TransactionKind
from statement_ingest.pipeline.orchestrator import IngestionPipeline
from statement_ingest.pipeline.format_parser import FormatParser
from statement_ingest.schemas.records import CategoryRule, NormalizedTransaction
from statement_ingest.store.memory_store import InMemoryDocumentStore


OWNER = "owner-123"


@pytest.fixture
def owner_id():
    return OWNER


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def pipeline(memory_store):
    """Pipeline over the memory store, no DocAI fallback, no default categories."""
    return IngestionPipeline(memory_store, format_parser=FormatParser(), seed_categories=False)


@pytest.fixture
def sample_amounts():
    """Common amount string samples for testing."""
    return [
        ("1,234.56", "1234.56", False),
        ("(500.00)", "-500.00", True),
        ("100.00 DR", "-100.00", True),
        ("250.00 CR", "250.00", False),
        ("-75.50", "-75.50", True),
        ("75.50-", "-75.50", True),
        ("$0.01", "0.01", False),
        ("10000", "10000", False),
    ]


@pytest.fixture
def software_rule():
    return CategoryRule(
        id="cat-software",
        owner_id=OWNER,
        name="Software Subscriptions",
        keywords=["adobe", "software"],
        patterns=[".*subscription.*"],
        merchant_rules=["Adobe Inc."],
        sort_order=1,
    )


def make_transaction(
    description: str = "ADOBE CREATIVE CLOUD",
    amount: str = "-52.99",
    on: date = date(2024, 3, 15),
    owner_id: str = OWNER,
    merchant: str = None,
) -> NormalizedTransaction:
    value = Decimal(amount)
    return NormalizedTransaction(
        owner_id=owner_id,
        date=on,
        amount=value,
        kind=TransactionKind.CREDIT if value >= 0 else TransactionKind.DEBIT,
        description_raw=description,
        description_cleaned=description.upper(),
        merchant_name_guess=merchant,
        account_id="acct-1",
        upload_batch_id="batch-1",
        parser_confidence=0.85,
        source_format=SourceFormat.DELIMITED_TEXT,
    )


@pytest.fixture
def transaction_factory():
    return make_transaction


def build_csv(rows, header="Date,Description,Amount") -> bytes:
    buf = io.StringIO()
    buf.write(header + "\n")
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


@pytest.fixture
def csv_factory():
    return build_csv


def bank_csv_rows(count: int, start: date = date(2024, 1, 1)):
    """count rows with distinct dates, vendors and amounts."""
    return [
        (
            (start + timedelta(days=i)).strftime("%m/%d/%Y"),
            f"VENDOR {i:03d} PURCHASE",
            f"-{10 + i}.{i % 100:02d}",
        )
        for i in range(count)
    ]


@pytest.fixture
def bank_rows():
    return bank_csv_rows


def build_xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def xlsx_factory():
    return build_xlsx


XLS_DATE_STYLE = xlwt.easyxf(num_format_str="YYYY-MM-DD")


def build_xls(rows) -> bytes:
    """Legacy BIFF workbook; datetime cells get a date number format."""
    wb = xlwt.Workbook()
    ws = wb.add_sheet("Statement")
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is None:
                continue
            if isinstance(value, datetime):
                ws.write(r, c, value, XLS_DATE_STYLE)
            else:
                ws.write(r, c, value)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def xls_factory():
    return build_xls


OFX_HEADER = """OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE

"""


def build_ofx(transactions) -> bytes:
    """
    transactions: iterable of (yyyymmdd, amount, fitid, name, memo)
    """
    entries = []
    for posted, amount, fitid, name, memo in transactions:
        entries.append(
            "<STMTTRN>\n"
            f"<TRNTYPE>{'DEBIT' if str(amount).startswith('-') else 'CREDIT'}\n"
            f"<DTPOSTED>{posted}\n"
            f"<TRNAMT>{amount}\n"
            f"<FITID>{fitid}\n"
            f"<NAME>{name}\n"
            f"<MEMO>{memo}\n"
            "</STMTTRN>\n"
        )
    body = (
        "<OFX>\n"
        "<SIGNONMSGSRSV1>\n"
        "<SONRS>\n"
        "<STATUS>\n<CODE>0\n<SEVERITY>INFO\n</STATUS>\n"
        "<DTSERVER>20240131120000\n"
        "<LANGUAGE>ENG\n"
        "</SONRS>\n"
        "</SIGNONMSGSRSV1>\n"
        "<BANKMSGSRSV1>\n"
        "<STMTTRNRS>\n"
        "<TRNUID>1\n"
        "<STATUS>\n<CODE>0\n<SEVERITY>INFO\n</STATUS>\n"
        "<STMTRS>\n"
        "<CURDEF>USD\n"
        "<BANKACCTFROM>\n<BANKID>121000248\n<ACCTID>000123456789\n<ACCTTYPE>CHECKING\n</BANKACCTFROM>\n"
        "<BANKTRANLIST>\n"
        "<DTSTART>20240101\n"
        "<DTEND>20240131\n"
        + "".join(entries)
        + "</BANKTRANLIST>\n"
        "<LEDGERBAL>\n<BALAMT>1000.00\n<DTASOF>20240131\n</LEDGERBAL>\n"
        "</STMTRS>\n"
        "</STMTTRNRS>\n"
        "</BANKMSGSRSV1>\n"
        "</OFX>\n"
    )
    return (OFX_HEADER + body).encode("ascii")


@pytest.fixture
def ofx_factory():
    return build_ofx


def ofx_rows(count: int):
    return [
        (f"202401{i + 1:02d}", f"-{20 + i}.{i:02d}", f"FIT{i:04d}", f"MERCHANT {i:02d}", f"Card purchase {i}")
        for i in range(count)
    ]


@pytest.fixture
def ofx_rows_factory():
    return ofx_rows
