"""
Spreadsheet adapter (XLSX via openpyxl, legacy XLS via xlrd).

Reads the first worksheet, finds the header row among the first few rows,
maps columns by fuzzy header match and falls back to positions 0/1/2.
The workbook flavour is taken from the file signature, not the extension,
so an .xls that is really an XLSX still opens.
"""

import io
import re
import time
from typing import Any, Optional

import structlog
import xlrd
from openpyxl import load_workbook

from statement_ingest.adapters.base import FormatAdapter, coerce_row, split_amount
from statement_ingest.config import settings
from statement_ingest.errors import MalformedInputError
from statement_ingest.models.enums import SourceFormat
from statement_ingest.observability.metrics import parse_duration_seconds
from statement_ingest.schemas.records import SpreadsheetTransaction

logger = structlog.get_logger(__name__)

# OLE2 compound document signature used by BIFF (.xls) workbooks
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0"

HEADER_HINT = re.compile(r"date|description|amount|transaction|debit|credit", re.IGNORECASE)

FIELD_PATTERNS = [
    ("date", re.compile(r"date|posting|trans.*date", re.IGNORECASE)),
    ("description", re.compile(r"description|memo|detail|narrative|payee", re.IGNORECASE)),
    ("type", re.compile(r"type|dr/cr|debit/credit", re.IGNORECASE)),
    ("debit", re.compile(r"debit|withdrawal|paid out|money out", re.IGNORECASE)),
    ("credit", re.compile(r"credit|deposit|paid in|money in", re.IGNORECASE)),
    ("amount", re.compile(r"amount", re.IGNORECASE)),
]

DEFAULT_POSITIONS = {"date": 0, "description": 1, "amount": 2}

BLANK_CELL_TYPES = (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR)


def detect_header_row(rows: list[tuple], scan_rows: int) -> int:
    """First row among the first scan_rows with a header-looking string cell."""
    for idx, row in enumerate(rows[:scan_rows]):
        if any(isinstance(cell, str) and HEADER_HINT.search(cell) for cell in row):
            return idx
    return 0


def map_columns(headers: tuple) -> dict[str, int]:
    """
    Role -> column index. First matching header wins for each role, and a
    column already claimed by an earlier role is not reused.

    Debit and credit columns are kept only as a pair and only when there is
    no amount column. A lone debit or credit column leaves the amount unmapped
    rather than falling back to its position.
    """
    mapping: dict[str, int] = {}
    for role, pattern in FIELD_PATTERNS:
        for idx, header in enumerate(headers):
            if header is None or idx in mapping.values():
                continue
            if pattern.search(str(header).strip()):
                mapping[role] = idx
                break

    split_roles = {"debit", "credit"} & set(mapping)
    if "amount" in mapping or len(split_roles) < 2:
        for role in split_roles:
            mapping.pop(role)
    for role, position in DEFAULT_POSITIONS.items():
        if role == "amount" and split_roles:
            continue
        mapping.setdefault(role, position)
    return mapping


def _cell(row: tuple, idx: Optional[int]) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def read_xlsx_rows(file_bytes: bytes, file_name: str) -> list[tuple]:
    try:
        workbook = load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
    except Exception as e:
        raise MalformedInputError(f"Excel parsing error: {e}") from e

    try:
        if not workbook.worksheets:
            raise MalformedInputError(f"{file_name}: workbook has no sheets")
        sheet = workbook.worksheets[0]
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def read_xls_rows(file_bytes: bytes, file_name: str) -> list[tuple]:
    """
    Rows of the first BIFF worksheet. Date-formatted cells come back as
    datetimes and blank cells as None, matching what openpyxl yields.
    """
    try:
        book = xlrd.open_workbook(file_contents=file_bytes)
    except Exception as e:
        raise MalformedInputError(f"Excel parsing error: {e}") from e

    try:
        if book.nsheets == 0:
            raise MalformedInputError(f"{file_name}: workbook has no sheets")
        sheet = book.sheet_by_index(0)
        rows = []
        for r in range(sheet.nrows):
            values = []
            for cell in sheet.row(r):
                if cell.ctype in BLANK_CELL_TYPES:
                    values.append(None)
                elif cell.ctype == xlrd.XL_CELL_DATE:
                    values.append(xlrd.xldate_as_datetime(cell.value, book.datemode))
                else:
                    values.append(cell.value)
            rows.append(tuple(values))
        return rows
    finally:
        book.release_resources()


class SpreadsheetAdapter(FormatAdapter):

    def __init__(self, confidence: Optional[float] = None, header_scan_rows: Optional[int] = None):
        self.confidence = confidence if confidence is not None else settings.CONFIDENCE_SPREADSHEET
        self.header_scan_rows = header_scan_rows or settings.SPREADSHEET_HEADER_SCAN_ROWS

    @property
    def source_format(self) -> SourceFormat:
        return SourceFormat.SPREADSHEET

    @property
    def adapter_name(self) -> str:
        return "spreadsheet"

    async def parse(self, file_bytes: bytes, file_name: str) -> list[SpreadsheetTransaction]:
        start = time.monotonic()
        if file_bytes.startswith(OLE2_SIGNATURE):
            reader = "xlrd"
            rows = read_xls_rows(file_bytes, file_name)
        else:
            reader = "openpyxl"
            rows = read_xlsx_rows(file_bytes, file_name)

        if not rows:
            return []

        header_idx = detect_header_row(rows, self.header_scan_rows)
        headers = rows[header_idx]
        columns = map_columns(headers)
        header_names = ["" if h is None else str(h) for h in headers]

        transactions = []
        for idx in range(header_idx + 1, len(rows)):
            row = rows[idx]
            if all(cell is None or str(cell).strip() == "" for cell in row):
                continue
            if "debit" in columns:
                raw_amount = split_amount(_cell(row, columns["debit"]), _cell(row, columns["credit"]))
            else:
                raw_amount = _cell(row, columns.get("amount"))
            fields = coerce_row(
                _cell(row, columns["date"]),
                _cell(row, columns["description"]),
                raw_amount,
                _cell(row, columns.get("type")),
            )
            if fields is None:
                logger.debug("spreadsheet_row_dropped", file_name=file_name, row_number=idx + 1)
                continue

            transactions.append(SpreadsheetTransaction(
                date=fields.date,
                description=fields.description,
                amount=fields.amount,
                confidence=self.confidence,
                raw_payload={
                    "row": ["" if c is None else str(c) for c in row],
                    "headers": header_names,
                },
                row_number=idx + 1,
            ))

        parse_duration_seconds.labels(source_format=self.source_format.value).observe(
            time.monotonic() - start
        )
        logger.info(
            "spreadsheet_parsed",
            file_name=file_name,
            reader=reader,
            header_row=header_idx,
            columns=columns,
            transactions=len(transactions),
        )
        return transactions
