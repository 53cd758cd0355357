"""
CSV Row Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - STRUCTURE (whole file):
- At least a header and one data row
- Required columns present in the header
- Failure here rejects the whole import (400)

STAGE 2 - CELLS (per row):
- Column count matches the header
- Date parses
- Amount parses, is finite, fits a money column and is non-zero
- Category and account names fit their columns
- Failure here skips the row with a human-readable reason

IMPORTANT: A bad row never aborts the batch. It is reported back to
the user in skippedReasons and the rest of the file carries on.
"""

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from dateutil import parser as date_parser

from src.errors import ValidationError
from src.models.ledger import ImportRequest, to_naive_utc


CURRENCY_NOISE = str.maketrans("", "", "£$€,")
CENT = Decimal("0.01")
# Money columns are NUMERIC(14, 2); names are VARCHAR(100)
MAX_AMOUNT = Decimal("1000000000000")
MAX_NAME_LENGTH = 100
BOM = "\ufeff"


class RowRejected(Exception):
    """A single CSV row cannot be imported. The message is user-facing."""
    pass


@dataclass(frozen=True)
class ColumnMap:
    """Header positions for the columns the user mapped."""
    width: int
    date: int
    amount: int
    category: int
    merchant: Optional[int] = None
    description: Optional[int] = None
    account: Optional[int] = None


@dataclass(frozen=True)
class ParsedRow:
    occurred_at: datetime
    amount: Decimal
    category_name: Optional[str]
    account_name: Optional[str]
    description: Optional[str]


# =============================================================================
# STAGE 1 - STRUCTURE
# =============================================================================

def split_rows(csv_data: str) -> list[list[str]]:
    """
    Tokenise the payload into trimmed cells.

    Quoted fields may contain commas. Blank lines are kept as empty rows
    so row numbers line up with what the user sees. A leading byte order
    mark (Excel exports) is dropped.

    Raises:
        ValidationError: fewer than a header and one data row
    """
    lines = csv_data.lstrip(BOM).strip().splitlines()
    if len(lines) < 2:
        raise ValidationError("CSV must have at least a header and one data row")
    reader = csv.reader(io.StringIO("\n".join(lines)), skipinitialspace=True)
    return [[cell.strip() for cell in row] for row in reader]


def resolve_columns(header: list[str], request: ImportRequest) -> ColumnMap:
    """
    Find each mapped column in the header by exact name.

    Optional columns that are named but absent are ignored.

    Raises:
        ValidationError: date, amount or category column missing
    """
    def index_of(name: Optional[str]) -> Optional[int]:
        if not name:
            return None
        try:
            return header.index(name.strip())
        except ValueError:
            return None

    date_idx = index_of(request.date_column)
    amount_idx = index_of(request.amount_column)
    category_idx = index_of(request.category_column)

    if date_idx is None or amount_idx is None or category_idx is None:
        raise ValidationError(
            "Required columns not found in CSV",
            details={
                "missing": {
                    "date": date_idx is None,
                    "amount": amount_idx is None,
                    "category": category_idx is None,
                }
            },
        )

    return ColumnMap(
        width=len(header),
        date=date_idx,
        amount=amount_idx,
        category=category_idx,
        merchant=index_of(request.merchant_column),
        description=index_of(request.description_column),
        account=index_of(request.account_column),
    )


# =============================================================================
# STAGE 2 - CELLS
# =============================================================================

def parse_date(raw: str, default: Optional[datetime] = None) -> datetime:
    """
    Parse a statement date. Aware values are normalised to naive UTC.

    Parts the cell leaves out (a year-less "03 Jan") are taken from
    default rather than the machine's today.
    """
    try:
        value = date_parser.parse(raw, default=default)
    except (ValueError, OverflowError) as e:
        raise RowRejected(f"Invalid date format: {raw}") from e
    return to_naive_utc(value)


def parse_amount(raw: str) -> Decimal:
    """
    Parse a statement amount as a positive Decimal.

    Currency symbols and thousands separators are dropped and the sign
    is discarded: statements write debits either way.

    >>> parse_amount("£12.50")
    Decimal('12.50')
    >>> parse_amount("-40")
    Decimal('40.00')
    """
    cleaned = raw.translate(CURRENCY_NOISE).strip()
    try:
        value = Decimal(cleaned)
        if not value.is_finite() or abs(value) >= MAX_AMOUNT:
            raise RowRejected(f"Invalid amount: {raw}")
        value = abs(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise RowRejected(f"Invalid amount: {raw}") from e

    if value == 0:
        raise RowRejected("Amount must be greater than zero")
    return value


def compose_description(merchant: Optional[str], description: Optional[str]) -> Optional[str]:
    parts = [part for part in (merchant, description) if part]
    return " - ".join(parts) or None


def parse_row(
    cells: list[str],
    columns: ColumnMap,
    cutoff: Optional[datetime] = None,
    today: Optional[datetime] = None,
) -> Optional[ParsedRow]:
    """
    Validate one data row against the column map.

    Checks run in order: width, date, retention window, amount. A row
    dated before cutoff returns None without its amount being looked at.

    Raises:
        RowRejected: with the reason, minus the row number
    """
    if len(cells) != columns.width:
        raise RowRejected("Column count mismatch")

    occurred_at = parse_date(cells[columns.date], default=today)
    if cutoff is not None and occurred_at < cutoff:
        return None

    def cell(idx: Optional[int]) -> Optional[str]:
        if idx is None:
            return None
        return cells[idx] or None

    amount = parse_amount(cells[columns.amount])
    category_name = cell(columns.category)
    account_name = cell(columns.account)
    for label, name in (("Category", category_name), ("Account", account_name)):
        if name and len(name) > MAX_NAME_LENGTH:
            raise RowRejected(f"{label} name longer than {MAX_NAME_LENGTH} characters")

    return ParsedRow(
        occurred_at=occurred_at,
        amount=amount,
        category_name=category_name,
        account_name=account_name,
        description=compose_description(cell(columns.merchant), cell(columns.description)),
    )
