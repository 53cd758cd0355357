"""CSV structure and cell validation."""

from src.validation.validator import (
    ColumnMap,
    ParsedRow,
    RowRejected,
    compose_description,
    parse_amount,
    parse_date,
    parse_row,
    resolve_columns,
    split_rows,
)

__all__ = [
    "ColumnMap",
    "ParsedRow",
    "RowRejected",
    "compose_description",
    "parse_amount",
    "parse_date",
    "parse_row",
    "resolve_columns",
    "split_rows",
]
