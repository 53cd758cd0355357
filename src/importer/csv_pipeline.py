"""
CSV Import Pipeline

Turns a pasted bank statement into EXPENSE transactions.

FLOW:
1. Structure check (header + mapped columns) - failure rejects the file
2. Per-row parse - failure skips the row with a reason
3. Rows outside the retention window are dropped silently
4. Categories (and accounts, when mapped) are found or created by name
5. All rows are inserted in the same transaction, skipping duplicates

Any non-storage exception while preparing a row becomes that row's skip
reason. A storage error rolls back the whole import, created categories
and accounts included.

DESIGN DECISION: Every imported row carries an import_key fingerprint
and (user_id, import_key) is unique. Inserting with ON CONFLICT DO
NOTHING makes re-importing the same statement a no-op, and only rows
that actually landed are counted as imported.
"""

import hashlib
import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.audit import AuditLogger, get_logger
from src.config import ImportSettings, get_settings
from src.errors import LedgerError, ValidationError
from src.models.ledger import (
    AccountType,
    CategoryKind,
    CurrencyCode,
    ImportRequest,
    ImportSummary,
    TransactionType,
)
from src.services.storage import Database
from src.services.storage.tables import AccountRow, CategoryRow, TransactionRow, UserRow
from src.validation import ParsedRow, RowRejected, parse_row, resolve_columns, split_rows


CATEGORY_PALETTE = [
    "#ef4444",  # red
    "#f97316",  # orange
    "#eab308",  # yellow
    "#22c55e",  # green
    "#06b6d4",  # cyan
    "#3b82f6",  # blue
    "#8b5cf6",  # violet
    "#ec4899",  # pink
    "#f59e0b",  # amber
    "#10b981",  # emerald
]

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def import_key(
    user_id: str,
    occurred_at: datetime,
    amount,
    category_id: Optional[str],
    account_id: Optional[str],
    description: Optional[str],
) -> str:
    """Fingerprint of an imported row. Same statement line, same key."""
    parts = [
        user_id,
        TransactionType.EXPENSE.value,
        occurred_at.isoformat(),
        f"{amount:.2f}",
        category_id or "",
        account_id or "",
        description or "",
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


class CSVImportPipeline:
    """
    Imports expense rows from CSV for one user.

    Usage:
        pipeline = CSVImportPipeline(database, audit_logger=audit)
        summary = pipeline.run(user_id, ImportRequest(...))
    """

    def __init__(
        self,
        database: Database,
        settings: Optional[ImportSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            database: Ledger database
            settings: Retention window and row cap. Defaults to environment.
            audit_logger: Receives import_completed / import_failed events
            clock: Returns "now" as naive UTC. Injectable for tests.
        """
        self._db = database
        self._settings = settings or get_settings().imports
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or datetime.utcnow
        self._logger = get_logger(__name__)

    def run(self, user_id: str, request: ImportRequest) -> ImportSummary:
        """
        Import one statement.

        Raises:
            ValidationError: file too short, too long, or missing a mapped column
        """
        try:
            return self._run(user_id, request)
        except ValidationError:
            raise
        except LedgerError as e:
            self._audit.log_import_failed(user_id, e.message)
            raise
        except Exception as e:
            self._logger.error("csv_import_failed", user_id=user_id, error=str(e))
            self._audit.log_import_failed(user_id, str(e))
            raise

    def _run(self, user_id: str, request: ImportRequest) -> ImportSummary:
        rows = split_rows(request.csv_data)
        header, data_rows = rows[0], rows[1:]
        if len(data_rows) > self._settings.max_rows:
            raise ValidationError(
                f"CSV has {len(data_rows)} data rows; the limit is {self._settings.max_rows}"
            )
        columns = resolve_columns(header, request)

        retention_days = request.retention_days or self._settings.retention_days
        now = self._clock()
        cutoff = now - timedelta(days=retention_days)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        skipped_reasons: list[str] = []
        with self._db.session_scope() as session:
            user = session.get(UserRow, user_id)
            currency = user.currency if user else CurrencyCode.GBP
            resolver = _NameResolver(session, user_id)

            pending: list[dict] = []
            for i, cells in enumerate(data_rows):
                row_number = i + 2
                try:
                    row = parse_row(cells, columns, cutoff, today)
                    if row is not None:
                        pending.append(self._values(user_id, currency, row, resolver))
                except RowRejected as e:
                    skipped_reasons.append(f"Row {row_number}: {e}")
                except SQLAlchemyError:
                    # Storage failures roll back the whole import
                    raise
                except Exception as e:
                    skipped_reasons.append(f"Row {row_number}: {e}")

            imported = 0
            insert = _DIALECT_INSERTS.get(self._db.dialect_name, sqlite.insert)
            for values in pending:
                result = session.execute(
                    insert(TransactionRow)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["user_id", "import_key"])
                )
                imported += max(result.rowcount, 0)

        summary = ImportSummary(
            imported=imported,
            skipped=len(skipped_reasons),
            skipped_reasons=skipped_reasons,
            categories_created=resolver.categories_created,
            accounts_created=resolver.accounts_created,
            message=(
                f"Successfully imported {imported} expense transactions "
                f"from the last {retention_days} days"
            ),
        )
        self._audit.log_import_completed(
            user_id=user_id,
            imported=summary.imported,
            skipped=summary.skipped,
            categories_created=summary.categories_created,
            accounts_created=summary.accounts_created,
            total_rows=len(data_rows),
        )
        return summary

    @staticmethod
    def _values(
        user_id: str,
        currency: CurrencyCode,
        row: ParsedRow,
        resolver: "_NameResolver",
    ) -> dict:
        category_id = resolver.category(row.category_name)
        account_id = resolver.account(row.account_name)
        return {
            "user_id": user_id,
            "type": TransactionType.EXPENSE,
            "amount": row.amount,
            "currency": currency,
            "occurred_at": row.occurred_at,
            "description": row.description,
            "category_id": category_id,
            "account_id": account_id,
            "import_key": import_key(
                user_id,
                row.occurred_at,
                row.amount,
                category_id,
                account_id,
                row.description,
            ),
        }


class _NameResolver:
    """Find-or-create categories and accounts by exact name, memoized per import."""

    def __init__(self, session: Session, user_id: str):
        self._session = session
        self._user_id = user_id
        self._categories: dict[str, str] = {}
        self._accounts: dict[str, str] = {}
        self.categories_created = 0
        self.accounts_created = 0

    def category(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        if name not in self._categories:
            category_id = self._session.scalar(
                select(CategoryRow.id).where(
                    CategoryRow.user_id == self._user_id,
                    CategoryRow.kind == CategoryKind.EXPENSE,
                    CategoryRow.name == name,
                    CategoryRow.is_archived.is_(False),
                )
            )
            if category_id is None:
                row = CategoryRow(
                    user_id=self._user_id,
                    name=name,
                    kind=CategoryKind.EXPENSE,
                    color=random.choice(CATEGORY_PALETTE),
                )
                self._session.add(row)
                self._session.flush()
                category_id = row.id
                self.categories_created += 1
            self._categories[name] = category_id
        return self._categories[name]

    def account(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        if name not in self._accounts:
            account_id = self._session.scalar(
                select(AccountRow.id).where(
                    AccountRow.user_id == self._user_id,
                    AccountRow.name == name,
                    AccountRow.is_archived.is_(False),
                )
            )
            if account_id is None:
                row = AccountRow(
                    user_id=self._user_id,
                    name=name,
                    type=AccountType.OTHER,
                    provider=name,
                )
                self._session.add(row)
                self._session.flush()
                account_id = row.id
                self.accounts_created += 1
            self._accounts[name] = account_id
        return self._accounts[name]
