"""
Ledger Store

Scoped CRUD over the relational schema. Every public method takes the
caller's user_id first and every query filters on it; a row owned by
someone else is reported exactly like a missing row.

Rows never leave this module: each method converts ORM rows to the
pydantic output models while the session is still open.

Balance-changing writes (payments, contributions) are NOT here - they
live in src.reconciliation so that the aggregate update and the child
row write can never be separated.
"""

from typing import Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import AppSettings, get_settings
from src.errors import NotFoundError, ValidationError
from src.models.ledger import (
    AccountCreate,
    AccountOut,
    CategoryCreate,
    CategoryKind,
    CategoryOut,
    CurrencyCode,
    DebtCreate,
    DebtOut,
    DebtUpdate,
    GoalCreate,
    GoalOut,
    GoalUpdate,
    IncomeSourceCreate,
    IncomeSourceOut,
    SetupResult,
    TransactionCreate,
    TransactionOut,
    TransactionType,
    UserIdentity,
    UserOut,
)
from src.services.storage.database import Database
from src.services.storage.interface import DuplicateError
from src.services.storage.tables import (
    AccountRow,
    Base,
    CategoryRow,
    DebtRow,
    IncomeSourceRow,
    SavingsGoalRow,
    TransactionRow,
    UserRow,
)


RowT = TypeVar("RowT", bound=Base)

# Country -> currency for new users. Unknown countries fall back to settings.
CURRENCY_MAP = {
    "US": CurrencyCode.USD,
    "GB": CurrencyCode.GBP,
    "EU": CurrencyCode.EUR,
    "DE": CurrencyCode.EUR,
    "FR": CurrencyCode.EUR,
    "IT": CurrencyCode.EUR,
    "ES": CurrencyCode.EUR,
    "CA": CurrencyCode.CAD,
    "AU": CurrencyCode.AUD,
}

DEFAULT_INCOME_CATEGORIES = [
    ("Salary", "#10b981"),
    ("Freelance", "#3b82f6"),
    ("Business", "#8b5cf6"),
    ("Investments", "#f59e0b"),
    ("Other", "#6b7280"),
]

DEFAULT_EXPENSE_CATEGORIES = [
    ("Food & Dining", "#ef4444"),
    ("Transportation", "#f97316"),
    ("Shopping", "#ec4899"),
    ("Bills & Utilities", "#14b8a6"),
    ("Entertainment", "#a855f7"),
]

DEFAULT_INCOME_SOURCES = [
    "Primary Employer",
    "Side Hustle",
    "Investment Returns",
]

# Entity names accepted by bulk_delete, as they appear in URLs
BULK_DELETABLE = {
    "accounts": AccountRow,
    "transactions": TransactionRow,
    "debts": DebtRow,
    "goals": SavingsGoalRow,
}


def get_owned(
    session: Session,
    row_cls: type[RowT],
    user_id: str,
    entity_id: str,
    label: str,
) -> RowT:
    """
    Fetch one row by id, scoped to its owner.

    Raises:
        NotFoundError: absent or owned by another user
    """
    row = session.scalar(
        select(row_cls).where(row_cls.id == entity_id, row_cls.user_id == user_id)
    )
    if row is None:
        raise NotFoundError(f"{label} not found")
    return row


def _changes(data: BaseModel, nullable: set[str]) -> dict:
    """Fields the client sent. An explicit null only clears nullable columns."""
    return {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in nullable
    }


def flush_unique(session: Session, message: str) -> None:
    """Flush pending inserts, turning unique-index violations into DuplicateError."""
    try:
        session.flush()
    except IntegrityError as e:
        raise DuplicateError(message) from e


class LedgerStore:
    """
    Repository for users, accounts, categories, income sources,
    transactions, debts and savings goals.
    """

    def __init__(
        self,
        database: Database,
        app_settings: Optional[AppSettings] = None,
    ):
        self._db = database
        self._settings = app_settings or get_settings().app

    @property
    def database(self) -> Database:
        return self._db

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def ensure_user(self, identity: UserIdentity) -> tuple[UserOut, bool]:
        """
        Return the local user for an external identity, creating it on first sight.

        Idempotent: calling twice with the same external_id yields the same user.

        Returns:
            (user, created)
        """
        with self._db.session_scope() as session:
            row = session.scalar(
                select(UserRow).where(UserRow.external_id == identity.external_id)
            )
            if row is not None:
                return UserOut.model_validate(row), False

            country = (identity.country or "").upper()
            currency = CURRENCY_MAP.get(country, CurrencyCode(self._settings.default_currency))
            row = UserRow(
                external_id=identity.external_id,
                email=identity.email,
                first_name=identity.first_name,
                last_name=identity.last_name,
                currency=currency,
                timezone=self._settings.default_timezone,
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError:
                # Lost a race with a concurrent first request for the same identity
                session.rollback()
                row = session.scalar(
                    select(UserRow).where(UserRow.external_id == identity.external_id)
                )
                if row is None:
                    raise
                return UserOut.model_validate(row), False
            return UserOut.model_validate(row), True

    def get_user(self, user_id: str) -> UserOut:
        with self._db.session_scope() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                raise NotFoundError("User not found")
            return UserOut.model_validate(row)

    def seed_defaults(self, user_id: str) -> SetupResult:
        """
        Give a brand-new user a starter set of categories and income sources.

        Each half is skipped if the user already has rows of that kind.
        """
        result = SetupResult()
        with self._db.session_scope() as session:
            existing_categories = session.scalar(
                select(func.count()).select_from(CategoryRow).where(CategoryRow.user_id == user_id)
            )
            existing_sources = session.scalar(
                select(func.count()).select_from(IncomeSourceRow).where(
                    IncomeSourceRow.user_id == user_id
                )
            )

            if existing_categories == 0:
                for kind, defaults in (
                    (CategoryKind.INCOME, DEFAULT_INCOME_CATEGORIES),
                    (CategoryKind.EXPENSE, DEFAULT_EXPENSE_CATEGORIES),
                ):
                    for name, color in defaults:
                        session.add(CategoryRow(user_id=user_id, name=name, kind=kind, color=color))
                        result.categories_created += 1

            if existing_sources == 0:
                for name in DEFAULT_INCOME_SOURCES:
                    session.add(IncomeSourceRow(user_id=user_id, name=name))
                    result.sources_created += 1

            result.skipped = existing_categories > 0 or existing_sources > 0
        return result

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def list_accounts(self, user_id: str) -> list[AccountOut]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(AccountRow)
                .where(AccountRow.user_id == user_id, AccountRow.is_archived.is_(False))
                .order_by(AccountRow.created_at.desc())
            ).all()
            return [AccountOut.model_validate(row) for row in rows]

    def create_account(self, user_id: str, data: AccountCreate) -> AccountOut:
        message = "Account with this name already exists"
        with self._db.session_scope() as session:
            clash = session.scalar(
                select(AccountRow.id).where(
                    AccountRow.user_id == user_id,
                    AccountRow.name == data.name,
                    AccountRow.is_archived.is_(False),
                )
            )
            if clash is not None:
                raise DuplicateError(message)
            row = AccountRow(user_id=user_id, **data.model_dump())
            session.add(row)
            flush_unique(session, message)
            return AccountOut.model_validate(row)

    # -------------------------------------------------------------------------
    # Categories and income sources
    # -------------------------------------------------------------------------

    def list_categories(self, user_id: str) -> list[CategoryOut]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(CategoryRow)
                .where(CategoryRow.user_id == user_id, CategoryRow.is_archived.is_(False))
                .order_by(CategoryRow.kind, CategoryRow.name)
            ).all()
            return [CategoryOut.model_validate(row) for row in rows]

    def create_category(self, user_id: str, data: CategoryCreate) -> CategoryOut:
        with self._db.session_scope() as session:
            row = CategoryRow(user_id=user_id, **data.model_dump())
            session.add(row)
            flush_unique(session, "Category with this name already exists")
            return CategoryOut.model_validate(row)

    def list_income_sources(self, user_id: str) -> list[IncomeSourceOut]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(IncomeSourceRow)
                .where(
                    IncomeSourceRow.user_id == user_id,
                    IncomeSourceRow.is_archived.is_(False),
                )
                .order_by(IncomeSourceRow.name)
            ).all()
            return [IncomeSourceOut.model_validate(row) for row in rows]

    def create_income_source(self, user_id: str, data: IncomeSourceCreate) -> IncomeSourceOut:
        with self._db.session_scope() as session:
            row = IncomeSourceRow(user_id=user_id, name=data.name)
            session.add(row)
            flush_unique(session, "Income source with this name already exists")
            return IncomeSourceOut.model_validate(row)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def list_transactions(
        self,
        user_id: str,
        type: Optional[TransactionType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransactionOut]:
        limit = max(1, min(limit, self._settings.max_page_size))
        with self._db.session_scope() as session:
            query = select(TransactionRow).where(TransactionRow.user_id == user_id)
            if type is not None:
                query = query.where(TransactionRow.type == type)
            rows = session.scalars(
                query.order_by(TransactionRow.occurred_at.desc())
                .limit(limit)
                .offset(max(offset, 0))
            ).all()
            return [TransactionOut.model_validate(row) for row in rows]

    def create_transaction(self, user_id: str, data: TransactionCreate) -> TransactionOut:
        """
        Record a manual transaction.

        Referenced category/account/income source must belong to the caller;
        a foreign reference is a validation failure, not a 404.
        """
        with self._db.session_scope() as session:
            for row_cls, ref_id, field in (
                (CategoryRow, data.category_id, "categoryId"),
                (AccountRow, data.account_id, "accountId"),
                (IncomeSourceRow, data.income_source_id, "incomeSourceId"),
            ):
                if ref_id is None:
                    continue
                owned = session.scalar(
                    select(row_cls.id).where(row_cls.id == ref_id, row_cls.user_id == user_id)
                )
                if owned is None:
                    raise ValidationError(
                        f"Invalid {field}",
                        details=[{"field": field, "message": "Not found for this user"}],
                    )

            user = session.get(UserRow, user_id)
            row = TransactionRow(
                user_id=user_id,
                currency=user.currency if user else CurrencyCode(self._settings.default_currency),
                **data.model_dump(),
            )
            session.add(row)
            session.flush()
            return TransactionOut.model_validate(row)

    def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        with self._db.session_scope() as session:
            row = get_owned(session, TransactionRow, user_id, transaction_id, "Transaction")
            session.delete(row)

    # -------------------------------------------------------------------------
    # Debts
    # -------------------------------------------------------------------------

    def list_debts(self, user_id: str) -> list[DebtOut]:
        """Open debts, newest first, each with its payments."""
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(DebtRow)
                .where(DebtRow.user_id == user_id, DebtRow.is_closed.is_(False))
                .order_by(DebtRow.created_at.desc())
            ).all()
            return [DebtOut.model_validate(row) for row in rows]

    def get_debt(self, user_id: str, debt_id: str) -> DebtOut:
        with self._db.session_scope() as session:
            return DebtOut.model_validate(get_owned(session, DebtRow, user_id, debt_id, "Debt"))

    def create_debt(self, user_id: str, data: DebtCreate) -> DebtOut:
        with self._db.session_scope() as session:
            row = DebtRow(user_id=user_id, **data.model_dump())
            session.add(row)
            session.flush()
            return DebtOut.model_validate(row)

    def update_debt(self, user_id: str, debt_id: str, data: DebtUpdate) -> tuple[DebtOut, list[str]]:
        changes = _changes(data, nullable={"apr", "lender", "due_day_of_month"})
        with self._db.session_scope() as session:
            row = get_owned(session, DebtRow, user_id, debt_id, "Debt")
            for field, value in changes.items():
                setattr(row, field, value)
            session.flush()
            return DebtOut.model_validate(row), sorted(changes)

    def delete_debt(self, user_id: str, debt_id: str) -> None:
        """Hard delete; payments go with it."""
        with self._db.session_scope() as session:
            row = get_owned(session, DebtRow, user_id, debt_id, "Debt")
            session.delete(row)

    # -------------------------------------------------------------------------
    # Savings goals
    # -------------------------------------------------------------------------

    def list_goals(self, user_id: str) -> list[GoalOut]:
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(SavingsGoalRow)
                .where(SavingsGoalRow.user_id == user_id, SavingsGoalRow.is_archived.is_(False))
                .order_by(SavingsGoalRow.created_at.desc())
            ).all()
            return [GoalOut.model_validate(row) for row in rows]

    def create_goal(self, user_id: str, data: GoalCreate) -> GoalOut:
        with self._db.session_scope() as session:
            row = SavingsGoalRow(user_id=user_id, **data.model_dump())
            session.add(row)
            session.flush()
            return GoalOut.model_validate(row)

    def update_goal(self, user_id: str, goal_id: str, data: GoalUpdate) -> tuple[GoalOut, list[str]]:
        # current_amount is not in GoalUpdate; only contributions move it
        changes = _changes(data, nullable={"deadline"})
        with self._db.session_scope() as session:
            row = get_owned(session, SavingsGoalRow, user_id, goal_id, "Goal")
            for field, value in changes.items():
                setattr(row, field, value)
            session.flush()
            return GoalOut.model_validate(row), sorted(changes)

    def archive_goal(self, user_id: str, goal_id: str) -> None:
        """Goals are soft-deleted; contributions and current_amount are kept."""
        with self._db.session_scope() as session:
            row = get_owned(session, SavingsGoalRow, user_id, goal_id, "Goal")
            row.is_archived = True

    # -------------------------------------------------------------------------
    # Account data wipe
    # -------------------------------------------------------------------------

    def bulk_delete(self, user_id: str, entity: str) -> int:
        """
        Hard-delete every row of one entity type owned by the user.

        Child rows (payments, contributions) go by ON DELETE CASCADE;
        transactions pointing at a deleted account keep existing with
        account_id cleared.

        Returns:
            Number of rows deleted
        """
        row_cls = BULK_DELETABLE.get(entity)
        if row_cls is None:
            raise ValidationError(f"Cannot bulk delete '{entity}'")
        with self._db.session_scope() as session:
            result = session.execute(
                delete(row_cls)
                .where(row_cls.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0
