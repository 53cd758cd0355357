"""
Relational Schema

SQLAlchemy declarative tables for the ledger store.

Every table except users and audit_events carries user_id; the store
never touches a row without filtering on it.

Name uniqueness only applies to active (non-archived) rows, so those
rules are partial unique indexes rather than table constraints.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.models.ledger import (
    AccountType,
    CategoryKind,
    CurrencyCode,
    DebtType,
    TransactionType,
)


Money = Numeric(14, 2)


def new_id() -> str:
    return str(uuid4())


def _enum(enum_cls) -> SAEnum:
    # VARCHAR + CHECK keeps the schema portable between SQLite and PostgreSQL
    return SAEnum(enum_cls, native_enum=False, length=20)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    external_id: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    currency: Mapped[CurrencyCode] = mapped_column(_enum(CurrencyCode), default=CurrencyCode.GBP)
    timezone: Mapped[str] = mapped_column(String(64), default="Europe/London")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    type: Mapped[AccountType] = mapped_column(_enum(AccountType))
    provider: Mapped[Optional[str]] = mapped_column(String(100))
    last_four_digits: Mapped[Optional[str]] = mapped_column(String(4))
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class CategoryRow(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    kind: Mapped[CategoryKind] = mapped_column(_enum(CategoryKind))
    color: Mapped[Optional[str]] = mapped_column(String(7))
    icon: Mapped[Optional[str]] = mapped_column(String(50))
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class IncomeSourceRow(Base):
    __tablename__ = "income_sources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class TransactionRow(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # Imported rows carry a fingerprint; manual rows leave it NULL and never collide
        UniqueConstraint("user_id", "import_key", name="uq_transactions_user_import_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    type: Mapped[TransactionType] = mapped_column(_enum(TransactionType))
    amount: Mapped[Decimal] = mapped_column(Money)
    currency: Mapped[CurrencyCode] = mapped_column(_enum(CurrencyCode), default=CurrencyCode.GBP)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL")
    )
    account_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL")
    )
    income_source_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("income_sources.id", ondelete="SET NULL")
    )
    import_key: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    category: Mapped[Optional[CategoryRow]] = relationship()
    income_source: Mapped[Optional[IncomeSourceRow]] = relationship()


class DebtRow(Base):
    __tablename__ = "debts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    type: Mapped[DebtType] = mapped_column(_enum(DebtType), default=DebtType.OTHER)
    # Not constrained to >= 0: overpayment is recorded, not rejected
    balance: Mapped[Decimal] = mapped_column(Money)
    apr: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2))
    min_payment: Mapped[Decimal] = mapped_column(Money)
    lender: Mapped[Optional[str]] = mapped_column(String(100))
    due_day_of_month: Mapped[Optional[int]]
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    payments: Mapped[list["DebtPaymentRow"]] = relationship(
        back_populates="debt",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="desc(DebtPaymentRow.occurred_at)",
    )


class DebtPaymentRow(Base):
    __tablename__ = "debt_payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    debt_id: Mapped[str] = mapped_column(ForeignKey("debts.id", ondelete="CASCADE"), index=True)
    amount: Mapped[Decimal] = mapped_column(Money)
    occurred_at: Mapped[datetime] = mapped_column(DateTime)
    principal: Mapped[Optional[Decimal]] = mapped_column(Money)
    interest: Mapped[Optional[Decimal]] = mapped_column(Money)
    note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    debt: Mapped[DebtRow] = relationship(back_populates="payments")


class SavingsGoalRow(Base):
    __tablename__ = "savings_goals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    target_amount: Mapped[Decimal] = mapped_column(Money)
    current_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    deadline: Mapped[Optional[date]] = mapped_column(Date)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    contributions: Mapped[list["GoalContributionRow"]] = relationship(
        back_populates="goal",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="desc(GoalContributionRow.occurred_at)",
    )


class GoalContributionRow(Base):
    __tablename__ = "savings_goal_contributions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    goal_id: Mapped[str] = mapped_column(
        ForeignKey("savings_goals.id", ondelete="CASCADE"), index=True
    )
    amount: Mapped[Decimal] = mapped_column(Money)
    occurred_at: Mapped[datetime] = mapped_column(DateTime)
    note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    goal: Mapped[SavingsGoalRow] = relationship(back_populates="contributions")


class AuditEventRow(Base):
    """Append-only audit trail. No foreign keys: events outlive what they describe."""
    __tablename__ = "audit_events"

    event_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, index=True)
    event_type: Mapped[str] = mapped_column(String(50))
    severity: Mapped[str] = mapped_column(String(20))
    entity_type: Mapped[Optional[str]] = mapped_column(String(50))
    entity_id: Mapped[Optional[str]] = mapped_column(String(36))
    user_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    correlation_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    description: Mapped[str] = mapped_column(String(500))
    details_json: Mapped[Optional[str]] = mapped_column(Text)
    error_message: Mapped[Optional[str]] = mapped_column(Text)


# Active names are unique per user (categories: per user and kind)
Index(
    "uq_accounts_user_name_active",
    AccountRow.user_id,
    AccountRow.name,
    unique=True,
    sqlite_where=AccountRow.is_archived.is_(False),
    postgresql_where=AccountRow.is_archived.is_(False),
)
Index(
    "uq_categories_user_kind_name_active",
    CategoryRow.user_id,
    CategoryRow.kind,
    CategoryRow.name,
    unique=True,
    sqlite_where=CategoryRow.is_archived.is_(False),
    postgresql_where=CategoryRow.is_archived.is_(False),
)
Index(
    "uq_income_sources_user_name_active",
    IncomeSourceRow.user_id,
    IncomeSourceRow.name,
    unique=True,
    sqlite_where=IncomeSourceRow.is_archived.is_(False),
    postgresql_where=IncomeSourceRow.is_archived.is_(False),
)
