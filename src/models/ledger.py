"""
Core Data Models for Syphon Ledger

These models define the strict schemas for all data crossing the API
boundary and coming back out of the ledger store. They are designed to:
1. Enforce type safety and range checks at runtime
2. Provide clear validation error messages
3. Speak camelCase on the wire, snake_case in Python
4. Be built straight from ORM rows (from_attributes)

DESIGN DECISION: Money is always Decimal. Floats never touch a balance.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money movement."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class CategoryKind(str, Enum):
    """Categories are split by the direction they classify."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class AccountType(str, Enum):
    """Where money is held or spent from."""
    CURRENT = "CURRENT"
    SAVINGS = "SAVINGS"
    CREDIT_CARD = "CREDIT_CARD"
    CASH = "CASH"
    INVESTMENT = "INVESTMENT"
    OTHER = "OTHER"  # Default for accounts created by CSV import


class DebtType(str, Enum):
    """Kinds of debt a user can track."""
    CREDIT_CARD = "CREDIT_CARD"
    STUDENT_LOAN = "STUDENT_LOAN"
    PERSONAL_LOAN = "PERSONAL_LOAN"
    MORTGAGE = "MORTGAGE"
    CAR_LOAN = "CAR_LOAN"
    OTHER = "OTHER"


class CurrencyCode(str, Enum):
    """Supported user currencies."""
    GBP = "GBP"
    USD = "USD"
    EUR = "EUR"
    CAD = "CAD"
    AUD = "AUD"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; aware inputs are converted."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


class LedgerModel(BaseModel):
    """Base for every ledger schema: camelCase aliases, whitespace stripped."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# IDENTITY
# =============================================================================

class UserIdentity(LedgerModel):
    """
    Identity handed over by the upstream auth provider.

    Only external_id is guaranteed; everything else is best effort.
    """
    external_id: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=2)


class UserOut(LedgerModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    currency: CurrencyCode
    timezone: str
    created_at: datetime


# =============================================================================
# ACCOUNTS, CATEGORIES, INCOME SOURCES
# =============================================================================

class AccountCreate(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    provider: Optional[str] = Field(default=None, max_length=100)
    last_four_digits: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}$",
        description="Last four digits of the card or account number"
    )


class AccountOut(LedgerModel):
    id: str
    name: str
    type: AccountType
    provider: Optional[str] = None
    last_four_digits: Optional[str] = None
    is_archived: bool
    created_at: datetime


class CategoryCreate(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)
    kind: CategoryKind
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    icon: Optional[str] = Field(default=None, max_length=50)


class CategoryOut(LedgerModel):
    id: str
    name: str
    kind: CategoryKind
    color: Optional[str] = None
    icon: Optional[str] = None
    is_archived: bool
    created_at: datetime


class IncomeSourceCreate(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)


class IncomeSourceOut(LedgerModel):
    id: str
    name: str
    is_archived: bool
    created_at: datetime


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionCreate(LedgerModel):
    type: TransactionType
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    occurred_at: UtcDateTime
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    income_source_id: Optional[str] = None


class TransactionOut(LedgerModel):
    id: str
    type: TransactionType
    amount: Decimal
    currency: CurrencyCode
    occurred_at: datetime
    description: Optional[str] = None
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    income_source_id: Optional[str] = None
    category: Optional[CategoryOut] = None
    income_source: Optional[IncomeSourceOut] = None
    created_at: datetime


# =============================================================================
# DEBTS AND PAYMENTS
# =============================================================================

class DebtCreate(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: DebtType = DebtType.OTHER
    balance: Decimal = Field(..., gt=0, decimal_places=2)
    apr: Optional[Decimal] = Field(default=None, ge=0, le=100)
    min_payment: Decimal = Field(..., gt=0, decimal_places=2)
    lender: Optional[str] = Field(default=None, max_length=100)
    due_day_of_month: Optional[int] = Field(default=None, ge=1, le=31)


class DebtUpdate(LedgerModel):
    """
    Partial debt update.

    Setting balance directly is allowed (e.g. to match a statement);
    payments then keep adjusting from the new figure.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[DebtType] = None
    balance: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    apr: Optional[Decimal] = Field(default=None, ge=0, le=100)
    min_payment: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    lender: Optional[str] = Field(default=None, max_length=100)
    due_day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    is_closed: Optional[bool] = None


class PaymentCreate(LedgerModel):
    debt_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    occurred_at: UtcDateTime
    principal: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    interest: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    note: Optional[str] = Field(default=None, max_length=500)


class PaymentUpdate(LedgerModel):
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    occurred_at: Optional[UtcDateTime] = None
    principal: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    interest: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    note: Optional[str] = Field(default=None, max_length=500)


class PaymentOut(LedgerModel):
    id: str
    debt_id: str
    amount: Decimal
    occurred_at: datetime
    principal: Optional[Decimal] = None
    interest: Optional[Decimal] = None
    note: Optional[str] = None
    created_at: datetime


class DebtOut(LedgerModel):
    id: str
    name: str
    type: DebtType
    balance: Decimal
    apr: Optional[Decimal] = None
    min_payment: Decimal
    lender: Optional[str] = None
    due_day_of_month: Optional[int] = None
    is_closed: bool
    created_at: datetime
    payments: list[PaymentOut] = Field(default_factory=list)


class DebtSummaryOut(LedgerModel):
    """Just enough of a debt to label a payment with."""
    id: str
    name: str
    type: DebtType


class PaymentWithDebtOut(PaymentOut):
    """Payment listing entry, carrying the owning debt for display."""
    debt: DebtSummaryOut


# =============================================================================
# SAVINGS GOALS AND CONTRIBUTIONS
# =============================================================================

class GoalCreate(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    deadline: Optional[date] = None


class GoalUpdate(LedgerModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    target_amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    deadline: Optional[date] = None
    is_archived: Optional[bool] = None


class ContributionCreate(LedgerModel):
    goal_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    occurred_at: UtcDateTime
    note: Optional[str] = Field(default=None, max_length=500)


class ContributionOut(LedgerModel):
    id: str
    goal_id: str
    amount: Decimal
    occurred_at: datetime
    note: Optional[str] = None
    created_at: datetime


class GoalOut(LedgerModel):
    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    deadline: Optional[date] = None
    is_archived: bool
    created_at: datetime
    contributions: list[ContributionOut] = Field(default_factory=list)


# =============================================================================
# CSV IMPORT
# =============================================================================

class ImportRequest(LedgerModel):
    """
    A pasted or uploaded statement plus the user's column mapping.

    Column names must match header cells exactly (after trimming).
    """
    csv_data: str = Field(..., min_length=1)
    date_column: str = Field(..., min_length=1)
    amount_column: str = Field(..., min_length=1)
    category_column: str = Field(..., min_length=1)
    merchant_column: Optional[str] = None
    description_column: Optional[str] = None
    account_column: Optional[str] = None
    retention_days: Optional[int] = Field(
        default=None,
        ge=1,
        le=3650,
        description="Override the configured retention window (e.g. 90 or 365)"
    )


class ImportSummary(LedgerModel):
    success: bool = True
    imported: int = Field(ge=0)
    skipped: int = Field(ge=0)
    skipped_reasons: list[str] = Field(default_factory=list)
    categories_created: int = Field(ge=0)
    accounts_created: int = Field(ge=0)
    message: str


# =============================================================================
# MISC RESPONSES
# =============================================================================

class BulkDeleteResult(LedgerModel):
    success: bool = True
    deleted: int = Field(ge=0)
    message: str


class SetupResult(LedgerModel):
    categories_created: int = 0
    sources_created: int = 0
    skipped: bool = False
