"""
Data Models Package

This package contains all Pydantic models used in Syphon Ledger.
All data crossing the API boundary must conform to these schemas.
"""

from src.models.ledger import (
    AccountCreate,
    AccountOut,
    AccountType,
    BulkDeleteResult,
    CategoryCreate,
    CategoryKind,
    CategoryOut,
    ContributionCreate,
    ContributionOut,
    CurrencyCode,
    DebtCreate,
    DebtOut,
    DebtSummaryOut,
    DebtType,
    DebtUpdate,
    GoalCreate,
    GoalOut,
    GoalUpdate,
    ImportRequest,
    ImportSummary,
    IncomeSourceCreate,
    IncomeSourceOut,
    PaymentCreate,
    PaymentOut,
    PaymentUpdate,
    PaymentWithDebtOut,
    SetupResult,
    TransactionCreate,
    TransactionOut,
    TransactionType,
    UserIdentity,
    UserOut,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AccountCreate",
    "AccountOut",
    "AccountType",
    "BulkDeleteResult",
    "CategoryCreate",
    "CategoryKind",
    "CategoryOut",
    "ContributionCreate",
    "ContributionOut",
    "CurrencyCode",
    "DebtCreate",
    "DebtOut",
    "DebtSummaryOut",
    "DebtType",
    "DebtUpdate",
    "GoalCreate",
    "GoalOut",
    "GoalUpdate",
    "ImportRequest",
    "ImportSummary",
    "IncomeSourceCreate",
    "IncomeSourceOut",
    "PaymentCreate",
    "PaymentOut",
    "PaymentUpdate",
    "PaymentWithDebtOut",
    "SetupResult",
    "TransactionCreate",
    "TransactionOut",
    "TransactionType",
    "UserIdentity",
    "UserOut",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
