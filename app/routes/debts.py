"""
Debts and debt payments.

Fixed paths (/bulk-delete, /payments) are declared before /{debt_id}
so they are not captured as ids.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_services
from app.routes.common import SUCCESS, bulk_delete
from src.models import (
    BulkDeleteResult,
    DebtCreate,
    DebtOut,
    DebtUpdate,
    PaymentCreate,
    PaymentOut,
    PaymentUpdate,
    PaymentWithDebtOut,
    UserOut,
)
from src.orchestrator import LedgerServices


router = APIRouter(prefix="/debts", tags=["debts"])


@router.get("", response_model=list[DebtOut])
def list_debts(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[DebtOut]:
    return services.store.list_debts(user.id)


@router.post("", response_model=DebtOut, status_code=201)
def create_debt(
    body: DebtCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> DebtOut:
    debt = services.store.create_debt(user.id, body)
    services.audit.log_created(user.id, "debt", debt.id)
    return debt


@router.delete("/bulk-delete", response_model=BulkDeleteResult)
def delete_all_debts(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> BulkDeleteResult:
    return bulk_delete(services, user, "debts", "debt")


# -----------------------------------------------------------------------------
# Payments
# -----------------------------------------------------------------------------

@router.get("/payments", response_model=list[PaymentWithDebtOut])
def list_payments(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[PaymentWithDebtOut]:
    return services.reconciler.list_payments(user.id)


@router.post("/payments", response_model=PaymentOut, status_code=201)
def record_payment(
    body: PaymentCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> PaymentOut:
    return services.reconciler.record_payment(user.id, body)


@router.get("/payments/{payment_id}", response_model=PaymentWithDebtOut)
def get_payment(
    payment_id: str,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> PaymentWithDebtOut:
    return services.reconciler.get_payment(user.id, payment_id)


@router.put("/payments/{payment_id}", response_model=PaymentOut)
def update_payment(
    payment_id: str,
    body: PaymentUpdate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> PaymentOut:
    return services.reconciler.update_payment(user.id, payment_id, body)


@router.delete("/payments/{payment_id}")
def delete_payment(
    payment_id: str,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> dict:
    services.reconciler.delete_payment(user.id, payment_id)
    return SUCCESS


# -----------------------------------------------------------------------------
# Single debt
# -----------------------------------------------------------------------------

@router.get("/{debt_id}", response_model=DebtOut)
def get_debt(
    debt_id: str,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> DebtOut:
    return services.store.get_debt(user.id, debt_id)


@router.put("/{debt_id}", response_model=DebtOut)
def update_debt(
    debt_id: str,
    body: DebtUpdate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> DebtOut:
    debt, fields = services.store.update_debt(user.id, debt_id, body)
    services.audit.log_updated(user.id, "debt", debt.id, fields)
    return debt


@router.delete("/{debt_id}")
def delete_debt(
    debt_id: str,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> dict:
    services.store.delete_debt(user.id, debt_id)
    services.audit.log_deleted(user.id, "debt", debt_id)
    return SUCCESS
