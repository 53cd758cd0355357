"""
Balance Reconciler

Keeps Debt.balance and SavingsGoal.current_amount in step with the
payment and contribution rows that move them.

DESIGN DECISION: Aggregates are adjusted with a single SQL UPDATE
(balance = balance - :delta), never read-modify-write in Python, and
always inside the same transaction as the child row. Two concurrent
payments against one debt therefore both land, and a failure anywhere
leaves neither the child row nor the aggregate changed.

Flow for every mutation:
1. Resolve the owning aggregate, scoped to the caller (else NotFound)
2. Write the child row
3. Apply the aggregate delta
4. Commit, then emit the audit event

Removals delete the child row and read back its amount in one
DELETE ... RETURNING, so a row that a concurrent request already removed
is NotFound and is never refunded twice. Amount edits compare-and-set
on the amount they read.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from src.audit import AuditLogger
from src.errors import ConflictError, NotFoundError, ValidationError
from src.models.ledger import (
    ContributionCreate,
    ContributionOut,
    PaymentCreate,
    PaymentOut,
    PaymentUpdate,
    PaymentWithDebtOut,
)
from src.services.storage import Database, get_owned
from src.services.storage.tables import (
    DebtPaymentRow,
    DebtRow,
    GoalContributionRow,
    SavingsGoalRow,
)


def _require_positive(amount: Optional[Decimal], field: str = "amount") -> None:
    if amount is not None and amount <= 0:
        raise ValidationError(
            f"{field} must be greater than zero",
            details=[{"field": field, "message": "Must be greater than zero"}],
        )


def _adjust_debt_balance(session: Session, user_id: str, debt_id: str, delta: Decimal) -> None:
    """Subtract delta from the debt's balance. A negative delta adds."""
    result = session.execute(
        update(DebtRow)
        .where(DebtRow.id == debt_id, DebtRow.user_id == user_id)
        .values(balance=DebtRow.balance - delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Debt not found")


def _adjust_goal_amount(session: Session, user_id: str, goal_id: str, delta: Decimal) -> None:
    """Add delta to the goal's current_amount. A negative delta subtracts."""
    result = session.execute(
        update(SavingsGoalRow)
        .where(SavingsGoalRow.id == goal_id, SavingsGoalRow.user_id == user_id)
        .values(current_amount=SavingsGoalRow.current_amount + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Goal not found")


def _delete_returning(
    session: Session,
    row_cls,
    user_id: str,
    entity_id: str,
    label: str,
    parent,
):
    """Delete one owned child row. Returns (parent_id, amount) as deleted."""
    deleted = session.execute(
        delete(row_cls)
        .where(row_cls.id == entity_id, row_cls.user_id == user_id)
        .returning(parent, row_cls.amount)
        .execution_options(synchronize_session=False)
    ).one_or_none()
    if deleted is None:
        raise NotFoundError(f"{label} not found")
    return deleted[0], deleted[1]


class BalanceReconciler:
    """
    Records, edits and removes payments and contributions.

    Usage:
        reconciler = BalanceReconciler(database, audit_logger)
        payment = reconciler.record_payment(user_id, PaymentCreate(...))
    """

    def __init__(self, database: Database, audit_logger: Optional[AuditLogger] = None):
        self._db = database
        self._audit = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Debt payments
    # -------------------------------------------------------------------------

    def record_payment(self, user_id: str, data: PaymentCreate) -> PaymentOut:
        """
        Record a payment and reduce the debt's balance by its amount.

        Overpayment is allowed; the balance may go negative.

        Raises:
            NotFoundError: debt absent or not the caller's
            ValidationError: amount is not positive
        """
        _require_positive(data.amount)
        with self._db.session_scope() as session:
            get_owned(session, DebtRow, user_id, data.debt_id, "Debt")
            row = DebtPaymentRow(user_id=user_id, **data.model_dump())
            session.add(row)
            session.flush()
            _adjust_debt_balance(session, user_id, data.debt_id, data.amount)
            payment = PaymentOut.model_validate(row)

        self._audit.log_payment_recorded(user_id, payment.id, payment.debt_id, payment.amount)
        return payment

    def update_payment(self, user_id: str, payment_id: str, data: PaymentUpdate) -> PaymentOut:
        """
        Edit a payment. If the amount changes, the debt absorbs the difference.

        Raises:
            NotFoundError: payment absent or not the caller's
            ConflictError: the amount changed after it was read
        """
        _require_positive(data.amount)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        with self._db.session_scope() as session:
            row = session.scalars(
                select(DebtPaymentRow)
                .where(DebtPaymentRow.id == payment_id, DebtPaymentRow.user_id == user_id)
                .with_for_update()
            ).one_or_none()
            if row is None:
                raise NotFoundError("Payment not found")

            read_amount = row.amount
            delta = Decimal("0")
            if "amount" in changes:
                delta = changes["amount"] - read_amount
            if changes:
                result = session.execute(
                    update(DebtPaymentRow)
                    .where(
                        DebtPaymentRow.id == payment_id,
                        DebtPaymentRow.user_id == user_id,
                        DebtPaymentRow.amount == read_amount,
                    )
                    .values(**changes)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ConflictError("Payment was changed by another request")
            if delta:
                _adjust_debt_balance(session, user_id, row.debt_id, delta)
            session.refresh(row)
            payment = PaymentOut.model_validate(row)

        self._audit.log_payment_updated(user_id, payment.id, payment.debt_id, delta)
        return payment

    def delete_payment(self, user_id: str, payment_id: str) -> None:
        """Remove a payment and give its amount back to the debt."""
        with self._db.session_scope() as session:
            debt_id, amount = _delete_returning(
                session, DebtPaymentRow, user_id, payment_id, "Payment", DebtPaymentRow.debt_id
            )
            _adjust_debt_balance(session, user_id, debt_id, -amount)

        self._audit.log_payment_deleted(user_id, payment_id, debt_id, amount)

    def get_payment(self, user_id: str, payment_id: str) -> PaymentWithDebtOut:
        with self._db.session_scope() as session:
            row = get_owned(session, DebtPaymentRow, user_id, payment_id, "Payment")
            return PaymentWithDebtOut.model_validate(row)

    def list_payments(self, user_id: str) -> list[PaymentWithDebtOut]:
        """All of the caller's payments across debts, newest first."""
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(DebtPaymentRow)
                .where(DebtPaymentRow.user_id == user_id)
                .order_by(DebtPaymentRow.occurred_at.desc())
            ).all()
            return [PaymentWithDebtOut.model_validate(row) for row in rows]

    # -------------------------------------------------------------------------
    # Goal contributions
    # -------------------------------------------------------------------------

    def record_contribution(self, user_id: str, data: ContributionCreate) -> ContributionOut:
        """
        Record a contribution and add it to the goal's current_amount.

        Raises:
            NotFoundError: goal absent or not the caller's
            ValidationError: amount is not positive
        """
        _require_positive(data.amount)
        with self._db.session_scope() as session:
            get_owned(session, SavingsGoalRow, user_id, data.goal_id, "Goal")
            row = GoalContributionRow(user_id=user_id, **data.model_dump())
            session.add(row)
            session.flush()
            _adjust_goal_amount(session, user_id, data.goal_id, data.amount)
            contribution = ContributionOut.model_validate(row)

        self._audit.log_contribution_recorded(
            user_id, contribution.id, contribution.goal_id, contribution.amount
        )
        return contribution

    def delete_contribution(self, user_id: str, contribution_id: str) -> None:
        with self._db.session_scope() as session:
            goal_id, amount = _delete_returning(
                session,
                GoalContributionRow,
                user_id,
                contribution_id,
                "Contribution",
                GoalContributionRow.goal_id,
            )
            _adjust_goal_amount(session, user_id, goal_id, -amount)

        self._audit.log_contribution_deleted(user_id, contribution_id, goal_id, amount)
