"""
Tests for balance reconciliation.

Every test checks the aggregate straight from the store afterwards,
never from the value a reconciler call returned.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal

import pytest

from src.errors import ConflictError, NotFoundError, ValidationError
from src.models import (
    AuditEventType,
    ContributionCreate,
    DebtCreate,
    GoalCreate,
    PaymentCreate,
    PaymentUpdate,
    UserIdentity,
)
from src.reconciliation import BalanceReconciler
from src.services.storage import LedgerStore


def pay(debt_id: str, amount: str, day: int = 1) -> PaymentCreate:
    return PaymentCreate(
        debt_id=debt_id,
        amount=Decimal(amount),
        occurred_at=datetime(2024, 1, day),
    )


def contribute(goal_id: str, amount: str) -> ContributionCreate:
    return ContributionCreate(goal_id=goal_id, amount=Decimal(amount), occurred_at=datetime(2024, 1, 1))


class TestDebtPayments:

    def test_payment_reduces_balance(self, store, reconciler, user, debt):
        reconciler.record_payment(user.id, pay(debt.id, "100.00"))
        assert store.get_debt(user.id, debt.id).balance == Decimal("900.00")

    def test_successive_payments_all_land(self, store, reconciler, user, debt):
        """No lost update: each payment is applied to the current balance."""
        for day in range(1, 6):
            reconciler.record_payment(user.id, pay(debt.id, "10.00", day))
        refreshed = store.get_debt(user.id, debt.id)
        assert refreshed.balance == Decimal("950.00")
        assert len(refreshed.payments) == 5

    def test_delete_restores_balance(self, store, reconciler, user, debt):
        payment = reconciler.record_payment(user.id, pay(debt.id, "250.00"))
        reconciler.delete_payment(user.id, payment.id)

        refreshed = store.get_debt(user.id, debt.id)
        assert refreshed.balance == Decimal("1000.00")
        assert refreshed.payments == []

    def test_amount_edit_applies_difference(self, store, reconciler, user, debt):
        payment = reconciler.record_payment(user.id, pay(debt.id, "100.00"))

        updated = reconciler.update_payment(
            user.id, payment.id, PaymentUpdate(amount=Decimal("150.00"))
        )
        assert updated.amount == Decimal("150.00")
        assert store.get_debt(user.id, debt.id).balance == Decimal("850.00")

        reconciler.update_payment(user.id, payment.id, PaymentUpdate(amount=Decimal("40.00")))
        assert store.get_debt(user.id, debt.id).balance == Decimal("960.00")

    def test_non_amount_edit_leaves_balance(self, store, reconciler, user, debt):
        payment = reconciler.record_payment(user.id, pay(debt.id, "100.00"))
        updated = reconciler.update_payment(user.id, payment.id, PaymentUpdate(note="March"))

        assert updated.note == "March"
        assert store.get_debt(user.id, debt.id).balance == Decimal("900.00")

    def test_overpayment_is_recorded(self, store, reconciler, user, debt):
        reconciler.record_payment(user.id, pay(debt.id, "1200.00"))
        assert store.get_debt(user.id, debt.id).balance == Decimal("-200.00")

    def test_non_positive_amount_is_rejected(self, store, reconciler, user, debt):
        bad = PaymentCreate.model_construct(
            debt_id=debt.id,
            amount=Decimal("0"),
            occurred_at=datetime(2024, 1, 1),
            principal=None,
            interest=None,
            note=None,
        )
        with pytest.raises(ValidationError):
            reconciler.record_payment(user.id, bad)
        assert store.get_debt(user.id, debt.id).balance == Decimal("1000.00")

    def test_unknown_debt_is_not_found(self, reconciler, user):
        with pytest.raises(NotFoundError):
            reconciler.record_payment(user.id, pay("no-such-debt", "10.00"))

    def test_list_and_get_include_debt(self, reconciler, user, debt):
        first = reconciler.record_payment(user.id, pay(debt.id, "10.00", 1))
        second = reconciler.record_payment(user.id, pay(debt.id, "20.00", 2))

        listed = reconciler.list_payments(user.id)
        assert [p.id for p in listed] == [second.id, first.id]
        assert listed[0].debt.name == "Visa"
        assert set(listed[0].debt.model_dump()) == {"id", "name", "type"}

        fetched = reconciler.get_payment(user.id, first.id)
        assert fetched.debt.id == debt.id

    def test_payment_events_are_audited(self, reconciler, audit_storage, user, debt):
        payment = reconciler.record_payment(user.id, pay(debt.id, "10.00"))
        reconciler.delete_payment(user.id, payment.id)

        events = audit_storage.get_events_by_entity("debt_payment", payment.id)
        assert {e.event_type for e in events} == {
            AuditEventType.PAYMENT_RECORDED,
            AuditEventType.PAYMENT_DELETED,
        }


class TestAtomicity:
    """A failure after the child write must leave the aggregate untouched."""

    @staticmethod
    def explode(*args, **kwargs):
        raise RuntimeError("disk full")

    def test_failed_balance_update_rolls_back_payment(
        self, store, reconciler, user, debt, monkeypatch
    ):
        from src.reconciliation import balances

        monkeypatch.setattr(balances, "_adjust_debt_balance", self.explode)

        with pytest.raises(RuntimeError):
            reconciler.record_payment(user.id, pay(debt.id, "100.00"))

        refreshed = store.get_debt(user.id, debt.id)
        assert refreshed.balance == Decimal("1000.00")
        assert refreshed.payments == []
        assert reconciler.list_payments(user.id) == []

    def test_failed_balance_update_keeps_deleted_payment(
        self, store, reconciler, user, debt, monkeypatch
    ):
        from src.reconciliation import balances

        payment = reconciler.record_payment(user.id, pay(debt.id, "100.00"))
        monkeypatch.setattr(balances, "_adjust_debt_balance", self.explode)

        with pytest.raises(RuntimeError):
            reconciler.delete_payment(user.id, payment.id)

        refreshed = store.get_debt(user.id, debt.id)
        assert refreshed.balance == Decimal("900.00")
        assert [p.id for p in refreshed.payments] == [payment.id]

    def test_failed_goal_update_rolls_back_contribution(
        self, store, reconciler, user, goal, monkeypatch
    ):
        from src.reconciliation import balances

        monkeypatch.setattr(balances, "_adjust_goal_amount", self.explode)

        with pytest.raises(RuntimeError):
            reconciler.record_contribution(user.id, contribute(goal.id, "75.00"))

        [refreshed] = store.list_goals(user.id)
        assert refreshed.current_amount == Decimal("0.00")
        assert refreshed.contributions == []

    def test_failed_goal_update_keeps_deleted_contribution(
        self, store, reconciler, user, goal, monkeypatch
    ):
        from src.reconciliation import balances

        contribution = reconciler.record_contribution(user.id, contribute(goal.id, "75.00"))
        monkeypatch.setattr(balances, "_adjust_goal_amount", self.explode)

        with pytest.raises(RuntimeError):
            reconciler.delete_contribution(user.id, contribution.id)

        [refreshed] = store.list_goals(user.id)
        assert refreshed.current_amount == Decimal("75.00")
        assert [c.id for c in refreshed.contributions] == [contribution.id]


class TestConcurrency:
    """Racing requests against an on-disk database, one connection per thread."""

    THREADS = 6

    @pytest.fixture
    def setup(self, file_database):
        store = LedgerStore(file_database)
        user, _ = store.ensure_user(UserIdentity(external_id="user_race"))
        debt = store.create_debt(
            user.id,
            DebtCreate(name="Visa", balance=Decimal("1000.00"), min_payment=Decimal("25.00")),
        )
        goal = store.create_goal(user.id, GoalCreate(name="Car", target_amount=Decimal("5000.00")))
        return store, BalanceReconciler(file_database), user, debt, goal

    def race(self, action, args_list):
        """Release every call at once. Returns (results, errors)."""
        barrier = threading.Barrier(len(args_list))

        def run(args):
            barrier.wait()
            try:
                return action(*args), None
            except Exception as e:
                return None, e

        with ThreadPoolExecutor(max_workers=len(args_list)) as pool:
            outcomes = list(pool.map(run, args_list))
        return [r for r, _ in outcomes], [e for _, e in outcomes if e is not None]

    def test_concurrent_payments_all_land(self, setup):
        store, reconciler, user, debt, _ = setup

        _, errors = self.race(
            reconciler.record_payment,
            [(user.id, pay(debt.id, "10.00")) for _ in range(self.THREADS)],
        )

        assert errors == []
        refreshed = store.get_debt(user.id, debt.id)
        assert refreshed.balance == Decimal("1000.00") - 10 * self.THREADS
        assert len(refreshed.payments) == self.THREADS

    def test_concurrent_deletes_refund_once(self, setup):
        store, reconciler, user, debt, _ = setup
        payment = reconciler.record_payment(user.id, pay(debt.id, "100.00"))

        _, errors = self.race(
            reconciler.delete_payment, [(user.id, payment.id)] * self.THREADS
        )

        assert len(errors) == self.THREADS - 1
        assert all(isinstance(e, NotFoundError) for e in errors)
        assert store.get_debt(user.id, debt.id).balance == Decimal("1000.00")

    def test_concurrent_contribution_deletes_subtract_once(self, setup):
        store, reconciler, user, _, goal = setup
        contribution = reconciler.record_contribution(user.id, contribute(goal.id, "50.00"))

        _, errors = self.race(
            reconciler.delete_contribution, [(user.id, contribution.id)] * self.THREADS
        )

        assert len(errors) == self.THREADS - 1
        assert all(isinstance(e, NotFoundError) for e in errors)
        assert store.list_goals(user.id)[0].current_amount == Decimal("0.00")

    def test_concurrent_edits_keep_balance_consistent(self, setup):
        store, reconciler, user, debt, _ = setup
        payment = reconciler.record_payment(user.id, pay(debt.id, "100.00"))

        _, errors = self.race(
            reconciler.update_payment,
            [
                (user.id, payment.id, PaymentUpdate(amount=Decimal(110 + 10 * i)))
                for i in range(self.THREADS)
            ],
        )

        assert all(isinstance(e, ConflictError) for e in errors)
        final = reconciler.get_payment(user.id, payment.id)
        assert store.get_debt(user.id, debt.id).balance == Decimal("1000.00") - final.amount


class TestGoalContributions:

    def test_contribution_increases_current_amount(self, store, reconciler, user, goal):
        reconciler.record_contribution(
            user.id,
            ContributionCreate(goal_id=goal.id, amount=Decimal("75.00"), occurred_at=datetime(2024, 1, 1)),
        )
        reconciler.record_contribution(
            user.id,
            ContributionCreate(goal_id=goal.id, amount=Decimal("25.00"), occurred_at=datetime(2024, 1, 2)),
        )
        goals = store.list_goals(user.id)
        assert goals[0].current_amount == Decimal("100.00")
        assert len(goals[0].contributions) == 2

    def test_delete_contribution_decreases_current_amount(self, store, reconciler, user, goal):
        contribution = reconciler.record_contribution(
            user.id,
            ContributionCreate(goal_id=goal.id, amount=Decimal("75.00"), occurred_at=datetime(2024, 1, 1)),
        )
        reconciler.delete_contribution(user.id, contribution.id)
        assert store.list_goals(user.id)[0].current_amount == Decimal("0.00")


class TestCrossUserIsolation:
    """Another user's ids behave exactly like missing ids."""

    def test_cannot_pay_someone_elses_debt(self, store, reconciler, debt, user, other_user):
        with pytest.raises(NotFoundError):
            reconciler.record_payment(other_user.id, pay(debt.id, "10.00"))
        assert store.get_debt(user.id, debt.id).balance == Decimal("1000.00")

    def test_cannot_touch_someone_elses_payment(self, reconciler, user, other_user, debt):
        payment = reconciler.record_payment(user.id, pay(debt.id, "10.00"))

        with pytest.raises(NotFoundError):
            reconciler.get_payment(other_user.id, payment.id)
        with pytest.raises(NotFoundError):
            reconciler.update_payment(other_user.id, payment.id, PaymentUpdate(amount=Decimal("1.00")))
        with pytest.raises(NotFoundError):
            reconciler.delete_payment(other_user.id, payment.id)

    def test_cannot_contribute_to_someone_elses_goal(self, reconciler, other_user, goal):
        with pytest.raises(NotFoundError):
            reconciler.record_contribution(
                other_user.id,
                ContributionCreate(goal_id=goal.id, amount=Decimal("5.00"), occurred_at=datetime(2024, 1, 1)),
            )

    def test_store_reads_are_scoped(self, store, other_user, debt):
        with pytest.raises(NotFoundError):
            store.get_debt(other_user.id, debt.id)
        assert store.list_debts(other_user.id) == []

    def test_cannot_delete_someone_elses_contribution(
        self, store, reconciler, user, other_user, goal
    ):
        contribution = reconciler.record_contribution(user.id, contribute(goal.id, "40.00"))

        with pytest.raises(NotFoundError):
            reconciler.delete_contribution(other_user.id, contribution.id)
        assert store.list_goals(user.id)[0].current_amount == Decimal("40.00")
