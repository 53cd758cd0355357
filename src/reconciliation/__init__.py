"""Balance reconciliation: payments against debts, contributions into goals."""

from src.reconciliation.balances import BalanceReconciler

__all__ = ["BalanceReconciler"]
