"""
Syphon Ledger - Source Package

A personal-finance ledger service: income and expense transactions,
categories, accounts, debts with payments, savings goals with
contributions, and CSV bank-statement import.

DESIGN PRINCIPLES:
1. Every row belongs to exactly one user, every query says so
2. Aggregates (debt balance, goal amount) move in the same transaction as their rows
3. Fail early, fail visibly
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Syphon Team"
