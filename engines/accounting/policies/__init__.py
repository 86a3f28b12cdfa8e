"""
CRISTAL Accounting Engine — Policies
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from core.state.entities import FinancialTransaction

INCOME = "income"
EXPENSE = "expense"


def with_net_amount(transaction: FinancialTransaction) -> FinancialTransaction:
    """Fill net_amount as amount minus fee when the caller left it empty."""
    if transaction.net_amount is not None:
        return transaction
    return replace(
        transaction, net_amount=round(transaction.amount - (transaction.fee or 0), 2)
    )


def cash_balance(transactions: Iterable[FinancialTransaction], initial_balance: float = 0.0) -> float:
    """Paid income minus paid expenses, on net amounts."""
    balance = float(initial_balance or 0)
    for t in transactions:
        if t.status != "paid":
            continue
        amount = t.net_amount if t.net_amount is not None else t.amount
        balance += amount if t.type == INCOME else -abs(amount)
    return round(balance, 2)
