"""
CRISTAL HR Engine — Policies
==============================
Staff pay arithmetic.

Ledger sign convention: commission and salary credit the employee,
advance and payment debit them. Amounts are stored as magnitudes.
"""

from __future__ import annotations

from typing import Iterable, Optional

from core.state.entities import (
    CommissionBase,
    Employee,
    EmployeeTransaction,
    EmployeeTransactionType,
    SalaryType,
)


def signed_amount(transaction: EmployeeTransaction) -> float:
    magnitude = abs(float(transaction.amount or 0))
    if transaction.type in EmployeeTransactionType.DEBITS:
        return -magnitude
    return magnitude


def ledger_balance(transactions: Iterable[EmployeeTransaction], employee_id: str) -> float:
    return round(
        sum(signed_amount(t) for t in transactions if t.employee_id == employee_id), 2
    )


def earns_commission(employee: Employee) -> bool:
    return employee.salary_type in SalaryType.EARNS_COMMISSION and employee.commission_rate > 0


def commission_base_amount(employee: Employee, total_value: float, service_cost: float) -> float:
    """Gross uses the order total; net subtracts material cost, floored at zero."""
    if employee.commission_base == CommissionBase.NET:
        return max(0.0, total_value - service_cost)
    return total_value


def commission_amount(employee: Employee, total_value: float, service_cost: float = 0.0) -> float:
    base = commission_base_amount(employee, total_value, service_cost)
    return round(base * employee.commission_rate / 100.0, 2)


def match_technician(employees: Iterable[Employee], technician: Optional[str]) -> Optional[Employee]:
    """Orders name their technician by employee name or id."""
    if not technician:
        return None
    wanted = technician.strip()
    for employee in employees:
        if employee.id == wanted or employee.name == wanted:
            return employee
    return None
