"""
CRISTAL HR Engine — Service Layer
===================================
Employees, their pay ledger and PIN login.

Employee.balance is kept consistent with the ledger by adjustment
after every successful ledger write; `recalculate_employee_balance`
re-derives it from the full ledger.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from core.state.entities import Employee, EmployeeTransaction
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

from engines.hr.policies import ledger_balance, signed_amount

logger = logging.getLogger("cristal.hr")


class HRService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store
        self._current_user: Optional[Employee] = None

    # ── Employees ─────────────────────────────────────────────

    def list_employees(self) -> List[Employee]:
        return self._store.all(Collection.EMPLOYEES)

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._store.get(Collection.EMPLOYEES, employee_id)

    async def add_employee(self, employee: Employee) -> Optional[Employee]:
        if employee.created_at is None:
            employee = replace(employee, created_at=now_iso(self._pipeline.clock))
        return await self._pipeline.create(Collection.EMPLOYEES, employee)

    async def update_employee(self, employee_id: str, **changes) -> bool:
        return await self._pipeline.update(Collection.EMPLOYEES, employee_id, changes)

    async def delete_employee(self, employee_id: str) -> bool:
        return await self._pipeline.delete(Collection.EMPLOYEES, employee_id)

    # ── PIN login ─────────────────────────────────────────────

    @property
    def current_user(self) -> Optional[Employee]:
        return self._current_user

    def login(self, pin: str) -> bool:
        employee = self._store.find(
            Collection.EMPLOYEES, lambda e: e.active and e.pin and e.pin == pin
        )
        self._current_user = employee or self._current_user
        return employee is not None

    def logout(self) -> None:
        self._current_user = None

    # ── Ledger ────────────────────────────────────────────────

    def get_employee_transactions(self, employee_id: str) -> List[EmployeeTransaction]:
        return self._store.filter(
            Collection.EMPLOYEE_TRANSACTIONS, lambda t: t.employee_id == employee_id
        )

    async def add_employee_transaction(
        self, transaction: EmployeeTransaction
    ) -> Optional[EmployeeTransaction]:
        if self.get_employee(transaction.employee_id) is None:
            logger.warning("transaction for unknown employee %s", transaction.employee_id)
            return None
        if transaction.date is None:
            transaction = replace(transaction, date=now_iso(self._pipeline.clock))
        transaction = replace(transaction, amount=abs(float(transaction.amount)))
        stored = await self._pipeline.create(Collection.EMPLOYEE_TRANSACTIONS, transaction)
        if stored is not None:
            await self._adjust_balance(stored.employee_id, signed_amount(stored))
        return stored

    async def update_employee_transaction(self, transaction_id: str, **changes) -> bool:
        current = self._store.get(Collection.EMPLOYEE_TRANSACTIONS, transaction_id)
        if current is None:
            return False
        if "amount" in changes:
            changes["amount"] = abs(float(changes["amount"]))
        ok = await self._pipeline.update(Collection.EMPLOYEE_TRANSACTIONS, transaction_id, changes)
        if not ok:
            return False
        updated = self._store.get(Collection.EMPLOYEE_TRANSACTIONS, transaction_id)
        if updated.employee_id != current.employee_id:
            await self._adjust_balance(current.employee_id, -signed_amount(current))
            await self._adjust_balance(updated.employee_id, signed_amount(updated))
        else:
            delta = signed_amount(updated) - signed_amount(current)
            if delta:
                await self._adjust_balance(updated.employee_id, delta)
        return True

    async def delete_employee_transaction(self, transaction_id: str) -> bool:
        current = self._store.get(Collection.EMPLOYEE_TRANSACTIONS, transaction_id)
        if current is None:
            return False
        ok = await self._pipeline.delete(Collection.EMPLOYEE_TRANSACTIONS, transaction_id)
        if ok:
            await self._adjust_balance(current.employee_id, -signed_amount(current))
        return ok

    async def recalculate_employee_balance(self, employee_id: str) -> bool:
        if self.get_employee(employee_id) is None:
            return False
        balance = ledger_balance(self._store.all(Collection.EMPLOYEE_TRANSACTIONS), employee_id)
        return await self.update_employee(employee_id, balance=balance)

    async def _adjust_balance(self, employee_id: str, delta: float) -> bool:
        employee = self.get_employee(employee_id)
        if employee is None:
            return False
        ok = await self.update_employee(employee_id, balance=round(employee.balance + delta, 2))
        if not ok:
            logger.warning(
                "balance of employee %s not adjusted by %.2f; ledger and balance diverge",
                employee_id, delta,
            )
        return ok
