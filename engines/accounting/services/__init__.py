"""
CRISTAL Accounting Engine — Service Layer
===========================================
Shop ledger (income / expense). Financial transactions use their own
integer id space.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from core.state.entities import FinancialTransaction
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import today_iso

from engines.accounting.policies import cash_balance, with_net_amount


class AccountingService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store

    def list_transactions(self) -> List[FinancialTransaction]:
        return self._store.all(Collection.FINANCIAL_TRANSACTIONS)

    def balance(self) -> float:
        tenant = self._store.tenant
        initial = tenant.settings.get("initial_balance", 0) if tenant else 0
        return cash_balance(self.list_transactions(), initial)

    async def add_financial_transaction(
        self, transaction: FinancialTransaction
    ) -> Optional[FinancialTransaction]:
        transaction = with_net_amount(transaction)
        if transaction.date is None:
            transaction = replace(transaction, date=today_iso(self._pipeline.clock))
        return await self._pipeline.create(Collection.FINANCIAL_TRANSACTIONS, transaction)

    async def update_financial_transaction(self, transaction_id: int, **changes) -> bool:
        return await self._pipeline.update(Collection.FINANCIAL_TRANSACTIONS, transaction_id, changes)

    async def delete_financial_transaction(self, transaction_id: int) -> bool:
        return await self._pipeline.delete(Collection.FINANCIAL_TRANSACTIONS, transaction_id)
