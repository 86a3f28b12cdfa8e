"""
CRISTAL SaaS — Tenant Account
===============================
Company settings, token wallet and plan changes for the active
tenant. All three live in the tenant row (`settings` and
`subscription` documents) and are written through the pipeline.

Token wallet:
- buy_tokens credits the balance and appends a credit entry.
- consume_tokens debits only when the balance covers the amount.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Mapping

from core.actions.result import ActionResult, ReasonCode
from core.config.defaults import deep_merge
from core.saas.plans import get_plan
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

logger = logging.getLogger("cristal.saas")

SUBSCRIPTION_ACTIVE = "active"


def _history_entry(kind: str, amount: int, description: str, date: str) -> Dict[str, Any]:
    return {
        "id": f"tk-{uuid.uuid4().hex[:12]}",
        "type": kind,
        "amount": amount,
        "description": description,
        "date": date,
    }


class TenantAccountService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store

    @property
    def token_balance(self) -> int:
        tenant = self._store.tenant
        return int(tenant.subscription.get("token_balance", 0)) if tenant else 0

    async def update_company_settings(self, changes: Mapping[str, Any]) -> bool:
        tenant = self._store.tenant
        if tenant is None:
            return False
        return await self._pipeline.update_tenant(settings=deep_merge(tenant.settings, changes))

    async def buy_tokens(self, amount: int, cost: float) -> bool:
        tenant = self._store.tenant
        if tenant is None or amount <= 0:
            return False
        date = now_iso(self._pipeline.clock)
        subscription = dict(tenant.subscription)
        subscription["token_balance"] = self.token_balance + int(amount)
        subscription["token_history"] = [
            _history_entry("credit", int(amount), f"Compra de {amount} tokens (R$ {cost:.2f})", date),
            *subscription.get("token_history", []),
        ]
        return await self._pipeline.update_tenant(subscription=subscription)

    async def consume_tokens(self, amount: int, description: str) -> ActionResult:
        tenant = self._store.tenant
        if tenant is None:
            return ActionResult.fail(ReasonCode.NO_ACTIVE_TENANT, "Nenhuma loja ativa.")
        balance = self.token_balance
        if amount <= 0 or balance < amount:
            return ActionResult.fail(
                ReasonCode.INSUFFICIENT_TOKENS,
                f"Saldo insuficiente: {balance} tokens disponíveis, {amount} necessários.",
            )
        subscription = dict(tenant.subscription)
        subscription["token_balance"] = balance - int(amount)
        subscription["token_history"] = [
            _history_entry("debit", int(amount), description, now_iso(self._pipeline.clock)),
            *subscription.get("token_history", []),
        ]
        if not await self._pipeline.update_tenant(subscription=subscription):
            return ActionResult.fail(ReasonCode.PERSISTENCE_FAILED, "Não foi possível debitar os tokens.")
        return ActionResult.ok("Tokens debitados.", token_balance=subscription["token_balance"])

    async def change_plan(self, plan_id: str) -> ActionResult:
        tenant = self._store.tenant
        if tenant is None:
            return ActionResult.fail(ReasonCode.NO_ACTIVE_TENANT, "Nenhuma loja ativa.")
        plan = get_plan(plan_id)
        if plan is None:
            return ActionResult.fail(ReasonCode.UNKNOWN_PLAN, f"Plano '{plan_id}' não existe.")

        now = self._pipeline.clock.now_utc()
        subscription = dict(tenant.subscription)
        subscription.update({
            "plan_id": plan.plan_id,
            "status": SUBSCRIPTION_ACTIVE,
            "next_billing_date": (now + timedelta(days=plan.billing_cycle_days)).isoformat(),
            "token_balance": self.token_balance + plan.included_tokens,
        })
        subscription["token_history"] = [
            _history_entry("credit", plan.included_tokens, f"Tokens do plano {plan.name}", now.isoformat()),
            *subscription.get("token_history", []),
        ]
        ok = await self._pipeline.update_tenant(plan_id=plan.plan_id, subscription=subscription)
        if not ok:
            return ActionResult.fail(ReasonCode.PERSISTENCE_FAILED, "Não foi possível alterar o plano.")
        logger.info("tenant %s moved to plan %s", tenant.id, plan.plan_id)
        return ActionResult.ok(f"Plano {plan.name} ativado.", plan_id=plan.plan_id)
