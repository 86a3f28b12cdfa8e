"""
CRISTAL Workshop Engine — Work Order Completion
=================================================
Marks an order Concluído and fans out its side effects:

    1. stock      deduct each service's bill of materials (clamped at 0)
    2. points     floor(total_value * multiplier) when loyalty is enabled
    3. client     visit_count + 1, ltv + total_value, last_visit
    4. commission technician's commission on gross or net value

RULES:
- Effects run only after the status write succeeded.
- Each effect persists independently; a failure is logged and
  reported, never raised, and never undoes the other effects.
- Effects are idempotent per (order_id, effect). Applied effects are
  persisted on the order (`completion_effects`), so completing again only
  retries the effects that failed, and is a no-op once all applied.
- Finishing an order through `update_work_order` (status Concluído or
  Entregue) is routed here; WorkshopService refuses it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Set, Tuple

from core.state.entities import (
    CompletionEffect,
    EmployeeTransaction,
    EmployeeTransactionType,
    WorkOrder,
    WorkOrderStatus,
)
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

from engines.catalog.services import CatalogService
from engines.customer.services import CustomerService
from engines.hr.policies import commission_amount, earns_commission, match_technician
from engines.hr.services import HRService
from engines.inventory.services import InventoryService
from engines.loyalty.policies import earned_points
from engines.loyalty.services import LoyaltyService
from engines.workshop.policies import pending_effects, status_change_requires_completion
from engines.workshop.services import WorkshopService

logger = logging.getLogger("cristal.workshop")


@dataclass(frozen=True)
class CompletionReport:
    """What a completion actually changed."""

    order_id: str
    status_updated: bool
    skipped_reason: Optional[str] = None
    applied: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()
    points: int = 0
    commission: float = 0.0

    @property
    def partial(self) -> bool:
        return bool(self.failed)


@dataclass
class _Outcome:
    applied: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    points: int = 0
    commission: float = 0.0


class CompletionService:

    def __init__(
        self,
        pipeline: MutationPipeline,
        *,
        workshop: WorkshopService,
        inventory: InventoryService,
        loyalty: LoyaltyService,
        customers: CustomerService,
        hr: HRService,
        catalog: CatalogService,
    ) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store
        self._workshop = workshop
        self._inventory = inventory
        self._loyalty = loyalty
        self._customers = customers
        self._hr = hr
        self._catalog = catalog
        self._processed: Set[Tuple[str, str]] = set()

    async def complete_work_order(self, order_id: str) -> CompletionReport:
        order = self._store.get(Collection.WORK_ORDERS, order_id)
        if order is None:
            return CompletionReport(order_id, status_updated=False, skipped_reason="not_found")
        processed = {effect for (oid, effect) in self._processed if oid == order_id}
        pending = pending_effects(order, processed)
        finished = order.status in WorkOrderStatus.DONE
        if finished and not pending:
            logger.info("order %s already %s; completion skipped", order_id, order.status)
            return CompletionReport(order_id, status_updated=False, skipped_reason="already_completed")

        completed_at = order.completed_at or now_iso(self._pipeline.clock)
        if not finished:
            ok = await self._pipeline.update(
                Collection.WORK_ORDERS,
                order_id,
                {"status": WorkOrderStatus.COMPLETED, "completed_at": completed_at},
            )
            if not ok:
                return CompletionReport(order_id, status_updated=False, skipped_reason="status_update_failed")
        else:
            logger.info("order %s: retrying effects %s", order_id, ", ".join(pending))

        outcome = _Outcome()
        steps = {
            CompletionEffect.STOCK: lambda: self._deduct_stock(order),
            CompletionEffect.POINTS: lambda: self._credit_points(order, outcome),
            CompletionEffect.CLIENT: lambda: self._record_visit(order, completed_at),
            CompletionEffect.COMMISSION: lambda: self._credit_commission(order, outcome),
        }
        for effect in pending:
            await self._run_effect(order.id, effect, steps[effect], outcome)
        if outcome.applied:
            await self._record_effects(order_id, outcome.applied)

        if outcome.failed:
            logger.warning(
                "order %s completed with failed effects: %s", order_id, ", ".join(outcome.failed)
            )
        return CompletionReport(
            order_id,
            status_updated=not finished,
            applied=tuple(outcome.applied),
            failed=tuple(outcome.failed),
            points=outcome.points,
            commission=outcome.commission,
        )

    async def update_work_order(self, order_id: str, **changes) -> bool:
        """Field update that fires completion when the order is being finished."""
        order = self._store.get(Collection.WORK_ORDERS, order_id)
        target = changes.get("status")
        if order is None or not target or not status_change_requires_completion(order, target):
            return await self._workshop.update_work_order(order_id, **changes)

        others = {k: v for k, v in changes.items() if k != "status"}
        if others and not await self._workshop.update_work_order(order_id, **others):
            return False
        report = await self.complete_work_order(order_id)
        if not report.status_updated:
            return False
        if target != WorkOrderStatus.COMPLETED:
            return await self._workshop.update_work_order(order_id, status=target)
        return True

    async def _run_effect(
        self,
        order_id: str,
        effect: str,
        step: Callable[[], Awaitable[bool]],
        outcome: _Outcome,
    ) -> None:
        key = (order_id, effect)
        if key in self._processed:
            return
        try:
            ok = await step()
        except Exception:
            logger.exception("completion effect %s crashed for order %s", effect, order_id)
            ok = False
        if ok:
            self._processed.add(key)
            outcome.applied.append(effect)
        else:
            outcome.failed.append(effect)

    async def _record_effects(self, order_id: str, applied) -> None:
        current = self._store.get(Collection.WORK_ORDERS, order_id)
        if current is None:
            return
        done = set(current.completion_effects) | set(applied)
        effects = tuple(e for e in CompletionEffect.ORDER if e in done)
        if not await self._pipeline.update(
            Collection.WORK_ORDERS, order_id, {"completion_effects": effects}
        ):
            logger.warning("order %s: applied effects not persisted (%s)", order_id, ", ".join(effects))

    # ── Effects ───────────────────────────────────────────────

    async def _deduct_stock(self, order: WorkOrder) -> bool:
        results = [await self._inventory.deduct_stock(sid) for sid in order.service_ids]
        return all(results)

    async def _credit_points(self, order: WorkOrder, outcome: _Outcome) -> bool:
        program = self._loyalty.program
        if not program.enabled:
            return True
        points = earned_points(order.total_value, program.points_multiplier)
        if points <= 0:
            return True
        entry = await self._loyalty.add_points_to_client(
            order.client_id, order.id, points, f"Serviço OS #{order.id}"
        )
        if entry is None:
            return False
        outcome.points = points
        return True

    async def _record_visit(self, order: WorkOrder, completed_at: str) -> bool:
        return await self._customers.record_visit(order.client_id, order.total_value, completed_at)

    async def _credit_commission(self, order: WorkOrder, outcome: _Outcome) -> bool:
        employee = match_technician(self._hr.list_employees(), order.technician)
        if employee is None or not earns_commission(employee):
            return True
        cost = sum(self._catalog.calculate_service_cost(sid) for sid in order.service_ids)
        amount = commission_amount(employee, order.total_value, cost)
        if amount <= 0:
            return True
        stored = await self._hr.add_employee_transaction(
            EmployeeTransaction(
                id="",
                employee_id=employee.id,
                type=EmployeeTransactionType.COMMISSION,
                amount=amount,
                description=f"Comissão OS #{order.id}",
                related_work_order_id=order.id,
            )
        )
        if stored is None:
            return False
        outcome.commission = amount
        logger.info("commission %.2f credited to %s for order %s", amount, employee.id, order.id)
        return True
