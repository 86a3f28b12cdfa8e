"""
CRISTAL Workshop Engine — Service Layer
=========================================
Work orders, their per-service tasks and NPS feedback.
Completion side effects live in engines.workshop.completion.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import List, Optional, Tuple

from core.state.entities import Task, WorkOrder, WorkOrderStatus
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

from engines.workshop.policies import (
    TASK_COMPLETED,
    TASK_IN_PROGRESS,
    nps_score_is_valid,
    order_accepts_tasks,
    status_change_requires_completion,
    task_can_move,
)

logger = logging.getLogger("cristal.workshop")


class WorkshopService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store

    def list_work_orders(self) -> List[WorkOrder]:
        return self._store.all(Collection.WORK_ORDERS)

    def get_work_order(self, order_id: str) -> Optional[WorkOrder]:
        return self._store.get(Collection.WORK_ORDERS, order_id)

    async def add_work_order(self, order: WorkOrder) -> Optional[WorkOrder]:
        if order.created_at is None:
            order = replace(order, created_at=now_iso(self._pipeline.clock))
        return await self._pipeline.create(Collection.WORK_ORDERS, order)

    async def update_work_order(self, order_id: str, **changes) -> bool:
        """
        Plain field update. Finishing an order (Concluído or Entregue from an
        unfinished status) is refused here; it goes through
        CompletionService so the completion effects fire.
        """
        order = self.get_work_order(order_id)
        target = changes.get("status")
        if order is not None and target and status_change_requires_completion(order, target):
            logger.warning("order %s cannot move to %s outside completion", order_id, target)
            return False
        return await self._pipeline.update(Collection.WORK_ORDERS, order_id, changes)

    async def submit_nps(self, order_id: str, score: int, comment: Optional[str] = None) -> bool:
        if not nps_score_is_valid(score):
            logger.warning("NPS score %r for order %s rejected", score, order_id)
            return False
        changes = {"nps_score": score}
        if comment is not None:
            changes["nps_comment"] = comment
        return await self.update_work_order(order_id, **changes)

    # ── Tasks ─────────────────────────────────────────────────

    async def assign_task(self, order_id: str, service_id: str, employee_id: str) -> bool:
        """Assign the order's task for `service_id`, creating it on first assignment."""
        order = self.get_work_order(order_id)
        if order is None or not order_accepts_tasks(order):
            return False
        if self._store.get(Collection.EMPLOYEES, employee_id) is None:
            return False

        existing = next((t for t in order.tasks if t.service_id == service_id), None)
        if existing is not None:
            tasks = tuple(
                replace(t, assigned_to=employee_id) if t.id == existing.id else t
                for t in order.tasks
            )
        else:
            service = self._store.get(Collection.SERVICES, service_id)
            task = Task(
                id=f"t-{uuid.uuid4().hex[:12]}",
                service_id=service_id,
                description=service.name if service else "",
                assigned_to=employee_id,
            )
            tasks = order.tasks + (task,)
        return await self.update_work_order(order_id, tasks=tasks)

    async def start_task(self, task_id: str) -> bool:
        found = self._find_task(task_id)
        if found is None:
            return False
        order, task = found
        if not task_can_move(task, TASK_IN_PROGRESS):
            return False
        changes = {
            "tasks": self._with_task(
                order, replace(task, status=TASK_IN_PROGRESS, started_at=now_iso(self._pipeline.clock))
            )
        }
        if order.status in (WorkOrderStatus.WAITING, WorkOrderStatus.AWAITING_APPROVAL):
            changes["status"] = WorkOrderStatus.IN_PROGRESS
        return await self.update_work_order(order.id, **changes)

    async def stop_task(self, task_id: str) -> bool:
        found = self._find_task(task_id)
        if found is None:
            return False
        order, task = found
        if not task_can_move(task, TASK_COMPLETED):
            return False
        finished = replace(task, status=TASK_COMPLETED, finished_at=now_iso(self._pipeline.clock))
        return await self.update_work_order(order.id, tasks=self._with_task(order, finished))

    def _find_task(self, task_id: str) -> Optional[Tuple[WorkOrder, Task]]:
        for order in self._store.all(Collection.WORK_ORDERS):
            for task in order.tasks:
                if task.id == task_id:
                    return order, task
        return None

    @staticmethod
    def _with_task(order: WorkOrder, task: Task) -> Tuple[Task, ...]:
        return tuple(task if t.id == task.id else t for t in order.tasks)
