"""
CRISTAL Workshop Engine — Policies
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from core.state.entities import CompletionEffect, Task, WorkOrder, WorkOrderStatus

NPS_MIN = 0
NPS_MAX = 10

TASK_PENDING = "pending"
TASK_IN_PROGRESS = "in_progress"
TASK_COMPLETED = "completed"

_TASK_TRANSITIONS = {
    TASK_PENDING: frozenset({TASK_IN_PROGRESS}),
    TASK_IN_PROGRESS: frozenset({TASK_COMPLETED}),
    TASK_COMPLETED: frozenset(),
}


def nps_score_is_valid(score: Optional[int]) -> bool:
    return isinstance(score, int) and not isinstance(score, bool) and NPS_MIN <= score <= NPS_MAX


def task_can_move(task: Task, target: str) -> bool:
    return target in _TASK_TRANSITIONS.get(task.status, frozenset())


def status_change_requires_completion(order: WorkOrder, target: str) -> bool:
    """Entering Concluído or Entregue from an unfinished status fires the completion effects."""
    return target in WorkOrderStatus.DONE and order.status not in WorkOrderStatus.DONE


def pending_effects(order: WorkOrder, processed: Iterable[str] = ()) -> Tuple[str, ...]:
    done = set(order.completion_effects) | set(processed)
    return tuple(e for e in CompletionEffect.ORDER if e not in done)


def order_accepts_tasks(order: WorkOrder) -> bool:
    return order.status not in WorkOrderStatus.TERMINAL
