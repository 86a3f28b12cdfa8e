"""
CRISTAL AI Advisors — Occupancy Advisor
=========================================
Flags an idle schedule: booked minutes for the coming days below the
minimum share of staff capacity.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from core.config.rules import IntelligenceRules
from core.state.entities import AlertLevel, AlertType, WorkOrderStatus
from core.state.store import Collection
from core.time.temporal import TimeWindow, parse_timestamp

from ai.advisors.base import Advisor, AdvisorContext, Advisory, order_minutes, services_by_id


class OccupancyAdvisor(Advisor):

    def __init__(self, rules: IntelligenceRules) -> None:
        self._rules = rules

    @property
    def alert_type(self) -> str:
        return AlertType.SCHEDULE

    def analyze(self, tenant_id: str, context: AdvisorContext, now: datetime) -> List[Advisory]:
        rules = self._rules
        capacity = rules.capacity_minutes
        if capacity <= 0:
            return []

        window = TimeWindow.following(now, rules.horizon_days)
        services = services_by_id(context.get(Collection.SERVICES, ()))
        booked = 0
        for order in context.get(Collection.WORK_ORDERS, ()):
            if order.status == WorkOrderStatus.CANCELLED:
                continue
            deadline = parse_timestamp(order.deadline)
            if deadline is None or not window.contains(deadline):
                continue
            booked += order_minutes(order, services, rules.default_service_minutes)

        occupancy = booked / capacity
        if occupancy >= rules.min_occupancy:
            return []

        idle_minutes = max(0, capacity - booked)
        idle_percent = round(idle_minutes / capacity * 100)
        return [Advisory(
            alert_type=AlertType.SCHEDULE,
            level=AlertLevel.ATTENTION,
            message=(
                f"Oportunidade: Agenda dos próximos {rules.horizon_days} dias "
                f"com {idle_percent}% de ociosidade."
            ),
            financial_impact=round(idle_minutes / 60 * rules.hourly_slot_rate, 2),
            action_label="Criar Promoção Relâmpago",
            action_link="/marketing",
            data={"booked_minutes": booked, "capacity_minutes": capacity, "occupancy": occupancy},
        )]
