"""
CRISTAL AI Advisors — Revenue per Hour Advisor
================================================
Revenue of recently completed orders divided by their estimated
service hours, compared with the configured floor.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from core.config.rules import IntelligenceRules
from core.state.entities import AlertLevel, AlertType
from core.state.store import Collection
from core.time.temporal import TimeWindow, parse_timestamp

from ai.advisors.base import Advisor, AdvisorContext, Advisory, order_minutes, services_by_id


class RevenuePerHourAdvisor(Advisor):

    def __init__(self, rules: IntelligenceRules) -> None:
        self._rules = rules

    @property
    def alert_type(self) -> str:
        return AlertType.FINANCIAL

    def analyze(self, tenant_id: str, context: AdvisorContext, now: datetime) -> List[Advisory]:
        rules = self._rules
        window = TimeWindow.trailing(now, rules.revenue_window_days)
        services = services_by_id(context.get(Collection.SERVICES, ()))

        revenue = 0.0
        minutes = 0
        for order in context.get(Collection.WORK_ORDERS, ()):
            if not order.is_completed:
                continue
            completed = parse_timestamp(order.completed_at or order.created_at)
            if completed is None or not window.contains(completed):
                continue
            revenue += order.total_value
            minutes += order_minutes(order, services, rules.default_service_minutes)

        if minutes == 0:
            return []
        hours = minutes / 60
        per_hour = revenue / hours
        if per_hour >= rules.min_revenue_per_hour:
            return []

        return [Advisory(
            alert_type=AlertType.FINANCIAL,
            level=AlertLevel.INFO,
            message=(
                f"Alerta: Receita de R$ {round(per_hour)}/hora nos últimos "
                f"{rules.revenue_window_days} dias, abaixo da meta de "
                f"R$ {round(rules.min_revenue_per_hour)}/hora."
            ),
            financial_impact=round((rules.min_revenue_per_hour - per_hour) * hours, 2),
            action_label="Revisar Preços",
            action_link="/pricing",
            data={"revenue": round(revenue, 2), "hours": round(hours, 2)},
        )]
