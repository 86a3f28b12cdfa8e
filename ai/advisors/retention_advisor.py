"""
CRISTAL AI Advisors — Client Retention Advisor
================================================
Counts clients whose last visit is older than the inactivity cutoff.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from core.config.rules import IntelligenceRules
from core.state.entities import AlertLevel, AlertType
from core.state.store import Collection
from core.time.temporal import days_since

from ai.advisors.base import Advisor, AdvisorContext, Advisory


class ClientRetentionAdvisor(Advisor):

    def __init__(self, rules: IntelligenceRules) -> None:
        self._rules = rules

    @property
    def alert_type(self) -> str:
        return AlertType.CLIENT

    def analyze(self, tenant_id: str, context: AdvisorContext, now: datetime) -> List[Advisory]:
        rules = self._rules
        inactive = []
        for client in context.get(Collection.CLIENTS, ()):
            days = days_since(client.last_visit, now)
            if days is not None and days > rules.inactive_days:
                inactive.append(client.id)

        if len(inactive) <= rules.inactive_client_threshold:
            return []

        count = len(inactive)
        return [Advisory(
            alert_type=AlertType.CLIENT,
            level=AlertLevel.ATTENTION,
            message=(
                f"Anomalia: {count} clientes não retornam há mais de "
                f"{rules.inactive_days} dias. Risco de Churn."
            ),
            financial_impact=round(count * rules.average_ticket * rules.recovery_rate, 2),
            action_label="Recuperar Clientes",
            action_link="/marketing",
            data={"client_ids": inactive},
        )]
