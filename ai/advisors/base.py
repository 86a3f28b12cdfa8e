"""
CRISTAL AI Advisors — Base Advisor Protocol
=============================================
All intelligence advisors implement this protocol.
Advisors are read-only: they consume an explicit snapshot of the
tenant's collections plus an explicit `now`, and produce advisories
that the scanner turns into system alerts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from core.state.entities import ServiceCatalogItem, SystemAlert, WorkOrder


# ══════════════════════════════════════════════════════════════
# ADVISORY OUTPUT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Advisory:
    """
    Structured alert candidate.

    (alert_type, message) is the alert's logical identity, so
    messages must be deterministic for the same situation.
    """

    alert_type: str
    level: str
    message: str
    financial_impact: Optional[float] = None
    action_label: Optional[str] = None
    action_link: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> tuple:
        return (self.alert_type, self.message)

    def to_alert(self, created_at: str) -> SystemAlert:
        return SystemAlert(
            id="",
            type=self.alert_type,
            message=self.message,
            level=self.level,
            resolved=False,
            created_at=created_at,
            financial_impact=self.financial_impact,
            action_link=self.action_link,
            action_label=self.action_label,
        )


# ══════════════════════════════════════════════════════════════
# ADVISOR PROTOCOL
# ══════════════════════════════════════════════════════════════

AdvisorContext = Mapping[str, Sequence[Any]]


class Advisor(ABC):
    """
    Base class for intelligence advisors.

    Subclasses implement `analyze()` over an EntityStore snapshot
    (collection name → records).
    """

    @property
    @abstractmethod
    def alert_type(self) -> str:
        """Alert type this advisor emits."""
        ...

    @abstractmethod
    def analyze(
        self,
        tenant_id: str,
        context: AdvisorContext,
        now: datetime,
    ) -> List[Advisory]:
        """
        Analyze the snapshot and produce alert candidates.

        Args:
            tenant_id: Tenant scope
            context: Collection name → records
            now: Current time (explicit, not datetime.now())
        """
        ...


# ══════════════════════════════════════════════════════════════
# SHARED HELPERS
# ══════════════════════════════════════════════════════════════

def order_minutes(
    order: WorkOrder,
    services: Mapping[str, ServiceCatalogItem],
    default_minutes: int,
) -> int:
    """Estimated duration: sum of the order's catalogue times, or the default."""
    minutes = sum(
        services[sid].standard_time_minutes
        for sid in order.service_ids
        if sid in services and services[sid].standard_time_minutes
    )
    return minutes or default_minutes


def services_by_id(records: Iterable[ServiceCatalogItem]) -> Dict[str, ServiceCatalogItem]:
    return {s.id: s for s in records}
