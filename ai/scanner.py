"""
CRISTAL AI — Intelligence Scanner
===================================
Runs every advisor over the active tenant's snapshot and persists
new alerts.

RULES:
- An alert is new when no unresolved alert with the same
  (type, message) exists, checked live against the store for every
  candidate and within the batch.
- Resolving an alert removes it from the active set and persists
  resolved=True. Nothing re-evaluates resolved alerts.
- Alert write failures are logged, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Tuple

from core.config.rules import IntelligenceRules
from core.remote.tables import Table
from core.state.entities import SystemAlert
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

from ai.advisors import (
    Advisor,
    Advisory,
    ClientRetentionAdvisor,
    OccupancyAdvisor,
    RevenuePerHourAdvisor,
)

logger = logging.getLogger("cristal.ai")


def default_advisors(rules: IntelligenceRules) -> List[Advisor]:
    return [
        OccupancyAdvisor(rules),
        ClientRetentionAdvisor(rules),
        RevenuePerHourAdvisor(rules),
    ]


class IntelligenceScanner:

    def __init__(
        self,
        pipeline: MutationPipeline,
        rules: Optional[IntelligenceRules] = None,
        advisors: Optional[Sequence[Advisor]] = None,
    ) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store
        self._advisors = list(advisors) if advisors is not None else default_advisors(
            rules or IntelligenceRules()
        )

    def active_alerts(self) -> List[SystemAlert]:
        return self._store.filter(Collection.ALERTS, lambda a: not a.resolved)

    async def scan(self) -> List[SystemAlert]:
        """Evaluate all advisors; returns the alerts created by this scan."""
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            return []

        now = self._pipeline.clock.now_utc()
        context = self._store.snapshot()
        candidates: List[Advisory] = []
        for advisor in self._advisors:
            try:
                candidates.extend(advisor.analyze(tenant_id, context, now))
            except Exception:
                logger.exception("advisor %s failed", type(advisor).__name__)

        created: List[SystemAlert] = []
        batch: Set[Tuple[str, str]] = set()
        for advisory in candidates:
            if advisory.identity in batch or self._is_active(advisory.identity):
                continue
            batch.add(advisory.identity)
            alert = await self._pipeline.create(
                Collection.ALERTS, advisory.to_alert(now_iso(self._pipeline.clock))
            )
            if alert is None:
                logger.warning("alert not persisted: %s", advisory.message)
                continue
            created.append(alert)

        logger.info(
            "intelligence scan for tenant %s: %d candidate(s), %d new alert(s)",
            tenant_id, len(candidates), len(created),
        )
        return created

    async def mark_alert_resolved(self, alert_id: str) -> bool:
        tenant_id = self._store.tenant_id
        if tenant_id is None or self._store.get(Collection.ALERTS, alert_id) is None:
            return False
        removed = {}

        def apply() -> None:
            removed["position"] = self._store.remove(Collection.ALERTS, alert_id)

        def rollback() -> None:
            index, alert = removed["position"]
            self._store.insert_at(Collection.ALERTS, index, alert)

        result = await self._pipeline.run(
            apply,
            rollback,
            lambda: self._pipeline.remote.update(
                Table.ALERTS, alert_id, {"resolved": True}, tenant_id=tenant_id
            ),
            label=f"resolve alerts/{alert_id}",
        )
        return result.ok

    async def run_periodically(
        self,
        interval_seconds: float,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Re-scan every `interval_seconds` until cancelled."""
        while True:
            await sleep(interval_seconds)
            try:
                await self.scan()
            except Exception:
                logger.exception("periodic intelligence scan failed")

    def _is_active(self, identity: Tuple[str, str]) -> bool:
        return any(
            (a.type, a.message) == identity and not a.resolved
            for a in self._store.all(Collection.ALERTS)
        )
