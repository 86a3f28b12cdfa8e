"""
CRISTAL Core Sync — Session Bootstrapper
==========================================
Resolves the tenant owned by an authenticated identity and loads it
into the EntityStore.

States:
    UNAUTHENTICATED → AUTHENTICATING → TENANT_RESOLVING
        → READY | NEEDS_ONBOARDING | FAILED

RULES:
- Resolution is retried per AttemptPolicy (10s, 30s, no timeout;
  backoff 2s × attempt). Exhaustion is FAILED, never an exception.
- Concurrent bootstrap calls for the same identity share one
  in-flight resolution.
- A resolution builds a complete TenantSnapshot first; the store is
  touched only once, by the winning attempt.
- A snapshot that finishes after a sign-out (stale generation) is
  discarded.
- READY schedules the intelligence scan after a fixed delay.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from core.actions.errors import DocumentSchemaError, TransientNetworkError
from core.config.rules import SyncConfig
from core.identity.provider import Identity
from core.remote.contracts import RemoteStore
from core.remote.tables import Table
from core.resilience import AttemptPolicy, InFlightRegistry, RetryExhausted, run_with_attempts
from core.state.codec import CODECS, SERVICE_CODEC, TENANT_CODEC
from core.state.store import Collection, EntityStore, TenantSnapshot
from core.time.clock import Clock

logger = logging.getLogger("cristal.bootstrap")


class BootstrapState(Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATING = "AUTHENTICATING"
    TENANT_RESOLVING = "TENANT_RESOLVING"
    READY = "READY"
    NEEDS_ONBOARDING = "NEEDS_ONBOARDING"
    FAILED = "FAILED"


# Collections loaded one row → one record. Services fan out separately.
_ROW_COLLECTIONS = (
    Collection.CLIENTS,
    Collection.WORK_ORDERS,
    Collection.INVENTORY,
    Collection.EMPLOYEES,
    Collection.EMPLOYEE_TRANSACTIONS,
    Collection.FINANCIAL_TRANSACTIONS,
    Collection.REWARDS,
    Collection.REDEMPTIONS,
    Collection.POINTS_HISTORY,
    Collection.FIDELITY_CARDS,
    Collection.ALERTS,
    Collection.CAMPAIGNS,
)


# ══════════════════════════════════════════════════════════════
# TENANT RESOLVER
# ══════════════════════════════════════════════════════════════

class TenantResolver:
    """
    One resolution attempt: tenant lookup plus every collection.

    Raises TransientNetworkError on any remote error so the whole
    attempt is retried. Rows with an unsupported document version are
    skipped and counted.
    """

    def __init__(self, remote: RemoteStore, clock: Clock) -> None:
        self._remote = remote
        self._clock = clock

    async def resolve(self, identity: Identity) -> Optional[TenantSnapshot]:
        tenants = await self._select(Table.TENANTS, filters={"owner_id": identity.user_id})
        if not tenants:
            return None
        if len(tenants) > 1:
            logger.warning(
                "user %s owns %d tenants; using the oldest", identity.user_id, len(tenants)
            )
            tenants.sort(key=lambda row: row.get("created_at") or "")
        tenant = TENANT_CODEC.decode(tenants[0])

        tables = [CODECS[name].table for name in _ROW_COLLECTIONS] + [Table.SERVICES]
        filters: Dict[str, Dict[str, Any]] = {Table.ALERTS: {"resolved": False}}
        results = await asyncio.gather(*(
            self._select(table, tenant_id=tenant.id, filters=filters.get(table))
            for table in tables
        ))
        rows_by_table = dict(zip(tables, results))

        now = self._clock.now_utc()
        skipped = 0
        collections: Dict[str, Tuple[Any, ...]] = {}
        for name in _ROW_COLLECTIONS:
            codec = CODECS[name]
            records = []
            for row in rows_by_table[codec.table]:
                try:
                    records.append(codec.decode(row, now))
                except DocumentSchemaError as exc:
                    skipped += 1
                    logger.error("skipping %s row %s: %s", codec.table, row.get("id"), exc)
            collections[name] = tuple(records)

        services: List[Any] = []
        prices: List[Any] = []
        consumptions: List[Any] = []
        for row in rows_by_table[Table.SERVICES]:
            try:
                service, entries, consumption = SERVICE_CODEC.decode(row, now)
            except DocumentSchemaError as exc:
                skipped += 1
                logger.error("skipping services row %s: %s", row.get("id"), exc)
                continue
            services.append(service)
            prices.extend(entries)
            if consumption is not None:
                consumptions.append(consumption)
        collections[Collection.SERVICES] = tuple(services)
        collections[Collection.PRICE_MATRIX] = tuple(prices)
        collections[Collection.SERVICE_CONSUMPTIONS] = tuple(consumptions)

        return TenantSnapshot(tenant=tenant, collections=collections, skipped_rows=skipped)

    async def _select(self, table: str, **kwargs) -> List[dict]:
        result = await self._remote.select(table, **kwargs)
        if not result.ok:
            raise TransientNetworkError(f"select {table}", result.error.message)
        return result.rows()


# ══════════════════════════════════════════════════════════════
# BOOTSTRAPPER
# ══════════════════════════════════════════════════════════════

class SessionBootstrapper:

    def __init__(
        self,
        store: EntityStore,
        remote: RemoteStore,
        clock: Clock,
        config: Optional[SyncConfig] = None,
        *,
        on_ready: Optional[Callable[[], Awaitable[None]]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._config = config or SyncConfig()
        self._resolver = TenantResolver(remote, clock)
        self._policy = AttemptPolicy(
            timeouts=self._config.attempt_timeouts,
            backoff_seconds=self._config.retry_backoff_seconds,
        )
        self._on_ready = on_ready
        self._sleep = sleep
        self._in_flight: InFlightRegistry[Tuple[str, str, int], bool] = InFlightRegistry()
        self._state = BootstrapState.UNAUTHENTICATED
        self._generation = 0
        self.scan_task: Optional["asyncio.Task[None]"] = None

    @property
    def state(self) -> BootstrapState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state in (BootstrapState.AUTHENTICATING, BootstrapState.TENANT_RESOLVING)

    async def bootstrap(self, identity: Identity) -> bool:
        """
        Resolve and load the identity's tenant.

        True for READY and NEEDS_ONBOARDING, False for FAILED or a
        result discarded by a concurrent sign-out.
        """
        key = (identity.user_id, identity.email, self._generation)
        return await self._in_flight.run(key, lambda: self._bootstrap(identity))

    async def _bootstrap(self, identity: Identity) -> bool:
        generation = self._generation
        self._state = BootstrapState.AUTHENTICATING
        logger.info("bootstrapping session for user %s", identity.user_id)
        self._state = BootstrapState.TENANT_RESOLVING

        try:
            snapshot = await run_with_attempts(
                lambda: self._resolver.resolve(identity),
                self._policy,
                retryable=(TransientNetworkError, OSError),
                sleep=self._sleep,
                operation="tenant resolution",
            )
        except RetryExhausted as exc:
            return self._fail(generation, f"{exc}")
        except Exception:
            logger.exception("tenant resolution crashed for user %s", identity.user_id)
            return self._fail(generation, "unexpected error")

        if generation != self._generation:
            logger.info("discarding tenant snapshot for %s: session ended", identity.user_id)
            return False

        if snapshot is None:
            self._store.clear()
            self._state = BootstrapState.NEEDS_ONBOARDING
            logger.info("user %s has no tenant yet", identity.user_id)
            return True

        self._store.load(snapshot)
        self._state = BootstrapState.READY
        logger.info(
            "tenant %s loaded (%d records, %d rows skipped)",
            snapshot.tenant.id, len(self._store), snapshot.skipped_rows,
        )
        self._schedule_scan()
        return True

    def _fail(self, generation: int, reason: str) -> bool:
        if generation == self._generation:
            self._state = BootstrapState.FAILED
        logger.error("bootstrap failed: %s", reason)
        return False

    def _schedule_scan(self) -> None:
        if self._on_ready is None:
            return
        self._cancel_scan()
        self.scan_task = asyncio.ensure_future(self._delayed_scan(self._on_ready))

    async def _delayed_scan(self, on_ready: Callable[[], Awaitable[None]]) -> None:
        await self._sleep(self._config.scan_delay_seconds)
        try:
            await on_ready()
        except Exception:
            logger.exception("post-bootstrap scan failed")

    def _cancel_scan(self) -> None:
        if self.scan_task is not None and not self.scan_task.done():
            self.scan_task.cancel()
        self.scan_task = None

    def reset(self) -> None:
        """Sign-out: invalidate in-flight resolutions and clear the store."""
        self._generation += 1
        self._cancel_scan()
        self._store.clear()
        self._state = BootstrapState.UNAUTHENTICATED
