"""
CRISTAL Catalog Engine — Service Layer
========================================
Service catalogue, size price matrix and bill of materials.

A `services` row carries the catalogue item plus a `price_matrix`
document holding prices by vehicle size and the consumption list,
so every change to any of the three is one services-row write.

Price edits are debounced: applied locally at once, queued by
(service_id, size) and written after a quiet period as one write
per service. A failed write restores that service's pre-window
prices.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from core.remote.tables import Table
from core.state.codec import SERVICE_CODEC
from core.state.entities import PriceMatrixEntry, ServiceCatalogItem, ServiceConsumption
from core.state.store import Collection
from core.sync.batching import Batch, DebouncedBatcher
from core.sync.pipeline import MutationPipeline, new_temp_id

from engines.catalog.policies import adjusted_price, service_cost, size_matches

logger = logging.getLogger("cristal.catalog")

PriceKey = Tuple[str, str]


class CatalogService:

    def __init__(self, pipeline: MutationPipeline, *, debounce_seconds: float = 1.0) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store
        self.price_batcher: DebouncedBatcher[PriceKey, float] = DebouncedBatcher(
            debounce_seconds, self._flush_prices, name="price matrix"
        )

    # ── Reads ─────────────────────────────────────────────────

    def list_services(self) -> List[ServiceCatalogItem]:
        return self._store.all(Collection.SERVICES)

    def get_service(self, service_id: str) -> Optional[ServiceCatalogItem]:
        return self._store.get(Collection.SERVICES, service_id)

    def get_price(self, service_id: str, size: str) -> float:
        entry = self._store.get(Collection.PRICE_MATRIX, (service_id, size))
        return entry.price if entry else 0.0

    def get_service_consumption(self, service_id: str) -> Optional[ServiceConsumption]:
        return self._store.get(Collection.SERVICE_CONSUMPTIONS, service_id)

    def calculate_service_cost(self, service_id: str) -> float:
        return service_cost(
            self.get_service_consumption(service_id),
            lambda item_id: self._store.get(Collection.INVENTORY, item_id),
        )

    # ── Services ──────────────────────────────────────────────

    async def add_service(
        self, service: ServiceCatalogItem, prices: Optional[Mapping[str, float]] = None
    ) -> Optional[ServiceCatalogItem]:
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            return None
        temp = replace(service, id=new_temp_id())
        entries = [
            PriceMatrixEntry(service_id=temp.id, size=size, price=float(price))
            for size, price in (prices or {}).items()
        ]
        row = SERVICE_CODEC.encode(temp, {e.size: e.price for e in entries}, None, tenant_id)
        row.pop("id")

        def apply() -> None:
            self._store.insert_at(Collection.SERVICES, 0, temp)
            self._store.put_many(Collection.PRICE_MATRIX, entries)

        def rollback() -> None:
            self._drop_local(temp.id)

        result = await self._pipeline.run(
            apply, rollback,
            lambda: self._pipeline.remote.insert(Table.SERVICES, row),
            label="create services",
        )
        if not result.ok:
            return None

        stored, stored_entries, consumption = SERVICE_CODEC.decode(
            result.data, self._pipeline.clock.now_utc()
        )
        self._store.replace_key(Collection.SERVICES, temp.id, stored)
        for entry in entries:
            self._store.remove(Collection.PRICE_MATRIX, (temp.id, entry.size))
        self._store.put_many(Collection.PRICE_MATRIX, stored_entries)
        if consumption is not None:
            self._store.put(Collection.SERVICE_CONSUMPTIONS, consumption)
        return stored

    async def update_service(self, service_id: str, **changes: Any) -> bool:
        current = self.get_service(service_id)
        if current is None:
            return False
        updated = replace(current, **changes)
        return await self._write_service(
            service_id,
            apply=lambda: self._store.put(Collection.SERVICES, updated),
            rollback=lambda: self._store.put(Collection.SERVICES, current),
            label=f"update services/{service_id}",
        )

    async def update_service_interval(self, service_id: str, days: int) -> bool:
        return await self.update_service(service_id, return_interval_days=days or None)

    async def delete_service(self, service_id: str) -> bool:
        tenant_id = self._store.tenant_id
        if tenant_id is None or self.get_service(service_id) is None:
            return False
        removed: Dict[str, Any] = {}

        def apply() -> None:
            removed["service"] = self._store.remove(Collection.SERVICES, service_id)
            removed["prices"] = self._store.filter(
                Collection.PRICE_MATRIX, lambda e: e.service_id == service_id
            )
            removed["consumption"] = self.get_service_consumption(service_id)
            self._drop_local(service_id)

        def rollback() -> None:
            index, service = removed["service"]
            self._store.insert_at(Collection.SERVICES, index, service)
            self._store.put_many(Collection.PRICE_MATRIX, removed["prices"])
            if removed["consumption"] is not None:
                self._store.put(Collection.SERVICE_CONSUMPTIONS, removed["consumption"])

        result = await self._pipeline.run(
            apply, rollback,
            lambda: self._pipeline.remote.delete(Table.SERVICES, service_id, tenant_id=tenant_id),
            label=f"delete services/{service_id}",
        )
        return result.ok

    async def update_service_consumption(self, consumption: ServiceConsumption) -> bool:
        service_id = consumption.service_id
        if self.get_service(service_id) is None:
            return False
        previous = self.get_service_consumption(service_id)

        def rollback() -> None:
            if previous is None:
                self._store.remove(Collection.SERVICE_CONSUMPTIONS, service_id)
            else:
                self._store.put(Collection.SERVICE_CONSUMPTIONS, previous)

        return await self._write_service(
            service_id,
            apply=lambda: self._store.put(Collection.SERVICE_CONSUMPTIONS, consumption),
            rollback=rollback,
            label=f"update consumption services/{service_id}",
        )

    # ── Prices (debounced) ────────────────────────────────────

    def update_price(self, service_id: str, size: str, price: float) -> bool:
        """Apply locally now; persisted by the next price batch."""
        if self._store.tenant_id is None or self.get_service(service_id) is None:
            return False
        key = (service_id, size)
        previous = self._store.get(Collection.PRICE_MATRIX, key)
        self._store.put(
            Collection.PRICE_MATRIX,
            PriceMatrixEntry(service_id=service_id, size=size, price=float(price)),
        )
        self.price_batcher.submit(key, float(price), original=previous)
        return True

    def bulk_update_prices(self, target_size: str, percentage: float) -> int:
        """Adjust every price for `target_size` (or "all") by `percentage`. Returns entries changed."""
        changed = 0
        for entry in self._store.all(Collection.PRICE_MATRIX):
            if size_matches(target_size, entry.size):
                self.update_price(entry.service_id, entry.size, adjusted_price(entry.price, percentage))
                changed += 1
        return changed

    async def flush_prices(self) -> None:
        await self.price_batcher.flush_now()

    async def _flush_prices(self, batch: Batch[PriceKey, float]) -> None:
        keys_by_service: Dict[str, List[PriceKey]] = defaultdict(list)
        for key in batch.values:
            keys_by_service[key[0]].append(key)

        for service_id, keys in keys_by_service.items():
            if self.get_service(service_id) is None:
                logger.info("price batch for deleted service %s dropped", service_id)
                continue

            def rollback(keys=keys) -> None:
                for key in keys:
                    current = self._store.get(Collection.PRICE_MATRIX, key)
                    if current is None or current.price != batch.values[key]:
                        # edited again while this batch was in flight; the next batch owns it
                        continue
                    original = batch.originals.get(key)
                    if original is None:
                        self._store.remove(Collection.PRICE_MATRIX, key)
                    else:
                        self._store.put(Collection.PRICE_MATRIX, original)

            await self._write_service(
                service_id,
                apply=lambda: None,
                rollback=rollback,
                label=f"price batch services/{service_id} ({len(keys)} price(s))",
            )

    # ── Internals ─────────────────────────────────────────────

    async def _write_service(
        self,
        service_id: str,
        *,
        apply: Callable[[], None],
        rollback: Callable[[], None],
        label: str,
    ) -> bool:
        """Apply locally, then write the whole services row as it stands after apply."""
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            return False

        async def persist():
            return await self._pipeline.remote.update(
                Table.SERVICES, service_id, self._row(service_id, tenant_id), tenant_id=tenant_id
            )

        result = await self._pipeline.run(apply, rollback, persist, label=label)
        return result.ok

    def _row(self, service_id: str, tenant_id: str) -> Dict[str, Any]:
        service = self.get_service(service_id)
        prices = {
            e.size: e.price
            for e in self._store.filter(Collection.PRICE_MATRIX, lambda e: e.service_id == service_id)
        }
        row = SERVICE_CODEC.encode(service, prices, self.get_service_consumption(service_id), tenant_id)
        row.pop("id")
        return row

    def _drop_local(self, service_id: str) -> None:
        self._store.remove(Collection.SERVICES, service_id)
        for entry in self._store.filter(Collection.PRICE_MATRIX, lambda e: e.service_id == service_id):
            self._store.remove(Collection.PRICE_MATRIX, (entry.service_id, entry.size))
        self._store.remove(Collection.SERVICE_CONSUMPTIONS, service_id)
