"""
CRISTAL Customer Engine — Service Layer
=========================================
Clients and their vehicles. Vehicles live nested in the client row,
so every vehicle change is a client update.

Client.status / Client.segment are recomputed by the row codec after
every change to last_visit, ltv or visit_count.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import List, Optional

from core.state.entities import Client, Vehicle
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

logger = logging.getLogger("cristal.customer")


class CustomerService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store

    def list_clients(self) -> List[Client]:
        return self._store.all(Collection.CLIENTS)

    def get_client(self, client_id: str) -> Optional[Client]:
        return self._store.get(Collection.CLIENTS, client_id)

    # ── Clients ───────────────────────────────────────────────

    async def add_client(self, client: Client) -> Optional[Client]:
        if client.created_at is None:
            client = replace(client, created_at=now_iso(self._pipeline.clock))
        return await self._pipeline.create(Collection.CLIENTS, client)

    async def update_client(self, client_id: str, **changes) -> bool:
        return await self._pipeline.update(Collection.CLIENTS, client_id, changes)

    async def delete_client(self, client_id: str) -> bool:
        return await self._pipeline.delete(Collection.CLIENTS, client_id)

    async def update_client_ltv(self, client_id: str, amount: float) -> bool:
        """Add `amount` to lifetime value. Negative amounts are corrections; ltv never drops below 0."""
        client = self.get_client(client_id)
        if client is None:
            return False
        ltv = max(0.0, round(client.ltv + amount, 2))
        return await self.update_client(client_id, ltv=ltv)

    async def update_client_visits(self, client_id: str, amount: int = 1) -> bool:
        client = self.get_client(client_id)
        if client is None:
            return False
        return await self.update_client(client_id, visit_count=max(0, client.visit_count + amount))

    async def record_visit(self, client_id: str, amount: float, visited_at: str) -> bool:
        """One completed visit: visit_count + 1, ltv + amount, last_visit."""
        client = self.get_client(client_id)
        if client is None:
            logger.warning("visit for unknown client %s ignored", client_id)
            return False
        return await self.update_client(
            client_id,
            visit_count=client.visit_count + 1,
            ltv=round(client.ltv + amount, 2),
            last_visit=visited_at,
        )

    # ── Vehicles ──────────────────────────────────────────────

    async def add_vehicle(self, client_id: str, vehicle: Vehicle) -> Optional[Vehicle]:
        client = self.get_client(client_id)
        if client is None:
            return None
        added = replace(vehicle, id=f"v-{uuid.uuid4().hex[:12]}")
        ok = await self.update_client(client_id, vehicles=client.vehicles + (added,))
        return added if ok else None

    async def update_vehicle(self, client_id: str, vehicle: Vehicle) -> bool:
        client = self.get_client(client_id)
        if client is None or all(v.id != vehicle.id for v in client.vehicles):
            return False
        vehicles = tuple(vehicle if v.id == vehicle.id else v for v in client.vehicles)
        return await self.update_client(client_id, vehicles=vehicles)

    async def remove_vehicle(self, client_id: str, vehicle_id: str) -> bool:
        client = self.get_client(client_id)
        if client is None or all(v.id != vehicle_id for v in client.vehicles):
            return False
        vehicles = tuple(v for v in client.vehicles if v.id != vehicle_id)
        return await self.update_client(client_id, vehicles=vehicles)
