"""
CRISTAL Inventory Engine — Service Layer
==========================================
Inventory items (integer ids) and bill-of-materials deduction.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from core.state.entities import InventoryItem
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline

from engines.inventory.policies import consumed_stock, stock_after_deduction

logger = logging.getLogger("cristal.inventory")


class InventoryService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store

    def list_items(self) -> List[InventoryItem]:
        return self._store.all(Collection.INVENTORY)

    def get_item(self, item_id: int) -> Optional[InventoryItem]:
        return self._store.get(Collection.INVENTORY, item_id)

    async def add_inventory_item(self, item: InventoryItem) -> Optional[InventoryItem]:
        return await self._pipeline.create(Collection.INVENTORY, item)

    async def update_inventory_item(self, item_id: int, **changes) -> bool:
        return await self._pipeline.update(Collection.INVENTORY, item_id, changes)

    async def delete_inventory_item(self, item_id: int) -> bool:
        return await self._pipeline.delete(Collection.INVENTORY, item_id)

    async def deduct_stock(self, service_id: str) -> bool:
        """
        Deduct one execution of the service's bill of materials.

        Missing inventory items are skipped. Each item write is
        independent; returns False if any of them failed.
        """
        consumption = self._store.get(Collection.SERVICE_CONSUMPTIONS, service_id)
        if consumption is None:
            return True
        all_ok = True
        for line in consumption.items:
            item = self.get_item(line.inventory_id)
            if item is None:
                logger.warning(
                    "service %s consumes unknown inventory item %s", service_id, line.inventory_id
                )
                continue
            stock = stock_after_deduction(item.stock, consumed_stock(item, line))
            if not await self.update_inventory_item(item.id, stock=stock):
                all_ok = False
        return all_ok
