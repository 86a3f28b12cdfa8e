"""
CRISTAL Catalog Engine — Policies
===================================
Pure pricing and costing rules for the service catalogue.
"""

from __future__ import annotations

from typing import Callable, Optional

from core.state.entities import InventoryItem, ServiceConsumption

from engines.inventory.policies import consumption_cost

ALL_SIZES = "all"


def adjusted_price(price: float, percentage: float) -> float:
    """Price after a percentage change (e.g. 10 → +10%), never negative."""
    return max(0.0, round(price * (1 + percentage / 100.0), 2))


def size_matches(target_size: str, size: str) -> bool:
    return target_size == ALL_SIZES or target_size == size


def service_cost(
    consumption: Optional[ServiceConsumption],
    inventory_lookup: Callable[[int], Optional[InventoryItem]],
) -> float:
    """Material cost of one execution; lines with unknown items cost nothing."""
    if consumption is None:
        return 0.0
    total = 0.0
    for line in consumption.items:
        item = inventory_lookup(line.inventory_id)
        if item is not None:
            total += consumption_cost(item, line)
    return round(total, 2)
