"""
CRISTAL Inventory Engine — Policies
=====================================
Unit conversion between a service's bill of materials and the stock
unit of the inventory item, and the clamped deduction rule.
"""

from __future__ import annotations

from typing import Optional

from core.state.entities import ConsumptionItem, InventoryItem

# (stock unit, usage unit) → stock units per usage unit
UNIT_MULTIPLIERS = {
    ("l", "ml"): 0.001,
    ("kg", "g"): 0.001,
    ("ml", "l"): 1000.0,
    ("g", "kg"): 1000.0,
}


def unit_multiplier(stock_unit: Optional[str], usage_unit: Optional[str]) -> float:
    key = ((stock_unit or "").lower(), (usage_unit or "").lower())
    return UNIT_MULTIPLIERS.get(key, 1.0)


def consumed_stock(item: InventoryItem, consumption: ConsumptionItem) -> float:
    """Stock units used by one bill-of-materials line."""
    return float(consumption.quantity or 0) * unit_multiplier(item.unit, consumption.usage_unit)


def consumption_cost(item: InventoryItem, consumption: ConsumptionItem) -> float:
    return float(item.cost_price or 0) * consumed_stock(item, consumption)


def stock_after_deduction(stock: float, quantity: float) -> float:
    """Stock never goes below zero."""
    return max(0.0, round(stock - quantity, 6))
