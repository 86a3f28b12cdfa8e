"""
CRISTAL Core State — Derived Fields
=====================================
Pure recomputation of fields that are never source of truth:
Client.status / Client.segment and InventoryItem.status.

Applied on every load and after every mutation that touches the
inputs (last_visit, ltv, visit_count, stock, min_stock).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from core.state.entities import Client, InventoryItem
from core.time.temporal import days_since

ACTIVE_WINDOW_DAYS = 30
INACTIVE_AFTER_DAYS = 60
VIP_MIN_LTV = 2000.0
VIP_MIN_VISITS = 10
RECURRING_MIN_VISITS = 3
CRITICAL_STOCK_RATIO = 0.5


def client_status(last_visit: Optional[str], now: datetime) -> str:
    days = days_since(last_visit, now)
    if days is None or days <= ACTIVE_WINDOW_DAYS:
        return "active"
    if days <= INACTIVE_AFTER_DAYS:
        return "churn_risk"
    return "inactive"


def client_segment(
    last_visit: Optional[str], ltv: float, visit_count: int, now: datetime
) -> str:
    days = days_since(last_visit, now)
    if days is not None and days > INACTIVE_AFTER_DAYS:
        return "inactive"
    if ltv >= VIP_MIN_LTV or visit_count >= VIP_MIN_VISITS:
        return "vip"
    if visit_count >= RECURRING_MIN_VISITS:
        return "recurring"
    return "new"


def with_client_metrics(client: Client, now: datetime) -> Client:
    status = client_status(client.last_visit, now)
    segment = client_segment(client.last_visit, client.ltv, client.visit_count, now)
    if status == client.status and segment == client.segment:
        return client
    return replace(client, status=status, segment=segment)


def stock_status(stock: float, min_stock: float) -> str:
    if stock <= 0 or stock <= min_stock * CRITICAL_STOCK_RATIO:
        return "critical"
    if stock <= min_stock:
        return "warning"
    return "ok"


def with_stock_status(item: InventoryItem) -> InventoryItem:
    status = stock_status(item.stock, item.min_stock)
    if status == item.status:
        return item
    return replace(item, status=status)
