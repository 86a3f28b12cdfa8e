"""
CRISTAL Core State — Row Codecs
=================================
Symmetric row <-> record mapping for the hybrid persisted layout.

Rows carry scalar columns for frequently filtered fields plus nested
documents for structured data:

    tenants.settings / tenants.subscription
    work_orders.json_data
    employees.salary_data
    services.price_matrix      (prices, consumption bill of materials)
    rewards.config
    marketing_campaigns.details

Every nested document carries an explicit `schema_version`.
- Missing version  → legacy v0 (camelCase keys), upgraded on read.
- Known version    → read as-is.
- Newer version    → DocumentSchemaError; the loader skips the row.

Writes always emit the current version.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import asdict, fields
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.actions.errors import DocumentSchemaError
from core.config.defaults import company_settings, deep_merge
from core.remote.tables import Table
from core.state.derived import with_client_metrics, with_stock_status
from core.state.entities import (
    Campaign,
    Client,
    CompletionEffect,
    ConsumptionItem,
    Employee,
    EmployeeTransaction,
    FidelityCard,
    FinancialTransaction,
    InventoryItem,
    PointsEntry,
    PriceMatrixEntry,
    Redemption,
    Reward,
    ServiceCatalogItem,
    ServiceConsumption,
    SystemAlert,
    Task,
    Tenant,
    Vehicle,
    WorkOrder,
    WorkOrderStatus,
)

DOCUMENT_SCHEMA_VERSION = 1

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


# ══════════════════════════════════════════════════════════════
# VERSIONED DOCUMENTS
# ══════════════════════════════════════════════════════════════

def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _snake_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {_snake(str(k)): _snake_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_snake_keys(v) for v in value]
    return value


def read_document(table: str, document: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return the document body at the current schema version."""
    if not document:
        return {}
    body = dict(document)
    version = body.pop("schema_version", 0)
    if not isinstance(version, int) or isinstance(version, bool) or not 0 <= version <= DOCUMENT_SCHEMA_VERSION:
        raise DocumentSchemaError(table, version, DOCUMENT_SCHEMA_VERSION)
    if version == 0:
        body = _snake_keys(body)
    return body


def write_document(body: Mapping[str, Any]) -> Dict[str, Any]:
    return {"schema_version": DOCUMENT_SCHEMA_VERSION, **body}


def _pick(cls, source: Mapping[str, Any], exclude: Tuple[str, ...] = ()) -> Dict[str, Any]:
    """Constructor kwargs for `cls` from `source`; None values fall back to defaults."""
    return {
        f.name: source[f.name]
        for f in fields(cls)
        if f.name in source and source[f.name] is not None and f.name not in exclude
    }


# ══════════════════════════════════════════════════════════════
# CODECS
# ══════════════════════════════════════════════════════════════

class RecordCodec(ABC):
    """Maps one collection's records to rows of one remote table."""

    table: str = ""
    collection: str = ""

    def key(self, record) -> Any:
        return record.id

    @abstractmethod
    def encode(self, record, tenant_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def decode(self, row: Mapping[str, Any], now: datetime):
        ...

    def derive(self, record, now: datetime):
        """Recompute derived fields after a local change."""
        return record


class FlatCodec(RecordCodec):
    """Rows whose columns are exactly the record fields."""

    def __init__(self, record_cls, table: str) -> None:
        self.record_cls = record_cls
        self.table = table
        self.collection = table

    def encode(self, record, tenant_id: str) -> Dict[str, Any]:
        return {**asdict(record), "tenant_id": tenant_id}

    def decode(self, row, now):
        return self.record_cls(**_pick(self.record_cls, row))


class ClientCodec(RecordCodec):
    table = collection = Table.CLIENTS

    def encode(self, record: Client, tenant_id: str) -> Dict[str, Any]:
        row = asdict(record)
        # derived, never persisted as source of truth
        row.pop("status")
        row.pop("segment")
        row["vehicles"] = [asdict(v) for v in record.vehicles]
        row["tenant_id"] = tenant_id
        return row

    def decode(self, row, now) -> Client:
        values = _pick(Client, row, exclude=("vehicles", "status", "segment"))
        values["vehicles"] = tuple(
            Vehicle(**_pick(Vehicle, _snake_keys(v))) for v in row.get("vehicles") or []
        )
        values["ltv"] = float(values.get("ltv", 0) or 0)
        values["visit_count"] = int(values.get("visit_count", 0) or 0)
        return with_client_metrics(Client(**values), now)

    def derive(self, record: Client, now) -> Client:
        return with_client_metrics(record, now)


class WorkOrderCodec(RecordCodec):
    table = collection = Table.WORK_ORDERS

    _DOCUMENT_FIELDS = (
        "vehicle", "service_ids", "priority", "paid_at", "nps_comment",
        "completed_at", "tasks", "damages", "checklist", "qa_checklist",
        "daily_log", "additional_items", "discount", "completion_effects",
    )
    _NESTED_LISTS = ("damages", "checklist", "qa_checklist", "daily_log", "additional_items")

    def encode(self, record: WorkOrder, tenant_id: str) -> Dict[str, Any]:
        document = {
            "vehicle": record.vehicle,
            "service_ids": list(record.service_ids),
            "priority": record.priority,
            "paid_at": record.paid_at,
            "nps_comment": record.nps_comment,
            "completed_at": record.completed_at,
            "tasks": [asdict(t) for t in record.tasks],
            "discount": record.discount,
            "completion_effects": list(record.completion_effects),
        }
        for name in self._NESTED_LISTS:
            document[name] = [dict(item) for item in getattr(record, name)]
        return {
            "id": record.id,
            "tenant_id": tenant_id,
            "client_id": record.client_id,
            "vehicle_plate": record.plate,
            "service_summary": record.service,
            "status": record.status,
            "total_value": record.total_value,
            "payment_status": record.payment_status,
            "payment_method": record.payment_method,
            "technician": record.technician,
            "deadline": record.deadline,
            "nps_score": record.nps_score,
            "created_at": record.created_at,
            "json_data": write_document(document),
        }

    def decode(self, row, now) -> WorkOrder:
        document = read_document(self.table, row.get("json_data"))
        values = _pick(WorkOrder, row, exclude=self._DOCUMENT_FIELDS)
        list_fields = ("tasks", "service_ids", "completion_effects") + self._NESTED_LISTS
        values.update(_pick(WorkOrder, document, exclude=list_fields))
        if row.get("vehicle_plate") is not None:
            values["plate"] = row["vehicle_plate"]
        if row.get("service_summary") is not None:
            values["service"] = row["service_summary"]
        service_ids = document.get("service_ids") or []
        if not service_ids and document.get("service_id"):
            service_ids = [document["service_id"]]
        values["service_ids"] = tuple(service_ids)
        values["tasks"] = tuple(Task(**_pick(Task, t)) for t in document.get("tasks") or [])
        for name in self._NESTED_LISTS:
            values[name] = tuple(dict(item) for item in document.get(name) or [])
        effects = document.get("completion_effects")
        if effects is None and values.get("status") in WorkOrderStatus.DONE:
            # finished before effects were tracked; never replay them
            effects = CompletionEffect.ORDER
        values["completion_effects"] = tuple(effects or ())
        values["total_value"] = float(values.get("total_value", 0) or 0)
        return WorkOrder(**values)


class InventoryCodec(RecordCodec):
    table = collection = Table.INVENTORY

    def encode(self, record: InventoryItem, tenant_id: str) -> Dict[str, Any]:
        row = asdict(record)
        row.pop("status")
        row["tenant_id"] = tenant_id
        return row

    def decode(self, row, now) -> InventoryItem:
        return with_stock_status(InventoryItem(**_pick(InventoryItem, row, exclude=("status",))))

    def derive(self, record: InventoryItem, now) -> InventoryItem:
        return with_stock_status(record)


class EmployeeCodec(RecordCodec):
    table = collection = Table.EMPLOYEES

    _SALARY_FIELDS = ("salary_type", "fixed_salary", "commission_rate", "commission_base")

    def encode(self, record: Employee, tenant_id: str) -> Dict[str, Any]:
        row = {k: v for k, v in asdict(record).items() if k not in self._SALARY_FIELDS}
        row["salary_data"] = write_document({k: getattr(record, k) for k in self._SALARY_FIELDS})
        row["tenant_id"] = tenant_id
        return row

    def decode(self, row, now) -> Employee:
        values = _pick(Employee, row, exclude=self._SALARY_FIELDS)
        values.update(_pick(Employee, read_document(self.table, row.get("salary_data")), exclude=("id",)))
        values["balance"] = float(values.get("balance", 0) or 0)
        return Employee(**values)


class RewardCodec(RecordCodec):
    table = collection = Table.REWARDS

    _CONFIG_FIELDS = ("percentage", "value", "gift")

    def encode(self, record: Reward, tenant_id: str) -> Dict[str, Any]:
        row = {k: v for k, v in asdict(record).items() if k not in self._CONFIG_FIELDS}
        row["config"] = write_document({k: getattr(record, k) for k in self._CONFIG_FIELDS})
        row["tenant_id"] = tenant_id
        return row

    def decode(self, row, now) -> Reward:
        values = _pick(Reward, row, exclude=self._CONFIG_FIELDS)
        values.update(_pick(Reward, read_document(self.table, row.get("config")), exclude=("id",)))
        return Reward(**values)


class CampaignCodec(RecordCodec):
    table = collection = Table.MARKETING_CAMPAIGNS

    _DETAIL_FIELDS = (
        "campaign_type", "channel", "selected_client_ids", "discount",
        "custom_variables", "scheduled_for",
    )

    def encode(self, record: Campaign, tenant_id: str) -> Dict[str, Any]:
        row = {k: v for k, v in asdict(record).items() if k not in self._DETAIL_FIELDS}
        details = {k: getattr(record, k) for k in self._DETAIL_FIELDS}
        details["selected_client_ids"] = list(record.selected_client_ids)
        details["custom_variables"] = dict(record.custom_variables)
        row["details"] = write_document(details)
        row["tenant_id"] = tenant_id
        return row

    def decode(self, row, now) -> Campaign:
        values = _pick(Campaign, row, exclude=self._DETAIL_FIELDS)
        details = read_document(self.table, row.get("details"))
        if "campaign_type" not in details and row.get("type"):
            details["campaign_type"] = row["type"]
        values.update(_pick(Campaign, details, exclude=("id",)))
        values["selected_client_ids"] = tuple(values.get("selected_client_ids", ()))
        values["revenue_generated"] = float(values.get("revenue_generated", 0) or 0)
        return Campaign(**values)


class ServiceCodec:
    """
    services rows fan out into three collections: the catalog item,
    its price matrix entries and its consumption bill of materials.
    """

    table = Table.SERVICES

    def encode(
        self,
        service: ServiceCatalogItem,
        prices: Mapping[str, float],
        consumption: Optional[ServiceConsumption],
        tenant_id: str,
    ) -> Dict[str, Any]:
        row = asdict(service)
        image_url = row.pop("image_url")
        return_interval_days = row.pop("return_interval_days")
        row["tenant_id"] = tenant_id
        row["price_matrix"] = self.encode_price_matrix(prices, consumption, image_url, return_interval_days)
        return row

    def encode_price_matrix(
        self,
        prices: Mapping[str, float],
        consumption: Optional[ServiceConsumption],
        image_url: Optional[str],
        return_interval_days: Optional[int],
    ) -> Dict[str, Any]:
        return write_document({
            "prices": {size: price for size, price in prices.items()},
            "consumption": [asdict(i) for i in (consumption.items if consumption else ())],
            "image_url": image_url,
            "return_interval_days": return_interval_days,
        })

    def decode(
        self, row: Mapping[str, Any], now: datetime
    ) -> Tuple[ServiceCatalogItem, List[PriceMatrixEntry], Optional[ServiceConsumption]]:
        document = read_document(self.table, row.get("price_matrix"))
        values = _pick(ServiceCatalogItem, row)
        values.update(_pick(ServiceCatalogItem, document, exclude=("id",)))
        service = ServiceCatalogItem(**values)
        prices = [
            PriceMatrixEntry(service_id=service.id, size=size, price=float(price))
            for size, price in (document.get("prices") or {}).items()
        ]
        items = tuple(
            ConsumptionItem(**_pick(ConsumptionItem, i)) for i in document.get("consumption") or []
        )
        consumption = ServiceConsumption(service_id=service.id, items=items) if items else None
        return service, prices, consumption


class TenantCodec:
    table = Table.TENANTS

    def encode(self, tenant: Tenant) -> Dict[str, Any]:
        row = asdict(tenant)
        row["settings"] = write_document(tenant.settings)
        row["subscription"] = write_document(tenant.subscription)
        return row

    def decode(self, row: Mapping[str, Any]) -> Tenant:
        values = _pick(Tenant, row, exclude=("settings", "subscription"))
        values["settings"] = company_settings(read_document(self.table, row.get("settings")))
        values["subscription"] = deep_merge(
            {
                "plan_id": row.get("plan_id") or "trial",
                "status": "trial",
                "token_balance": 0,
                "token_history": [],
                "invoices": [],
            },
            read_document(self.table, row.get("subscription")),
        )
        return Tenant(**values)


# ══════════════════════════════════════════════════════════════
# REGISTRY
# ══════════════════════════════════════════════════════════════

CODECS: Dict[str, RecordCodec] = {
    codec.collection: codec
    for codec in (
        ClientCodec(),
        WorkOrderCodec(),
        InventoryCodec(),
        EmployeeCodec(),
        RewardCodec(),
        CampaignCodec(),
        FlatCodec(EmployeeTransaction, Table.EMPLOYEE_TRANSACTIONS),
        FlatCodec(FinancialTransaction, Table.FINANCIAL_TRANSACTIONS),
        FlatCodec(Redemption, Table.REDEMPTIONS),
        FlatCodec(PointsEntry, Table.POINTS_HISTORY),
        FlatCodec(FidelityCard, Table.FIDELITY_CARDS),
        FlatCodec(SystemAlert, Table.ALERTS),
    )
}

SERVICE_CODEC = ServiceCodec()
TENANT_CODEC = TenantCodec()
