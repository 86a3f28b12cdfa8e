"""
CRISTAL Core State
====================
Entity records, derived fields, row codecs and the in-memory
EntityStore that holds the active tenant's data.
"""

from core.state.entities import (
    Campaign,
    CampaignStatus,
    Client,
    ClientPoints,
    CommissionBase,
    ConsumptionItem,
    Employee,
    EmployeeTransaction,
    EmployeeTransactionType,
    FidelityCard,
    FinancialTransaction,
    InventoryItem,
    PointsEntry,
    PriceMatrixEntry,
    Redemption,
    RedemptionStatus,
    Reward,
    SalaryType,
    ServiceCatalogItem,
    ServiceConsumption,
    SystemAlert,
    AlertLevel,
    AlertType,
    Task,
    Tenant,
    TierConfig,
    Vehicle,
    WorkOrder,
    WorkOrderStatus,
)
from core.state.store import Collection, EntityStore, TenantSnapshot, key_of

__all__ = [
    "AlertLevel",
    "AlertType",
    "Campaign",
    "CampaignStatus",
    "Client",
    "ClientPoints",
    "Collection",
    "CommissionBase",
    "ConsumptionItem",
    "Employee",
    "EmployeeTransaction",
    "EmployeeTransactionType",
    "EntityStore",
    "FidelityCard",
    "FinancialTransaction",
    "InventoryItem",
    "PointsEntry",
    "PriceMatrixEntry",
    "Redemption",
    "RedemptionStatus",
    "Reward",
    "SalaryType",
    "ServiceCatalogItem",
    "ServiceConsumption",
    "SystemAlert",
    "Task",
    "Tenant",
    "TenantSnapshot",
    "TierConfig",
    "Vehicle",
    "WorkOrder",
    "WorkOrderStatus",
    "key_of",
]
