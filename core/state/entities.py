"""
CRISTAL Core State — Entity Records
=====================================
Immutable tenant-scoped records held by the EntityStore.

RULES:
- Records are frozen; a change is dataclasses.replace(...) producing
  a new record, so a pre-mutation snapshot is simply the old object.
- Derived fields (Client.status/segment, InventoryItem.status) are
  recomputed on load and never treated as source of truth.
- Money values are floats in BRL, rounded to cents at computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


# ══════════════════════════════════════════════════════════════
# STATUS VOCABULARIES
# ══════════════════════════════════════════════════════════════

class WorkOrderStatus:
    AWAITING_APPROVAL = "Aguardando Aprovação"
    WAITING = "Aguardando"
    IN_PROGRESS = "Em Andamento"
    WAITING_PARTS = "Aguardando Peças"
    QUALITY_CONTROL = "Controle de Qualidade"
    COMPLETED = "Concluído"
    DELIVERED = "Entregue"
    CANCELLED = "Cancelado"

    TERMINAL = frozenset({COMPLETED, CANCELLED})
    DONE = frozenset({COMPLETED, DELIVERED})


class CompletionEffect:
    """Side effects fired once per completed work order."""

    STOCK = "stock"
    POINTS = "points"
    CLIENT = "client"
    COMMISSION = "commission"

    ORDER = (STOCK, POINTS, CLIENT, COMMISSION)


class SalaryType:
    FIXED = "fixed"
    COMMISSION = "commission"
    MIXED = "mixed"

    EARNS_COMMISSION = frozenset({COMMISSION, MIXED})


class CommissionBase:
    GROSS = "gross"
    NET = "net"


class EmployeeTransactionType:
    COMMISSION = "commission"
    SALARY = "salary"
    ADVANCE = "advance"
    PAYMENT = "payment"

    CREDITS = frozenset({COMMISSION, SALARY})
    DEBITS = frozenset({ADVANCE, PAYMENT})


class RedemptionStatus:
    ACTIVE = "active"
    USED = "used"


class CampaignStatus:
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENT = "sent"

    ALL = frozenset({DRAFT, SCHEDULED, SENT})


class AlertType:
    STOCK = "estoque"
    FINANCIAL = "financeiro"
    SCHEDULE = "agenda"
    CLIENT = "cliente"
    STAFF = "profissional"


class AlertLevel:
    INFO = "info"
    ATTENTION = "atencao"
    CRITICAL = "critico"


# ══════════════════════════════════════════════════════════════
# TENANT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Tenant:
    """A store. Owns every other record through tenant_id."""

    id: str
    name: str
    slug: str
    owner_id: str
    plan_id: str = "trial"
    status: str = "active"
    settings: Dict[str, Any] = field(default_factory=dict)
    subscription: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None


# ══════════════════════════════════════════════════════════════
# CLIENTS & VEHICLES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Vehicle:
    id: str
    model: str = ""
    plate: str = ""
    color: str = ""
    year: str = ""
    size: str = "medium"  # small | medium | large | xl


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    phone: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    cep: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    vehicles: Tuple[Vehicle, ...] = ()
    ltv: float = 0.0
    visit_count: int = 0
    last_visit: Optional[str] = None
    status: str = "active"   # derived: active | churn_risk | inactive
    segment: str = "new"     # derived: vip | recurring | new | inactive
    notes: Optional[str] = None
    created_at: Optional[str] = None


# ══════════════════════════════════════════════════════════════
# WORK ORDERS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Task:
    id: str
    service_id: str
    description: str = ""
    assigned_to: Optional[str] = None  # employee id
    status: str = "pending"            # pending | in_progress | completed
    started_at: Optional[str] = None
    finished_at: Optional[str] = None


@dataclass(frozen=True)
class WorkOrder:
    id: str
    client_id: str
    vehicle: str = ""
    plate: str = ""
    service: str = ""
    service_ids: Tuple[str, ...] = ()
    status: str = WorkOrderStatus.WAITING
    technician: str = ""
    deadline: Optional[str] = None
    priority: str = "medium"
    total_value: float = 0.0
    payment_status: str = "pending"
    payment_method: Optional[str] = None
    paid_at: Optional[str] = None
    nps_score: Optional[int] = None
    nps_comment: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    tasks: Tuple[Task, ...] = ()
    damages: Tuple[Dict[str, Any], ...] = ()
    checklist: Tuple[Dict[str, Any], ...] = ()
    qa_checklist: Tuple[Dict[str, Any], ...] = ()
    daily_log: Tuple[Dict[str, Any], ...] = ()
    additional_items: Tuple[Dict[str, Any], ...] = ()
    discount: Optional[Dict[str, Any]] = None
    completion_effects: Tuple[str, ...] = ()  # effects already persisted

    @property
    def is_completed(self) -> bool:
        return self.status == WorkOrderStatus.COMPLETED


# ══════════════════════════════════════════════════════════════
# CATALOG & INVENTORY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ServiceCatalogItem:
    id: str
    name: str
    category: str = ""
    description: str = ""
    standard_time_minutes: int = 60
    active: bool = True
    return_interval_days: Optional[int] = None
    show_on_landing_page: bool = False
    image_url: Optional[str] = None


@dataclass(frozen=True)
class PriceMatrixEntry:
    service_id: str
    size: str
    price: float


@dataclass(frozen=True)
class ConsumptionItem:
    inventory_id: int
    quantity: float
    usage_unit: str = "un"


@dataclass(frozen=True)
class ServiceConsumption:
    """Bill of materials consumed when a service is completed."""

    service_id: str
    items: Tuple[ConsumptionItem, ...] = ()


@dataclass(frozen=True)
class InventoryItem:
    id: int
    name: str
    category: str = ""
    stock: float = 0
    unit: str = "un"
    min_stock: float = 0
    cost_price: float = 0.0
    status: str = "ok"  # derived: ok | warning | critical


# ══════════════════════════════════════════════════════════════
# STAFF & FINANCE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    role: str = ""
    pin: str = ""
    salary_type: str = SalaryType.FIXED
    fixed_salary: float = 0.0
    commission_rate: float = 0.0
    commission_base: str = CommissionBase.GROSS
    active: bool = True
    balance: float = 0.0
    created_at: Optional[str] = None


@dataclass(frozen=True)
class EmployeeTransaction:
    """Append-only staff ledger entry. amount is a positive magnitude."""

    id: str
    employee_id: str
    type: str
    amount: float
    description: str = ""
    date: Optional[str] = None
    related_work_order_id: Optional[str] = None


@dataclass(frozen=True)
class FinancialTransaction:
    id: int
    desc: str
    amount: float
    type: str  # income | expense
    category: str = ""
    net_amount: Optional[float] = None
    fee: Optional[float] = None
    date: Optional[str] = None
    due_date: Optional[str] = None
    method: str = "Pix"
    status: str = "paid"  # paid | pending | overdue


# ══════════════════════════════════════════════════════════════
# LOYALTY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TierConfig:
    id: str
    name: str
    min_points: int
    benefits: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PointsEntry:
    id: str
    client_id: str
    points: int
    description: str = ""
    work_order_id: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class Reward:
    id: str
    name: str
    required_points: int
    description: str = ""
    required_level: str = "bronze"
    reward_type: str = "discount"  # discount | free_service | gift
    percentage: Optional[float] = None
    value: Optional[float] = None
    gift: Optional[str] = None
    active: bool = True
    created_at: Optional[str] = None


@dataclass(frozen=True)
class Redemption:
    id: str
    client_id: str
    reward_id: str
    code: str
    points_cost: int
    reward_name: str = ""
    status: str = RedemptionStatus.ACTIVE
    redeemed_at: Optional[str] = None
    used_at: Optional[str] = None
    used_in_work_order_id: Optional[str] = None


@dataclass(frozen=True)
class FidelityCard:
    id: str
    client_id: str
    card_number: str
    issued_at: Optional[str] = None


@dataclass(frozen=True)
class ClientPoints:
    """Derived loyalty position. Never stored."""

    client_id: str
    total_points: int
    current_level: int
    tier: str
    last_service_date: Optional[str]
    services_completed: int
    points_history: Tuple[PointsEntry, ...] = ()


# ══════════════════════════════════════════════════════════════
# ALERTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SystemAlert:
    id: str
    type: str
    message: str
    level: str = AlertLevel.INFO
    resolved: bool = False
    created_at: Optional[str] = None
    financial_impact: Optional[float] = None
    action_link: Optional[str] = None
    action_label: Optional[str] = None


# ══════════════════════════════════════════════════════════════
# MARKETING
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Campaign:
    id: str
    name: str
    target_segment: str = "all"      # all | vip | recurring | new | inactive
    message_template: str = ""
    campaign_type: str = "custom"    # flash | reactivation | vip | birthday | promo | combo | custom
    channel: str = "whatsapp"        # whatsapp | sms | email
    selected_client_ids: Tuple[str, ...] = ()
    discount: Optional[Dict[str, Any]] = None
    custom_variables: Dict[str, str] = field(default_factory=dict)
    status: str = CampaignStatus.DRAFT
    sent_count: int = 0
    conversion_count: int = 0
    revenue_generated: float = 0.0
    cost_in_tokens: int = 0
    date: Optional[str] = None
    scheduled_for: Optional[str] = None
    created_at: Optional[str] = None
