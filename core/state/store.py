"""
CRISTAL Core State — Entity Store
===================================
In-memory, tenant-scoped collections of immutable records.

RULES:
- Exactly one tenant is loaded at a time; `load` replaces every
  collection at once so no record of a previous tenant survives.
- Collections preserve order (newest first for creates).
- The store never talks to the remote store. The mutation pipeline
  and the bootstrapper are its only writers.
- One EntityStore per session; there is no module-level instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from core.state.entities import Tenant


# ══════════════════════════════════════════════════════════════
# COLLECTIONS
# ══════════════════════════════════════════════════════════════

class Collection:
    CLIENTS = "clients"
    WORK_ORDERS = "work_orders"
    INVENTORY = "inventory"
    SERVICES = "services"
    PRICE_MATRIX = "price_matrix"
    SERVICE_CONSUMPTIONS = "service_consumptions"
    EMPLOYEES = "employees"
    EMPLOYEE_TRANSACTIONS = "employee_transactions"
    FINANCIAL_TRANSACTIONS = "financial_transactions"
    REWARDS = "rewards"
    REDEMPTIONS = "redemptions"
    POINTS_HISTORY = "points_history"
    FIDELITY_CARDS = "fidelity_cards"
    ALERTS = "alerts"
    CAMPAIGNS = "marketing_campaigns"

    ALL = (
        CLIENTS, WORK_ORDERS, INVENTORY, SERVICES, PRICE_MATRIX,
        SERVICE_CONSUMPTIONS, EMPLOYEES, EMPLOYEE_TRANSACTIONS,
        FINANCIAL_TRANSACTIONS, REWARDS, REDEMPTIONS, POINTS_HISTORY,
        FIDELITY_CARDS, ALERTS, CAMPAIGNS,
    )


_KEY_FUNCTIONS: Dict[str, Callable[[Any], Any]] = {
    Collection.PRICE_MATRIX: lambda entry: (entry.service_id, entry.size),
    Collection.SERVICE_CONSUMPTIONS: lambda consumption: consumption.service_id,
}


def key_of(collection: str, record: Any) -> Any:
    """Identity of a record within its collection."""
    key_fn = _KEY_FUNCTIONS.get(collection)
    return key_fn(record) if key_fn else record.id


# ══════════════════════════════════════════════════════════════
# SNAPSHOTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TenantSnapshot:
    """Everything a resolved session loads, built before touching the store."""

    tenant: Tenant
    collections: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)
    skipped_rows: int = 0


# ══════════════════════════════════════════════════════════════
# ENTITY STORE
# ══════════════════════════════════════════════════════════════

class EntityStore:
    """
    Authoritative in-memory view of the active tenant.

    Records are frozen, so `all()` hands out the live objects safely;
    callers change state only through put/remove/insert_at.
    """

    def __init__(self) -> None:
        self._tenant: Optional[Tenant] = None
        self._collections: Dict[str, Dict[Any, Any]] = {
            name: {} for name in Collection.ALL
        }

    # ── Tenant ────────────────────────────────────────────────

    @property
    def tenant(self) -> Optional[Tenant]:
        return self._tenant

    @property
    def tenant_id(self) -> Optional[str]:
        return self._tenant.id if self._tenant else None

    def set_tenant(self, tenant: Tenant) -> None:
        if self._tenant is not None and tenant.id != self._tenant.id:
            raise ValueError(
                f"Cannot replace tenant {self._tenant.id} with {tenant.id}; use load()."
            )
        self._tenant = tenant

    # ── Bulk ──────────────────────────────────────────────────

    def load(self, snapshot: TenantSnapshot) -> None:
        """Replace the tenant and every collection."""
        collections: Dict[str, Dict[Any, Any]] = {name: {} for name in Collection.ALL}
        for name, records in snapshot.collections.items():
            if name not in collections:
                raise KeyError(f"Unknown collection '{name}'.")
            collections[name] = {key_of(name, r): r for r in records}
        self._tenant = snapshot.tenant
        self._collections = collections

    def clear(self) -> None:
        self._tenant = None
        self._collections = {name: {} for name in Collection.ALL}

    def snapshot(self) -> Dict[str, Tuple[Any, ...]]:
        return {name: tuple(items.values()) for name, items in self._collections.items()}

    # ── Reads ─────────────────────────────────────────────────

    def all(self, collection: str) -> List[Any]:
        return list(self._items(collection).values())

    def get(self, collection: str, key: Any) -> Optional[Any]:
        return self._items(collection).get(key)

    def find(self, collection: str, predicate: Callable[[Any], bool]) -> Optional[Any]:
        for record in self._items(collection).values():
            if predicate(record):
                return record
        return None

    def filter(self, collection: str, predicate: Callable[[Any], bool]) -> List[Any]:
        return [r for r in self._items(collection).values() if predicate(r)]

    def index_of(self, collection: str, key: Any) -> int:
        for index, existing in enumerate(self._items(collection)):
            if existing == key:
                return index
        return -1

    def __len__(self) -> int:
        return sum(len(items) for items in self._collections.values())

    # ── Writes ────────────────────────────────────────────────

    def put(self, collection: str, record: Any) -> None:
        """Replace in place when the key exists, else append."""
        self._items(collection)[key_of(collection, record)] = record

    def insert_at(self, collection: str, index: int, record: Any) -> None:
        items = self._items(collection)
        key = key_of(collection, record)
        entries = [(k, v) for k, v in items.items() if k != key]
        index = max(0, min(index, len(entries)))
        entries.insert(index, (key, record))
        self._collections[collection] = dict(entries)

    def remove(self, collection: str, key: Any) -> Optional[Tuple[int, Any]]:
        """Remove and return (original index, record), or None."""
        items = self._items(collection)
        if key not in items:
            return None
        index = self.index_of(collection, key)
        return index, items.pop(key)

    def replace_key(self, collection: str, old_key: Any, record: Any) -> None:
        """Swap the record stored under old_key for `record`, keeping its position."""
        items = self._items(collection)
        new_key = key_of(collection, record)
        self._collections[collection] = {
            (new_key if k == old_key else k): (record if k == old_key else v)
            for k, v in items.items()
            if not (k == new_key and k != old_key)
        }

    def put_many(self, collection: str, records: Iterable[Any]) -> None:
        for record in records:
            self.put(collection, record)

    def _items(self, collection: str) -> Dict[Any, Any]:
        try:
            return self._collections[collection]
        except KeyError:
            raise KeyError(f"Unknown collection '{collection}'.") from None
