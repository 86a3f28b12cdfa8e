"""
Shared fixtures: a fixed clock, an in-memory remote store holding one
tenant, and an EntityStore already loaded with that tenant.
"""

from datetime import datetime, timezone

import pytest

from core.identity.provider import Identity
from core.remote.memory import InMemoryRemoteStore
from core.remote.tables import Table
from core.state.codec import CODECS, SERVICE_CODEC, TENANT_CODEC, write_document
from core.state.entities import PriceMatrixEntry
from core.state.store import Collection, EntityStore, TenantSnapshot
from core.sync.pipeline import MutationPipeline
from core.time.clock import FixedClock


NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)
TENANT_ID = "tenant-1"
OWNER = Identity(user_id="user-1", email="dono@oficina.com.br")


def tenant_row(**overrides):
    row = {
        "id": TENANT_ID,
        "name": "Oficina Cristal",
        "slug": "oficina-cristal",
        "owner_id": OWNER.user_id,
        "plan_id": "trial",
        "status": "active",
        "settings": write_document({"name": "Oficina Cristal"}),
        "subscription": write_document({"status": "trial", "token_balance": 10}),
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return row


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def remote():
    store = InMemoryRemoteStore()
    store.seed(Table.TENANTS, tenant_row())
    return store


@pytest.fixture
def store(remote):
    entity_store = EntityStore()
    tenant = TENANT_CODEC.decode(remote.rows(Table.TENANTS)[0])
    entity_store.load(TenantSnapshot(tenant=tenant))
    return entity_store


@pytest.fixture
def pipeline(store, remote, clock):
    return MutationPipeline(store, remote, clock)


@pytest.fixture
def seed(store, remote):
    """Put a record in both the remote table and the loaded store."""

    def _seed(collection, record):
        codec = CODECS[collection]
        remote.seed(codec.table, codec.encode(record, TENANT_ID))
        store.put(collection, record)
        return record

    return _seed


@pytest.fixture
def seed_service(store, remote):
    """Put a catalogue service with its prices and bill of materials."""

    def _seed(service, prices=None, consumption=None):
        prices = prices or {}
        remote.seed(Table.SERVICES, SERVICE_CODEC.encode(service, prices, consumption, TENANT_ID))
        store.put(Collection.SERVICES, service)
        store.put_many(
            Collection.PRICE_MATRIX,
            [PriceMatrixEntry(service.id, size, float(price)) for size, price in prices.items()],
        )
        if consumption is not None:
            store.put(Collection.SERVICE_CONSUMPTIONS, consumption)
        return service

    return _seed
