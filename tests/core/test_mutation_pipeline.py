"""
Tests for core.sync.pipeline — optimistic apply, persist, rollback.
"""

import asyncio

import pytest

from core.remote.contracts import QueryResult
from core.remote.tables import Table
from core.state.entities import Client, FinancialTransaction
from core.state.store import Collection
from core.sync.pipeline import is_temp_id


class TestCreate:
    @pytest.mark.asyncio
    async def test_server_row_replaces_temporary_record(self, pipeline, store, remote):
        stored = await pipeline.create(Collection.CLIENTS, Client(id="", name="Ana"))
        assert stored is not None and not is_temp_id(stored.id)
        assert [c.id for c in store.all(Collection.CLIENTS)] == [stored.id]
        assert remote.rows(Table.CLIENTS)[0]["tenant_id"] == "tenant-1"

    @pytest.mark.asyncio
    async def test_local_record_visible_before_persistence_settles(self, pipeline, store, remote):
        gate = asyncio.Event()
        original_insert = remote.insert

        async def slow_insert(table, row):
            await gate.wait()
            return await original_insert(table, row)

        remote.insert = slow_insert
        task = asyncio.ensure_future(pipeline.create(Collection.CLIENTS, Client(id="", name="Ana")))
        await asyncio.sleep(0)
        [pending] = store.all(Collection.CLIENTS)
        assert is_temp_id(pending.id)
        gate.set()
        stored = await task
        assert store.all(Collection.CLIENTS) == [stored]

    @pytest.mark.asyncio
    async def test_failed_create_removes_temporary_record(self, pipeline, store, remote):
        remote.fail_next(Table.CLIENTS, "insert")
        assert await pipeline.create(Collection.CLIENTS, Client(id="", name="Ana")) is None
        assert store.all(Collection.CLIENTS) == []

    @pytest.mark.asyncio
    async def test_numeric_table_gets_integer_id(self, pipeline):
        stored = await pipeline.create(
            Collection.FINANCIAL_TRANSACTIONS,
            FinancialTransaction(id=0, desc="Polimento", amount=300.0, type="income"),
        )
        assert stored.id == 1

    @pytest.mark.asyncio
    async def test_no_tenant_no_write(self, pipeline, store, remote):
        store.clear()
        assert await pipeline.create(Collection.CLIENTS, Client(id="", name="Ana")) is None
        assert remote.count("insert") == 0


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_persists(self, pipeline, store, remote, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        assert await pipeline.update(Collection.CLIENTS, "c1", {"phone": "11999990000"})
        assert store.get(Collection.CLIENTS, "c1").phone == "11999990000"
        assert remote.rows(Table.CLIENTS)[0]["phone"] == "11999990000"

    @pytest.mark.asyncio
    async def test_failed_update_restores_snapshot(self, pipeline, store, remote, seed):
        original = seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        remote.fail_next(Table.CLIENTS, "update")
        assert not await pipeline.update(Collection.CLIENTS, "c1", {"name": "Outra"})
        assert store.get(Collection.CLIENTS, "c1") == original

    @pytest.mark.asyncio
    async def test_update_recomputes_derived_fields(self, pipeline, store, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        await pipeline.update(Collection.CLIENTS, "c1", {"visit_count": 12})
        assert store.get(Collection.CLIENTS, "c1").segment == "vip"

    @pytest.mark.asyncio
    async def test_missing_record(self, pipeline, remote):
        assert not await pipeline.update(Collection.CLIENTS, "ghost", {"name": "x"})
        assert remote.count("update") == 0


class TestDelete:
    @pytest.mark.asyncio
    async def test_failed_delete_reinserts_at_original_index(self, pipeline, store, remote, seed):
        for cid in ("c1", "c2", "c3"):
            seed(Collection.CLIENTS, Client(id=cid, name=cid))
        remote.fail_next(Table.CLIENTS, "delete")
        assert not await pipeline.delete(Collection.CLIENTS, "c2")
        assert [c.id for c in store.all(Collection.CLIENTS)] == ["c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_delete(self, pipeline, store, remote, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        assert await pipeline.delete(Collection.CLIENTS, "c1")
        assert store.all(Collection.CLIENTS) == []
        assert remote.rows(Table.CLIENTS) == []


class TestRun:
    @pytest.mark.asyncio
    async def test_exception_in_persist_rolls_back(self, pipeline):
        applied = []

        async def persist():
            raise ConnectionError("socket closed")

        result = await pipeline.run(
            lambda: applied.append("apply"),
            lambda: applied.append("rollback"),
            persist,
        )
        assert result.error.code == "EXCEPTION"
        assert applied == ["apply", "rollback"]

    @pytest.mark.asyncio
    async def test_success_does_not_roll_back(self, pipeline):
        applied = []

        async def persist():
            return QueryResult.success({"id": 1})

        result = await pipeline.run(lambda: applied.append("apply"), lambda: applied.append("rollback"), persist)
        assert result.ok
        assert applied == ["apply"]


class TestTenantUpdate:
    @pytest.mark.asyncio
    async def test_only_changed_fields_sent(self, pipeline, store, remote):
        settings = {**store.tenant.settings, "phone": "1133334444"}
        assert await pipeline.update_tenant(settings=settings)
        row = remote.rows(Table.TENANTS)[0]
        assert row["settings"]["phone"] == "1133334444"
        assert row["settings"]["schema_version"] == 1
        assert store.tenant.settings["phone"] == "1133334444"

    @pytest.mark.asyncio
    async def test_failed_tenant_update_rolls_back(self, pipeline, store, remote):
        before = store.tenant
        remote.fail_next(Table.TENANTS, "update")
        assert not await pipeline.update_tenant(plan_id="pro")
        assert store.tenant == before
