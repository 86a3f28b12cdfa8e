"""
Tests for the Workshop engine — work order completion side effects.
"""

import pytest

from core.remote.tables import Table
from core.state.entities import (
    Client,
    CommissionBase,
    CompletionEffect,
    ConsumptionItem,
    Employee,
    InventoryItem,
    SalaryType,
    ServiceCatalogItem,
    ServiceConsumption,
    WorkOrder,
    WorkOrderStatus,
)
from core.state.store import Collection
from engines.catalog.services import CatalogService
from engines.customer.services import CustomerService
from engines.hr.services import HRService
from engines.inventory.services import InventoryService
from engines.loyalty.services import LoyaltyService
from engines.workshop.completion import CompletionService
from engines.workshop.services import WorkshopService


@pytest.fixture
def hr(pipeline):
    return HRService(pipeline)


@pytest.fixture
def completion(pipeline, hr):
    return CompletionService(
        pipeline,
        workshop=WorkshopService(pipeline),
        inventory=InventoryService(pipeline),
        loyalty=LoyaltyService(pipeline),
        customers=CustomerService(pipeline),
        hr=hr,
        catalog=CatalogService(pipeline),
    )


@pytest.fixture
def shop(seed, seed_service):
    seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
    seed(Collection.INVENTORY, InventoryItem(id=1, name="Shampoo", stock=1.0, unit="l", cost_price=40.0))
    seed_service(
        ServiceCatalogItem(id="s1", name="Lavagem Detalhada"),
        {"medium": 200.0},
        ServiceConsumption("s1", (ConsumptionItem(inventory_id=1, quantity=500, usage_unit="ml"),)),
    )
    seed(Collection.EMPLOYEES, Employee(
        id="e1", name="Rui", salary_type=SalaryType.COMMISSION, commission_rate=10,
    ))
    seed(Collection.WORK_ORDERS, WorkOrder(
        id="o1", client_id="c1", technician="Rui", total_value=200.0,
        service_ids=("s1",), status=WorkOrderStatus.IN_PROGRESS,
    ))


class TestCompletion:
    @pytest.mark.asyncio
    async def test_commission_on_gross_value(self, completion, hr, shop, store):
        report = await completion.complete_work_order("o1")
        assert report.status_updated
        assert report.commission == 20.0
        [transaction] = hr.get_employee_transactions("e1")
        assert transaction.amount == 20.0
        assert transaction.related_work_order_id == "o1"
        assert transaction.description == "Comissão OS #o1"
        assert hr.get_employee("e1").balance == 20.0
        assert store.get(Collection.WORK_ORDERS, "o1").status == WorkOrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_every_effect_applied(self, completion, shop, store):
        report = await completion.complete_work_order("o1")
        assert report.applied == CompletionEffect.ORDER
        assert report.failed == ()
        assert report.points == 200
        client = store.get(Collection.CLIENTS, "c1")
        assert (client.visit_count, client.ltv) == (1, 200.0)
        assert client.last_visit is not None
        assert store.get(Collection.INVENTORY, 1).stock == 0.5
        [entry] = store.all(Collection.POINTS_HISTORY)
        assert entry.description == "Serviço OS #o1"

    @pytest.mark.asyncio
    async def test_net_commission_subtracts_material_cost(self, completion, hr, shop, seed):
        seed(Collection.EMPLOYEES, Employee(
            id="e1", name="Rui", salary_type=SalaryType.MIXED, commission_rate=10,
            commission_base=CommissionBase.NET,
        ))
        report = await completion.complete_work_order("o1")
        assert report.commission == 18.0

    @pytest.mark.asyncio
    async def test_second_completion_is_a_no_op(self, completion, hr, shop):
        await completion.complete_work_order("o1")
        report = await completion.complete_work_order("o1")
        assert report.skipped_reason == "already_completed"
        assert len(hr.get_employee_transactions("e1")) == 1

    @pytest.mark.asyncio
    async def test_fixed_salary_earns_no_commission(self, completion, hr, shop, seed):
        seed(Collection.EMPLOYEES, Employee(id="e1", name="Rui", salary_type=SalaryType.FIXED, commission_rate=10))
        report = await completion.complete_work_order("o1")
        assert CompletionEffect.COMMISSION in report.applied
        assert hr.get_employee_transactions("e1") == []

    @pytest.mark.asyncio
    async def test_failed_effect_is_reported_not_raised(self, completion, shop, remote, store):
        remote.fail_next(Table.EMPLOYEE_TRANSACTIONS, "insert")
        report = await completion.complete_work_order("o1")
        assert report.partial
        assert report.failed == (CompletionEffect.COMMISSION,)
        assert store.get(Collection.CLIENTS, "c1").visit_count == 1

    @pytest.mark.asyncio
    async def test_status_write_failure_skips_effects(self, completion, hr, shop, remote, store):
        remote.fail_next(Table.WORK_ORDERS, "update")
        report = await completion.complete_work_order("o1")
        assert report.skipped_reason == "status_update_failed"
        assert store.get(Collection.WORK_ORDERS, "o1").status == WorkOrderStatus.IN_PROGRESS
        assert hr.get_employee_transactions("e1") == []
        assert store.get(Collection.INVENTORY, 1).stock == 1.0

    @pytest.mark.asyncio
    async def test_disabled_loyalty_awards_nothing(self, completion, shop, pipeline, store):
        settings = {**store.tenant.settings, "gamification": {**store.tenant.settings["gamification"], "enabled": False}}
        await pipeline.update_tenant(settings=settings)
        report = await completion.complete_work_order("o1")
        assert report.points == 0
        assert store.all(Collection.POINTS_HISTORY) == []

    @pytest.mark.asyncio
    async def test_unknown_order(self, completion):
        report = await completion.complete_work_order("ghost")
        assert report.skipped_reason == "not_found"


class TestFinishingThroughUpdate:
    @pytest.mark.asyncio
    async def test_status_update_fires_commission(self, completion, hr, shop, store):
        assert await completion.update_work_order("o1", status=WorkOrderStatus.COMPLETED)
        assert store.get(Collection.WORK_ORDERS, "o1").status == WorkOrderStatus.COMPLETED
        assert hr.get_employee("e1").balance == 20.0
        assert len(hr.get_employee_transactions("e1")) == 1

        report = await completion.complete_work_order("o1")
        assert report.skipped_reason == "already_completed"
        assert len(hr.get_employee_transactions("e1")) == 1

    @pytest.mark.asyncio
    async def test_delivery_completes_first(self, completion, hr, shop, store):
        assert await completion.update_work_order(
            "o1", status=WorkOrderStatus.DELIVERED, payment_status="paid"
        )
        order = store.get(Collection.WORK_ORDERS, "o1")
        assert order.status == WorkOrderStatus.DELIVERED
        assert order.payment_status == "paid"
        assert order.completed_at is not None
        assert hr.get_employee("e1").balance == 20.0
        assert store.get(Collection.CLIENTS, "c1").visit_count == 1

    @pytest.mark.asyncio
    async def test_other_fields_pass_through(self, completion, hr, shop, store):
        assert await completion.update_work_order("o1", technician="Léo")
        assert store.get(Collection.WORK_ORDERS, "o1").technician == "Léo"
        assert hr.get_employee_transactions("e1") == []


class TestEffectTracking:
    @pytest.mark.asyncio
    async def test_applied_effects_persisted_on_order(self, completion, shop, remote, store):
        await completion.complete_work_order("o1")
        assert store.get(Collection.WORK_ORDERS, "o1").completion_effects == CompletionEffect.ORDER
        [row] = remote.rows(Table.WORK_ORDERS)
        assert row["json_data"]["completion_effects"] == list(CompletionEffect.ORDER)

    @pytest.mark.asyncio
    async def test_retry_runs_only_failed_effect(self, completion, hr, shop, remote, store):
        remote.fail_next(Table.EMPLOYEE_TRANSACTIONS, "insert")
        first = await completion.complete_work_order("o1")
        assert first.failed == (CompletionEffect.COMMISSION,)
        assert hr.get_employee_transactions("e1") == []

        retry = await completion.complete_work_order("o1")
        assert not retry.status_updated
        assert retry.applied == (CompletionEffect.COMMISSION,)
        assert retry.commission == 20.0
        assert store.get(Collection.CLIENTS, "c1").visit_count == 1
        assert store.get(Collection.INVENTORY, 1).stock == 0.5

    @pytest.mark.asyncio
    async def test_fresh_service_does_not_replay_persisted_effects(self, pipeline, hr, shop, store):
        first = CompletionService(
            pipeline,
            workshop=WorkshopService(pipeline),
            inventory=InventoryService(pipeline),
            loyalty=LoyaltyService(pipeline),
            customers=CustomerService(pipeline),
            hr=hr,
            catalog=CatalogService(pipeline),
        )
        await first.complete_work_order("o1")
        second = CompletionService(
            pipeline,
            workshop=WorkshopService(pipeline),
            inventory=InventoryService(pipeline),
            loyalty=LoyaltyService(pipeline),
            customers=CustomerService(pipeline),
            hr=hr,
            catalog=CatalogService(pipeline),
        )
        report = await second.complete_work_order("o1")
        assert report.skipped_reason == "already_completed"
        assert len(hr.get_employee_transactions("e1")) == 1
        assert store.get(Collection.INVENTORY, 1).stock == 0.5
