"""
Tests for the Customer engine — clients, metrics and vehicles.
"""

import pytest

from core.remote.tables import Table
from core.state.entities import Client, Vehicle
from core.state.store import Collection
from engines.customer.services import CustomerService


@pytest.fixture
def customers(pipeline):
    return CustomerService(pipeline)


class TestClients:
    @pytest.mark.asyncio
    async def test_add_client_stamps_created_at(self, customers):
        client = await customers.add_client(Client(id="", name="Ana"))
        assert client.created_at == "2026-03-02T12:00:00+00:00"
        assert customers.list_clients() == [client]

    @pytest.mark.asyncio
    async def test_ltv_never_below_zero(self, customers, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=100.0))
        assert await customers.update_client_ltv("c1", -250.0)
        assert customers.get_client("c1").ltv == 0.0

    @pytest.mark.asyncio
    async def test_record_visit(self, customers, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=1900.0, visit_count=2))
        assert await customers.record_visit("c1", 150.0, "2026-03-02")
        client = customers.get_client("c1")
        assert (client.visit_count, client.ltv, client.last_visit) == (3, 2050.0, "2026-03-02")
        assert client.segment == "vip"

    @pytest.mark.asyncio
    async def test_visits_update(self, customers, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", visit_count=1))
        assert await customers.update_client_visits("c1", -5)
        assert customers.get_client("c1").visit_count == 0

    @pytest.mark.asyncio
    async def test_delete_client(self, customers, seed, remote):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        assert await customers.delete_client("c1")
        assert remote.rows(Table.CLIENTS) == []


class TestVehicles:
    @pytest.mark.asyncio
    async def test_vehicle_lifecycle(self, customers, seed, remote):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        vehicle = await customers.add_vehicle("c1", Vehicle(id="", model="Onix", plate="BRA2E19"))
        assert vehicle.id.startswith("v-")
        assert remote.rows(Table.CLIENTS)[0]["vehicles"][0]["plate"] == "BRA2E19"

        assert await customers.update_vehicle("c1", Vehicle(id=vehicle.id, model="Onix Plus", plate="BRA2E19"))
        assert customers.get_client("c1").vehicles[0].model == "Onix Plus"

        assert await customers.remove_vehicle("c1", vehicle.id)
        assert customers.get_client("c1").vehicles == ()

    @pytest.mark.asyncio
    async def test_vehicle_for_unknown_client(self, customers):
        assert await customers.add_vehicle("ghost", Vehicle(id="", model="Onix")) is None
        assert not await customers.remove_vehicle("ghost", "v-1")

    @pytest.mark.asyncio
    async def test_failed_vehicle_add_rolls_back(self, customers, seed, remote):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        remote.fail_next(Table.CLIENTS, "update")
        assert await customers.add_vehicle("c1", Vehicle(id="", model="Onix")) is None
        assert customers.get_client("c1").vehicles == ()
