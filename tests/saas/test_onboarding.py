"""
Tests for CRISTAL SaaS — tenant provisioning.
"""

import pytest

from core.actions.result import ReasonCode
from core.identity.provider import Identity
from core.remote.memory import InMemoryRemoteStore
from core.remote.tables import Table
from core.saas.onboarding import TenantProvisioner, slugify


NEW_USER = Identity(user_id="user-9", email="nova@loja.com")


class TestSlugify:
    def test_accents_and_spaces(self):
        assert slugify("Estética Automotiva São José") == "estetica-automotiva-sao-jose"

    def test_empty_fallback(self):
        assert slugify("!!!") == "loja"


class TestTenantProvisioner:
    @pytest.mark.asyncio
    async def test_creates_trial_tenant(self, clock):
        remote = InMemoryRemoteStore()
        result = await TenantProvisioner(remote, clock).create_tenant(NEW_USER, "Brilho Car", "11999990000")
        assert result.success
        [row] = remote.rows(Table.TENANTS)
        assert row["id"] == result.data["tenant_id"]
        assert row["owner_id"] == "user-9"
        assert row["plan_id"] == "trial"
        assert row["settings"]["schema_version"] == 1
        assert row["settings"]["phone"] == "11999990000"
        assert row["subscription"]["token_balance"] == 10

    @pytest.mark.asyncio
    async def test_one_tenant_per_owner(self, remote, clock):
        owner = Identity(user_id="user-1", email="dono@oficina.com.br")
        result = await TenantProvisioner(remote, clock).create_tenant(owner, "Segunda Loja")
        assert result.reason_code == ReasonCode.TENANT_ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, clock):
        result = await TenantProvisioner(InMemoryRemoteStore(), clock).create_tenant(NEW_USER, "   ")
        assert result.reason_code == ReasonCode.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_remote_failure(self, clock):
        remote = InMemoryRemoteStore()
        remote.fail_next(Table.TENANTS, "insert")
        result = await TenantProvisioner(remote, clock).create_tenant(NEW_USER, "Brilho Car")
        assert result.reason_code == ReasonCode.PERSISTENCE_FAILED
        assert remote.rows(Table.TENANTS) == []
