"""
Tests for core.session — the per-user AppSession.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from core.actions.errors import AuthError, AuthErrorCode
from core.actions.result import ReasonCode
from core.config.rules import SyncConfig
from core.identity.provider import AuthEvent, AuthSession, Identity
from core.remote.memory import InMemoryRemoteStore
from core.remote.tables import Table
from core.session import AppSession
from core.state.entities import (
    AlertType,
    Campaign,
    Client,
    Employee,
    SalaryType,
    WorkOrder,
    WorkOrderStatus,
)
from core.sync.bootstrap import BootstrapState


OWNER = Identity(user_id="user-1", email="dono@oficina.com.br")
CONFIG = SyncConfig(attempt_timeouts=(None,), scan_interval_seconds=None)


class StubIdentityProvider:
    def __init__(self, session=None, error=None):
        self.session = session
        self.error = error
        self.sign_outs = 0

    async def get_current_session(self):
        if self.error is not None:
            raise self.error
        return self.session

    async def sign_in_with_password(self, email, password):
        if self.error is not None:
            raise self.error
        user_id = "user-1" if email == OWNER.email else f"user-{email}"
        self.session = AuthSession(identity=Identity(user_id=user_id, email=email), access_token="tok")
        return self.session

    async def sign_out(self):
        self.sign_outs += 1
        self.session = None


def _session(remote, clock, provider=None):
    return AppSession(
        provider or StubIdentityProvider(), remote, clock=clock, config=CONFIG, sleep=AsyncMock()
    )


class TestSignIn:
    @pytest.mark.asyncio
    async def test_sign_in_loads_tenant(self, remote, clock):
        session = _session(remote, clock)
        result = await session.sign_in(OWNER.email, "secret")
        assert result.success
        assert session.state is BootstrapState.READY
        assert session.tenant_id == "tenant-1"
        assert not session.is_app_loading

    @pytest.mark.asyncio
    async def test_bad_credentials_are_a_result(self, remote, clock):
        provider = StubIdentityProvider(error=AuthError(AuthErrorCode.INVALID_CREDENTIALS, "Senha incorreta"))
        session = _session(remote, clock, provider)
        result = await session.sign_in(OWNER.email, "wrong")
        assert not result.success
        assert result.reason_code == ReasonCode.INVALID_CREDENTIALS
        assert session.state is BootstrapState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_unconfirmed_email(self, remote, clock):
        provider = StubIdentityProvider(error=AuthError(AuthErrorCode.EMAIL_NOT_CONFIRMED, "Confirme o e-mail"))
        result = await _session(remote, clock, provider).sign_in(OWNER.email, "x")
        assert result.reason_code == ReasonCode.EMAIL_NOT_CONFIRMED


class TestStart:
    @pytest.mark.asyncio
    async def test_no_stored_session(self, remote, clock):
        session = _session(remote, clock)
        assert not await session.start()
        assert session.state is BootstrapState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_resumes_stored_session(self, remote, clock):
        provider = StubIdentityProvider(session=AuthSession(identity=OWNER))
        session = _session(remote, clock, provider)
        assert await session.start()
        assert session.tenant_id == "tenant-1"

    @pytest.mark.asyncio
    async def test_expired_refresh_token_forces_sign_out(self, remote, clock):
        provider = StubIdentityProvider(error=AuthError(AuthErrorCode.REFRESH_TOKEN_EXPIRED, "expired"))
        session = _session(remote, clock, provider)
        assert not await session.start()
        assert provider.sign_outs == 1

    @pytest.mark.asyncio
    async def test_provider_crash_reports_no_session(self, remote, clock, caplog):
        provider = StubIdentityProvider(error=RuntimeError("keychain unavailable"))
        session = _session(remote, clock, provider)
        with caplog.at_level(logging.ERROR, logger="cristal.session"):
            assert not await session.start()
        assert "session lookup failed" in caplog.text
        assert session.tenant is None
        assert provider.sign_outs == 0


class TestSignOut:
    @pytest.mark.asyncio
    async def test_sign_out_clears_everything(self, remote, clock):
        session = _session(remote, clock)
        await session.sign_in(OWNER.email, "secret")
        await session.sign_out()
        assert session.tenant is None
        assert session.clients == []
        assert session.identity is None
        assert session.state is BootstrapState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_refresh_failure_event_signs_out(self, remote, clock):
        provider = StubIdentityProvider()
        session = _session(remote, clock, provider)
        await session.sign_in(OWNER.email, "secret")
        await session.handle_auth_event(AuthEvent.TOKEN_REFRESH_FAILED, None)
        assert provider.sign_outs == 1
        assert session.tenant is None

    @pytest.mark.asyncio
    async def test_signed_in_event_bootstraps_once(self, remote, clock):
        session = _session(remote, clock)
        await session.handle_auth_event(AuthEvent.SIGNED_IN, AuthSession(identity=OWNER))
        await session.handle_auth_event(AuthEvent.INITIAL_SESSION, AuthSession(identity=OWNER))
        assert session.state is BootstrapState.READY
        assert remote.count("select", Table.TENANTS) == 1


class TestOnboarding:
    @pytest.mark.asyncio
    async def test_create_tenant_then_ready(self, clock):
        remote = InMemoryRemoteStore()
        session = _session(remote, clock)
        await session.sign_in("nova@loja.com", "secret")
        assert session.state is BootstrapState.NEEDS_ONBOARDING

        result = await session.create_tenant("Estética Brilho", "11988887777")
        assert result.success
        assert session.state is BootstrapState.READY
        assert session.tenant.slug == "estetica-brilho"
        assert session.subscription["status"] == "trial"

    @pytest.mark.asyncio
    async def test_create_tenant_requires_identity(self, remote, clock):
        result = await _session(remote, clock).create_tenant("Loja")
        assert result.reason_code == ReasonCode.NOT_AUTHENTICATED


class TestTenantIsolation:
    @pytest.mark.asyncio
    async def test_sessions_never_see_each_others_records(self, remote, clock):
        owner = _session(remote, clock)
        await owner.sign_in(OWNER.email, "secret")
        other = _session(remote, clock)
        await other.sign_in("outra@loja.com", "secret")
        await other.create_tenant("Outra Loja")

        await owner.add_client(Client(id="", name="Ana"))
        await other.add_client(Client(id="", name="Bia"))

        assert [c.name for c in owner.clients] == ["Ana"]
        assert [c.name for c in other.clients] == ["Bia"]
        assert owner.tenant_id != other.tenant_id

    @pytest.mark.asyncio
    async def test_switching_user_drops_previous_tenant(self, remote, clock):
        session = _session(remote, clock)
        await session.sign_in(OWNER.email, "secret")
        await session.add_client(Client(id="", name="Ana"))
        await session.sign_in("outra@loja.com", "secret")
        assert session.state is BootstrapState.NEEDS_ONBOARDING
        assert session.clients == []


class TestIntelligenceAfterReady:
    @pytest.mark.asyncio
    async def test_scan_runs_after_bootstrap(self, remote, clock):
        session = _session(remote, clock)
        await session.sign_in(OWNER.email, "secret")
        await session.bootstrapper.scan_task
        assert [a.type for a in session.system_alerts] == [AlertType.SCHEDULE]


class TestSessionOperations:
    @pytest.mark.asyncio
    async def test_campaigns_survive_sign_in_again(self, remote, clock):
        session = _session(remote, clock)
        await session.sign_in(OWNER.email, "secret")
        campaign = await session.create_campaign(Campaign(id="", name="Chuva", target_segment="vip"))
        assert await session.update_campaign(campaign.id, sent_count=3)

        await session.sign_out()
        await session.sign_in(OWNER.email, "secret")
        [loaded] = session.campaigns
        assert (loaded.name, loaded.sent_count, loaded.target_segment) == ("Chuva", 3, "vip")
        assert await session.delete_campaign(loaded.id)
        assert session.campaigns == []

    @pytest.mark.asyncio
    async def test_finishing_an_order_credits_commission(self, remote, clock):
        session = _session(remote, clock)
        await session.sign_in(OWNER.email, "secret")
        employee = await session.add_employee(Employee(
            id="", name="Rui", salary_type=SalaryType.COMMISSION, commission_rate=10,
        ))
        client = await session.add_client(Client(id="", name="Ana"))
        order = await session.add_work_order(WorkOrder(
            id="", client_id=client.id, technician="Rui", total_value=300.0,
        ))

        assert await session.update_work_order(order.id, status=WorkOrderStatus.COMPLETED)
        assert session.hr.get_employee(employee.id).balance == 30.0
        assert not (await session.complete_work_order(order.id)).status_updated
        assert session.hr.get_employee(employee.id).balance == 30.0
