"""
CRISTAL Core Session — Application Session
============================================
The object the UI holds: one EntityStore, one pipeline and every
engine service wired over them, plus the auth/bootstrap lifecycle.

RULES:
- One AppSession per signed-in user; nothing here is a singleton.
- No exception crosses this boundary. Auth failures come back as
  ActionResult, bootstrap failures as the FAILED state.
- REFRESH_TOKEN_EXPIRED (or a failed refresh event) forces a local
  sign-out.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from core.actions.errors import AuthError, AuthErrorCode
from core.actions.result import ActionResult, ReasonCode
from core.config.rules import SyncConfig
from core.identity.provider import AuthEvent, AuthSession, Identity, IdentityProvider
from core.remote.contracts import RemoteStore
from core.saas.onboarding import TenantProvisioner
from core.saas.subscriptions import TenantAccountService
from core.state.entities import Tenant
from core.state.store import Collection, EntityStore
from core.sync.bootstrap import BootstrapState, SessionBootstrapper
from core.sync.pipeline import MutationPipeline
from core.time.clock import Clock, SystemClock

from ai.scanner import IntelligenceScanner
from engines.accounting.services import AccountingService
from engines.catalog.services import CatalogService
from engines.customer.services import CustomerService
from engines.hr.services import HRService
from engines.inventory.services import InventoryService
from engines.loyalty.services import LoyaltyService, random_voucher_code
from engines.marketing.services import MarketingService
from engines.workshop.completion import CompletionService
from engines.workshop.services import WorkshopService

logger = logging.getLogger("cristal.session")

_AUTH_REASONS = {
    AuthErrorCode.INVALID_CREDENTIALS: ReasonCode.INVALID_CREDENTIALS,
    AuthErrorCode.EMAIL_NOT_CONFIRMED: ReasonCode.EMAIL_NOT_CONFIRMED,
    AuthErrorCode.REFRESH_TOKEN_EXPIRED: ReasonCode.NOT_AUTHENTICATED,
}


def _delegate(service: str, name: str) -> Callable[..., Any]:
    def method(self, *args, **kwargs):
        return getattr(getattr(self, service), name)(*args, **kwargs)

    method.__name__ = name
    method.__doc__ = f"See {service}.{name}."
    return method


class AppSession:

    def __init__(
        self,
        identity_provider: IdentityProvider,
        remote: RemoteStore,
        *,
        clock: Optional[Clock] = None,
        config: Optional[SyncConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        code_factory: Callable[[], str] = random_voucher_code,
    ) -> None:
        self._provider = identity_provider
        self._config = config or SyncConfig()
        self._clock = clock or SystemClock()
        self.identity: Optional[Identity] = None
        self._periodic_scan: Optional["asyncio.Task[None]"] = None

        self.store = EntityStore()
        self.pipeline = MutationPipeline(self.store, remote, self._clock)

        self.customers = CustomerService(self.pipeline)
        self.workshop = WorkshopService(self.pipeline)
        self.inventory = InventoryService(self.pipeline)
        self.catalog = CatalogService(
            self.pipeline, debounce_seconds=self._config.price_debounce_seconds
        )
        self.hr = HRService(self.pipeline)
        self.accounting = AccountingService(self.pipeline)
        self.loyalty = LoyaltyService(self.pipeline, code_factory=code_factory)
        self.marketing = MarketingService(self.pipeline)
        self.account = TenantAccountService(self.pipeline)
        self.completion = CompletionService(
            self.pipeline,
            workshop=self.workshop,
            inventory=self.inventory,
            loyalty=self.loyalty,
            customers=self.customers,
            hr=self.hr,
            catalog=self.catalog,
        )
        self.scanner = IntelligenceScanner(self.pipeline, self._config.intelligence)
        self.provisioner = TenantProvisioner(remote, self._clock)
        self.bootstrapper = SessionBootstrapper(
            self.store, remote, self._clock, self._config,
            on_ready=self._after_ready, sleep=sleep,
        )

    # ══════════════════════════════════════════════════════════
    # STATE
    # ══════════════════════════════════════════════════════════

    @property
    def state(self) -> BootstrapState:
        return self.bootstrapper.state

    @property
    def is_app_loading(self) -> bool:
        return self.bootstrapper.is_loading

    @property
    def tenant(self) -> Optional[Tenant]:
        return self.store.tenant

    @property
    def tenant_id(self) -> Optional[str]:
        return self.store.tenant_id

    @property
    def company_settings(self) -> dict:
        return dict(self.tenant.settings) if self.tenant else {}

    @property
    def subscription(self) -> dict:
        return dict(self.tenant.subscription) if self.tenant else {}

    @property
    def current_user(self):
        return self.hr.current_user

    def collection(self, name: str) -> List[Any]:
        return self.store.all(name)

    @property
    def clients(self):
        return self.store.all(Collection.CLIENTS)

    @property
    def work_orders(self):
        return self.store.all(Collection.WORK_ORDERS)

    @property
    def inventory_items(self):
        return self.store.all(Collection.INVENTORY)

    @property
    def services(self):
        return self.store.all(Collection.SERVICES)

    @property
    def price_matrix(self):
        return self.store.all(Collection.PRICE_MATRIX)

    @property
    def employees(self):
        return self.store.all(Collection.EMPLOYEES)

    @property
    def employee_transactions(self):
        return self.store.all(Collection.EMPLOYEE_TRANSACTIONS)

    @property
    def financial_transactions(self):
        return self.store.all(Collection.FINANCIAL_TRANSACTIONS)

    @property
    def rewards(self):
        return self.store.all(Collection.REWARDS)

    @property
    def redemptions(self):
        return self.store.all(Collection.REDEMPTIONS)

    @property
    def system_alerts(self):
        return self.store.all(Collection.ALERTS)

    @property
    def campaigns(self):
        return self.store.all(Collection.CAMPAIGNS)

    # ══════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════

    async def start(self) -> bool:
        """Resume an existing provider session, if any."""
        try:
            session = await self._provider.get_current_session()
        except AuthError as exc:
            logger.warning("stored session rejected: %s", exc)
            if exc.forces_sign_out:
                await self.sign_out()
            return False
        except Exception:
            logger.exception("session lookup failed")
            return False
        if session is None:
            return False
        return await self._bootstrap(session.identity)

    async def sign_in(self, email: str, password: str) -> ActionResult:
        try:
            session = await self._provider.sign_in_with_password(email, password)
        except AuthError as exc:
            return ActionResult.fail(
                _AUTH_REASONS.get(exc.code, ReasonCode.NOT_AUTHENTICATED), exc.message
            )
        if not await self._bootstrap(session.identity):
            return ActionResult.fail(
                ReasonCode.PERSISTENCE_FAILED, "Não foi possível carregar os dados da loja."
            )
        return ActionResult.ok("Login realizado.", state=self.state.value)

    async def sign_out(self) -> None:
        try:
            await self._provider.sign_out()
        except Exception:
            logger.exception("identity provider sign-out failed; clearing local session anyway")
        self._end_local_session()

    async def retry_bootstrap(self) -> bool:
        if self.identity is None:
            return False
        return await self.bootstrapper.bootstrap(self.identity)

    async def reload_user_data(self) -> bool:
        return await self.retry_bootstrap()

    async def handle_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        if event in (AuthEvent.SIGNED_OUT, AuthEvent.TOKEN_REFRESH_FAILED):
            if event is AuthEvent.TOKEN_REFRESH_FAILED:
                logger.warning("token refresh failed; signing out")
                await self.sign_out()
            else:
                self._end_local_session()
            return
        if session is None:
            return
        if event in (AuthEvent.SIGNED_IN, AuthEvent.INITIAL_SESSION):
            same_user = self.identity is not None and self.identity.user_id == session.identity.user_id
            if same_user and self.state is BootstrapState.READY:
                return
            await self._bootstrap(session.identity)
        elif event in (AuthEvent.TOKEN_REFRESHED, AuthEvent.USER_UPDATED):
            self.identity = session.identity

    async def create_tenant(self, shop_name: str, phone: str = "") -> ActionResult:
        if self.identity is None:
            return ActionResult.fail(ReasonCode.NOT_AUTHENTICATED, "Faça login primeiro.")
        result = await self.provisioner.create_tenant(self.identity, shop_name, phone)
        if result.success:
            await self.reload_user_data()
        return result

    async def _bootstrap(self, identity: Identity) -> bool:
        if self.identity is not None and self.identity.user_id != identity.user_id:
            self._end_local_session()
        self.identity = identity
        return await self.bootstrapper.bootstrap(identity)

    def _end_local_session(self) -> None:
        self.catalog.price_batcher.cancel()
        if self._periodic_scan is not None:
            self._periodic_scan.cancel()
            self._periodic_scan = None
        self.hr.logout()
        self.bootstrapper.reset()
        self.identity = None

    async def _after_ready(self) -> None:
        await self.scanner.scan()
        interval = self._config.scan_interval_seconds
        if interval and (self._periodic_scan is None or self._periodic_scan.done()):
            self._periodic_scan = asyncio.ensure_future(self.scanner.run_periodically(interval))

    # ══════════════════════════════════════════════════════════
    # ACTIONS
    # ══════════════════════════════════════════════════════════

    # Clients
    add_client = _delegate("customers", "add_client")
    update_client = _delegate("customers", "update_client")
    delete_client = _delegate("customers", "delete_client")
    add_vehicle = _delegate("customers", "add_vehicle")
    update_vehicle = _delegate("customers", "update_vehicle")
    remove_vehicle = _delegate("customers", "remove_vehicle")
    update_client_ltv = _delegate("customers", "update_client_ltv")
    update_client_visits = _delegate("customers", "update_client_visits")

    # Work orders
    add_work_order = _delegate("workshop", "add_work_order")
    update_work_order = _delegate("completion", "update_work_order")
    submit_nps = _delegate("workshop", "submit_nps")
    assign_task = _delegate("workshop", "assign_task")
    start_task = _delegate("workshop", "start_task")
    stop_task = _delegate("workshop", "stop_task")
    complete_work_order = _delegate("completion", "complete_work_order")

    # Inventory
    add_inventory_item = _delegate("inventory", "add_inventory_item")
    update_inventory_item = _delegate("inventory", "update_inventory_item")
    delete_inventory_item = _delegate("inventory", "delete_inventory_item")
    deduct_stock = _delegate("inventory", "deduct_stock")

    # Catalog
    add_service = _delegate("catalog", "add_service")
    update_service = _delegate("catalog", "update_service")
    delete_service = _delegate("catalog", "delete_service")
    update_price = _delegate("catalog", "update_price")
    bulk_update_prices = _delegate("catalog", "bulk_update_prices")
    get_price = _delegate("catalog", "get_price")
    update_service_interval = _delegate("catalog", "update_service_interval")
    update_service_consumption = _delegate("catalog", "update_service_consumption")
    get_service_consumption = _delegate("catalog", "get_service_consumption")
    calculate_service_cost = _delegate("catalog", "calculate_service_cost")

    # Staff
    add_employee = _delegate("hr", "add_employee")
    update_employee = _delegate("hr", "update_employee")
    delete_employee = _delegate("hr", "delete_employee")
    add_employee_transaction = _delegate("hr", "add_employee_transaction")
    update_employee_transaction = _delegate("hr", "update_employee_transaction")
    delete_employee_transaction = _delegate("hr", "delete_employee_transaction")
    recalculate_employee_balance = _delegate("hr", "recalculate_employee_balance")
    login = _delegate("hr", "login")
    logout = _delegate("hr", "logout")

    # Finance
    add_financial_transaction = _delegate("accounting", "add_financial_transaction")
    update_financial_transaction = _delegate("accounting", "update_financial_transaction")
    delete_financial_transaction = _delegate("accounting", "delete_financial_transaction")

    # Loyalty
    get_client_points = _delegate("loyalty", "get_client_points")
    add_points_to_client = _delegate("loyalty", "add_points_to_client")
    claim_reward = _delegate("loyalty", "claim_reward")
    use_voucher = _delegate("loyalty", "use_voucher")
    get_voucher_details = _delegate("loyalty", "get_voucher_details")
    get_client_redemptions = _delegate("loyalty", "get_client_redemptions")
    add_reward = _delegate("loyalty", "add_reward")
    update_reward = _delegate("loyalty", "update_reward")
    delete_reward = _delegate("loyalty", "delete_reward")
    get_rewards_by_level = _delegate("loyalty", "get_rewards_by_level")
    update_tier_config = _delegate("loyalty", "update_tier_config")
    create_fidelity_card = _delegate("loyalty", "create_fidelity_card")
    get_fidelity_card = _delegate("loyalty", "get_fidelity_card")

    # Marketing
    create_campaign = _delegate("marketing", "create_campaign")
    create_campaign_from_template = _delegate("marketing", "create_from_template")
    update_campaign = _delegate("marketing", "update_campaign")
    delete_campaign = _delegate("marketing", "delete_campaign")
    get_campaign_audience = _delegate("marketing", "campaign_audience")
    preview_campaign_message = _delegate("marketing", "preview_message")

    # Tenant account
    update_company_settings = _delegate("account", "update_company_settings")
    buy_tokens = _delegate("account", "buy_tokens")
    consume_tokens = _delegate("account", "consume_tokens")
    change_plan = _delegate("account", "change_plan")

    # Intelligence
    mark_alert_resolved = _delegate("scanner", "mark_alert_resolved")
    run_intelligence_scan = _delegate("scanner", "scan")
