"""
CRISTAL SaaS — Tenant Provisioning
====================================
Creates the tenant row for an identity that has none
(bootstrap state NEEDS_ONBOARDING).

New tenants start on the trial plan with the default company
settings, named after the shop.
"""

from __future__ import annotations

import logging
import re
import unicodedata

from core.actions.errors import PersistenceError, ValidationError
from core.actions.result import ActionResult, ReasonCode
from core.config.defaults import company_settings, initial_subscription
from core.identity.provider import Identity
from core.remote.contracts import RemoteStore
from core.remote.tables import Table
from core.saas.plans import TRIAL_PLAN_ID
from core.state.codec import write_document
from core.time.clock import Clock, now_iso

logger = logging.getLogger("cristal.saas")


def slugify(name: str) -> str:
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_name.lower()).strip("-") or "loja"


class TenantProvisioner:

    def __init__(self, remote: RemoteStore, clock: Clock) -> None:
        self._remote = remote
        self._clock = clock

    async def create_tenant(self, identity: Identity, shop_name: str, phone: str = "") -> ActionResult:
        try:
            row = await self._provision(identity, (shop_name or "").strip(), phone)
        except ValidationError as exc:
            return ActionResult.fail(exc.reason_code, exc.message)
        except PersistenceError as exc:
            logger.warning("tenant provisioning for %s failed: %s", identity.user_id, exc)
            return ActionResult.fail(ReasonCode.PERSISTENCE_FAILED, "Não foi possível criar a loja.")
        if row is None:
            return ActionResult.fail(
                ReasonCode.TENANT_ALREADY_EXISTS, "Este usuário já possui uma loja."
            )
        logger.info("tenant %s created for user %s", row["id"], identity.user_id)
        return ActionResult.ok("Loja criada.", tenant_id=row["id"])

    async def _provision(self, identity: Identity, shop_name: str, phone: str):
        if not shop_name:
            raise ValidationError(ReasonCode.INVALID_INPUT, "Informe o nome da loja.")
        existing = await self._remote.select(Table.TENANTS, filters={"owner_id": identity.user_id})
        if not existing.ok:
            raise PersistenceError(Table.TENANTS, "select", existing.error.message)
        if existing.rows():
            return None

        slug = slugify(shop_name)
        settings = company_settings(
            {"name": shop_name, "slug": slug, "phone": phone, "email": identity.email}
        )
        result = await self._remote.insert(Table.TENANTS, {
            "name": shop_name,
            "slug": slug,
            "owner_id": identity.user_id,
            "plan_id": TRIAL_PLAN_ID,
            "status": "active",
            "settings": write_document(settings),
            "subscription": write_document(initial_subscription(self._clock)),
            "created_at": now_iso(self._clock),
        })
        if not result.ok:
            raise PersistenceError(Table.TENANTS, "insert", result.error.message)
        return result.data
