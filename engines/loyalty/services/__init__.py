"""
CRISTAL Loyalty Engine — Service Layer
========================================
Points are derived on read; rewards, redemptions, points history and
fidelity cards are plain records written through the mutation
pipeline.

Voucher lifecycle: active → used (one-way).
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence

from core.actions.result import ActionResult, ReasonCode
from core.state.entities import (
    ClientPoints,
    FidelityCard,
    PointsEntry,
    Redemption,
    RedemptionStatus,
    Reward,
    TierConfig,
)
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

from engines.loyalty.policies import (
    LoyaltyProgram,
    compute_client_points,
    reward_must_be_claimable_policy,
    sufficient_points_policy,
    tiers_to_config,
)

logger = logging.getLogger("cristal.loyalty")

VOUCHER_CODE_LENGTH = 6
VOUCHER_ALPHABET = string.ascii_uppercase + string.digits


def random_voucher_code() -> str:
    return "".join(secrets.choice(VOUCHER_ALPHABET) for _ in range(VOUCHER_CODE_LENGTH))


def random_card_number() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(16))


@dataclass(frozen=True)
class VoucherDetails:
    redemption: Redemption
    reward: Optional[Reward]


class LoyaltyService:
    """Loyalty reads and writes for the active tenant."""

    def __init__(
        self,
        pipeline: MutationPipeline,
        *,
        code_factory: Callable[[], str] = random_voucher_code,
    ) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store
        self._code_factory = code_factory

    @property
    def program(self) -> LoyaltyProgram:
        tenant = self._store.tenant
        return LoyaltyProgram.from_settings(tenant.settings if tenant else None)

    # ── Points ────────────────────────────────────────────────

    def get_client_points(self, client_id: str) -> Optional[ClientPoints]:
        client = self._store.get(Collection.CLIENTS, client_id)
        if client is None:
            return None
        return compute_client_points(
            client,
            self._store.all(Collection.POINTS_HISTORY),
            self._store.all(Collection.REDEMPTIONS),
            self.program,
        )

    async def add_points_to_client(
        self,
        client_id: str,
        work_order_id: Optional[str],
        points: int,
        description: str,
    ) -> Optional[PointsEntry]:
        entry = PointsEntry(
            id="",
            client_id=client_id,
            points=int(points),
            description=description,
            work_order_id=work_order_id,
            created_at=now_iso(self._pipeline.clock),
        )
        return await self._pipeline.create(Collection.POINTS_HISTORY, entry)

    # ── Vouchers ──────────────────────────────────────────────

    async def claim_reward(self, client_id: str, reward_id: str) -> ActionResult:
        if self._store.tenant_id is None:
            return ActionResult.fail(ReasonCode.NO_ACTIVE_TENANT, "Nenhuma loja ativa.")

        reward = self._store.get(Collection.REWARDS, reward_id)
        rejection = reward_must_be_claimable_policy(reward, reward_id)
        if rejection is not None:
            return rejection

        points = self.get_client_points(client_id)
        if points is None:
            return ActionResult.fail(
                ReasonCode.CLIENT_NOT_FOUND, f"Cliente '{client_id}' não encontrado."
            )
        rejection = sufficient_points_policy(points, reward)
        if rejection is not None:
            return rejection

        redemption = Redemption(
            id="",
            client_id=client_id,
            reward_id=reward.id,
            reward_name=reward.name,
            code=self._unique_code(),
            points_cost=reward.required_points,
            status=RedemptionStatus.ACTIVE,
            redeemed_at=now_iso(self._pipeline.clock),
        )
        stored = await self._pipeline.create(Collection.REDEMPTIONS, redemption)
        if stored is None:
            return ActionResult.fail(
                ReasonCode.PERSISTENCE_FAILED, "Não foi possível salvar o resgate."
            )
        logger.info("client %s claimed reward %s (%s)", client_id, reward.id, stored.code)
        return ActionResult.ok("Resgatado!", voucher_code=stored.code, redemption_id=stored.id)

    async def use_voucher(self, code: str, work_order_id: str) -> bool:
        redemption = self._find_voucher(code)
        if redemption is None or redemption.status != RedemptionStatus.ACTIVE:
            return False
        return await self._pipeline.update(
            Collection.REDEMPTIONS,
            redemption.id,
            {
                "status": RedemptionStatus.USED,
                "used_at": now_iso(self._pipeline.clock),
                "used_in_work_order_id": work_order_id,
            },
        )

    def get_voucher_details(self, code: str) -> Optional[VoucherDetails]:
        redemption = self._find_voucher(code)
        if redemption is None:
            return None
        return VoucherDetails(
            redemption=redemption,
            reward=self._store.get(Collection.REWARDS, redemption.reward_id),
        )

    def get_client_redemptions(self, client_id: str) -> List[Redemption]:
        return self._store.filter(Collection.REDEMPTIONS, lambda r: r.client_id == client_id)

    def _find_voucher(self, code: str) -> Optional[Redemption]:
        wanted = (code or "").strip().upper()
        return self._store.find(Collection.REDEMPTIONS, lambda r: r.code == wanted)

    def _unique_code(self) -> str:
        taken = {r.code for r in self._store.all(Collection.REDEMPTIONS)}
        code = self._code_factory()
        while code in taken:
            code = self._code_factory()
        return code

    # ── Rewards catalogue ─────────────────────────────────────

    async def add_reward(self, reward: Reward) -> Optional[Reward]:
        if reward.created_at is None:
            reward = replace(reward, created_at=now_iso(self._pipeline.clock))
        return await self._pipeline.create(Collection.REWARDS, reward)

    async def update_reward(self, reward_id: str, **changes) -> bool:
        return await self._pipeline.update(Collection.REWARDS, reward_id, changes)

    async def delete_reward(self, reward_id: str) -> bool:
        return await self._pipeline.delete(Collection.REWARDS, reward_id)

    def get_rewards_by_level(self, level: str) -> List[Reward]:
        return self._store.filter(Collection.REWARDS, lambda r: r.required_level == level)

    async def update_tier_config(self, tiers: Sequence[TierConfig]) -> bool:
        tenant = self._store.tenant
        if tenant is None:
            return False
        settings = dict(tenant.settings)
        settings["gamification"] = {
            **(settings.get("gamification") or {}),
            "tiers": tiers_to_config(tiers),
        }
        return await self._pipeline.update_tenant(settings=settings)

    # ── Fidelity cards ────────────────────────────────────────

    async def create_fidelity_card(self, client_id: str) -> Optional[FidelityCard]:
        """Issue a card for the client; an existing card is returned as-is."""
        existing = self.get_fidelity_card(client_id)
        if existing is not None:
            return existing
        if self._store.get(Collection.CLIENTS, client_id) is None:
            return None
        taken = {c.card_number for c in self._store.all(Collection.FIDELITY_CARDS)}
        number = random_card_number()
        while number in taken:
            number = random_card_number()
        card = FidelityCard(
            id="",
            client_id=client_id,
            card_number=number,
            issued_at=now_iso(self._pipeline.clock),
        )
        return await self._pipeline.create(Collection.FIDELITY_CARDS, card)

    def get_fidelity_card(self, client_id: str) -> Optional[FidelityCard]:
        return self._store.find(Collection.FIDELITY_CARDS, lambda c: c.client_id == client_id)
