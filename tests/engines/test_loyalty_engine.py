"""
Tests for the Loyalty engine — points, tiers, vouchers and cards.
"""

import pytest

from core.actions.result import ReasonCode
from core.remote.tables import Table
from core.state.entities import (
    Client,
    PointsEntry,
    Redemption,
    RedemptionStatus,
    Reward,
    TierConfig,
)
from core.state.store import Collection
from engines.loyalty.policies import (
    LoyaltyProgram,
    compute_client_points,
    earned_points,
    resolve_tier,
)
from engines.loyalty.services import LoyaltyService


@pytest.fixture
def loyalty(pipeline):
    codes = iter(["ABC123", "XYZ789", "QWE456"])
    return LoyaltyService(pipeline, code_factory=lambda: next(codes))


# ── Policy Tests ─────────────────────────────────────────────

class TestPointsArithmetic:
    def test_950_points_is_silver_level_2(self):
        points = compute_client_points(Client(id="c1", name="Ana", ltv=950.0), [], [], LoyaltyProgram())
        assert points.total_points == 950
        assert points.tier == "silver"
        assert points.current_level == 2

    def test_history_and_redemptions(self):
        client = Client(id="c1", name="Ana", ltv=500.0)
        history = [PointsEntry(id="p1", client_id="c1", points=100), PointsEntry(id="p2", client_id="c2", points=999)]
        redemptions = [Redemption(id="r1", client_id="c1", reward_id="w1", code="A", points_cost=200, status=RedemptionStatus.USED)]
        points = compute_client_points(client, history, redemptions, LoyaltyProgram())
        assert points.total_points == 400
        assert [e.id for e in points.points_history] == ["p1"]

    def test_never_negative(self):
        client = Client(id="c1", name="Ana", ltv=10.0)
        redemptions = [Redemption(id="r1", client_id="c1", reward_id="w1", code="A", points_cost=500)]
        assert compute_client_points(client, [], redemptions, LoyaltyProgram()).total_points == 0

    def test_multiplier_floors(self):
        assert earned_points(99.9, 1.5) == 149

    def test_below_every_tier_is_lowest_at_level_one(self):
        tiers = (TierConfig("prata", "Prata", 100), TierConfig("ouro", "Ouro", 1000))
        tier, level = resolve_tier(50, tiers)
        assert (tier.id, level) == ("prata", 1)

    def test_program_from_settings(self):
        program = LoyaltyProgram.from_settings({"gamification": {"enabled": False, "points_multiplier": 0}})
        assert not program.enabled
        assert program.points_multiplier == 1.0
        assert len(program.tiers) == 4


# ── Service Tests ────────────────────────────────────────────

class TestClaimReward:
    @pytest.mark.asyncio
    async def test_claim_creates_voucher_and_spends_points(self, loyalty, seed, remote):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=600.0))
        seed(Collection.REWARDS, Reward(id="w1", name="Lavagem grátis", required_points=500))
        result = await loyalty.claim_reward("c1", "w1")
        assert result.success
        assert result.data["voucher_code"] == "ABC123"
        assert loyalty.get_client_points("c1").total_points == 100
        assert remote.rows(Table.REDEMPTIONS)[0]["points_cost"] == 500

    @pytest.mark.asyncio
    async def test_insufficient_points(self, loyalty, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=100.0))
        seed(Collection.REWARDS, Reward(id="w1", name="Polimento", required_points=500))
        result = await loyalty.claim_reward("c1", "w1")
        assert result.reason_code == ReasonCode.INSUFFICIENT_POINTS
        assert loyalty.get_client_redemptions("c1") == []

    @pytest.mark.asyncio
    async def test_inactive_and_missing_rewards(self, loyalty, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=900.0))
        seed(Collection.REWARDS, Reward(id="w1", name="Antigo", required_points=10, active=False))
        assert (await loyalty.claim_reward("c1", "w1")).reason_code == ReasonCode.REWARD_INACTIVE
        assert (await loyalty.claim_reward("c1", "nope")).reason_code == ReasonCode.REWARD_NOT_FOUND
        assert (await loyalty.claim_reward("ghost", "w1")).reason_code == ReasonCode.REWARD_INACTIVE

    @pytest.mark.asyncio
    async def test_unknown_client(self, loyalty, seed):
        seed(Collection.REWARDS, Reward(id="w1", name="Brinde", required_points=10))
        assert (await loyalty.claim_reward("ghost", "w1")).reason_code == ReasonCode.CLIENT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_persistence_failure_rolls_back(self, loyalty, seed, remote):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=600.0))
        seed(Collection.REWARDS, Reward(id="w1", name="Brinde", required_points=500))
        remote.fail_next(Table.REDEMPTIONS, "insert")
        result = await loyalty.claim_reward("c1", "w1")
        assert result.reason_code == ReasonCode.PERSISTENCE_FAILED
        assert loyalty.get_client_points("c1").total_points == 600


class TestVouchers:
    @pytest.mark.asyncio
    async def test_voucher_is_single_use(self, loyalty, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana", ltv=600.0))
        seed(Collection.REWARDS, Reward(id="w1", name="Brinde", required_points=500))
        await loyalty.claim_reward("c1", "w1")

        assert await loyalty.use_voucher("abc123", "o1")
        assert not await loyalty.use_voucher("ABC123", "o2")
        details = loyalty.get_voucher_details("ABC123")
        assert details.redemption.status == RedemptionStatus.USED
        assert details.redemption.used_in_work_order_id == "o1"
        assert details.reward.name == "Brinde"

    @pytest.mark.asyncio
    async def test_unknown_voucher(self, loyalty):
        assert not await loyalty.use_voucher("NOPE00", "o1")
        assert loyalty.get_voucher_details("NOPE00") is None


class TestProgramAdmin:
    @pytest.mark.asyncio
    async def test_update_tier_config(self, loyalty, store):
        tiers = (TierConfig("bronze", "Bronze", 0), TierConfig("vip", "VIP", 200))
        assert await loyalty.update_tier_config(tiers)
        assert [t.id for t in loyalty.program.tiers] == ["bronze", "vip"]
        assert store.tenant.settings["gamification"]["enabled"] is True

    @pytest.mark.asyncio
    async def test_rewards_crud(self, loyalty):
        reward = await loyalty.add_reward(Reward(id="", name="Cera", required_points=300, required_level="silver"))
        assert reward.created_at is not None
        assert await loyalty.update_reward(reward.id, required_points=250)
        assert loyalty.get_rewards_by_level("silver")[0].required_points == 250
        assert await loyalty.delete_reward(reward.id)
        assert loyalty.get_rewards_by_level("silver") == []

    @pytest.mark.asyncio
    async def test_fidelity_card_issued_once(self, loyalty, seed):
        seed(Collection.CLIENTS, Client(id="c1", name="Ana"))
        card = await loyalty.create_fidelity_card("c1")
        again = await loyalty.create_fidelity_card("c1")
        assert card.id == again.id
        assert len(card.card_number) == 16
        assert await loyalty.create_fidelity_card("ghost") is None
