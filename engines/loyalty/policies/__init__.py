"""
CRISTAL Loyalty Engine — Policies
===================================
Pure point and tier arithmetic plus redemption guards.

Points are never stored:

    total = max(0, floor(ltv * multiplier)
                   + Σ points_history
                   - Σ redemption costs)

Every redemption counts against the balance whatever its status.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from core.actions.result import ActionResult, ReasonCode
from core.config.defaults import DEFAULT_TIERS
from core.state.entities import (
    Client,
    ClientPoints,
    PointsEntry,
    Redemption,
    Reward,
    TierConfig,
)


def tiers_from_config(raw: Iterable[Mapping[str, Any]]) -> Tuple[TierConfig, ...]:
    return tuple(
        TierConfig(
            id=str(t["id"]),
            name=str(t.get("name", t["id"])),
            min_points=int(t.get("min_points", 0)),
            benefits=tuple(t.get("benefits") or ()),
        )
        for t in raw
    )


def tiers_to_config(tiers: Iterable[TierConfig]) -> list:
    return [
        {"id": t.id, "name": t.name, "min_points": t.min_points, "benefits": list(t.benefits)}
        for t in tiers
    ]


# ── Program ───────────────────────────────────────────────────

@dataclass(frozen=True)
class LoyaltyProgram:
    """Loyalty configuration read from the tenant's gamification settings."""

    enabled: bool = True
    points_multiplier: float = 1.0
    tiers: Tuple[TierConfig, ...] = field(default_factory=lambda: tiers_from_config(DEFAULT_TIERS))

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> LoyaltyProgram:
        gamification = (settings or {}).get("gamification") or {}
        tiers = gamification.get("tiers") or DEFAULT_TIERS
        return cls(
            enabled=bool(gamification.get("enabled", True)),
            # 0 and missing both mean the default multiplier
            points_multiplier=float(gamification.get("points_multiplier") or 1),
            tiers=tiers_from_config(tiers),
        )


# ── Arithmetic ────────────────────────────────────────────────

def earned_points(amount: float, multiplier: float) -> int:
    return int(math.floor((amount or 0) * multiplier))


def resolve_tier(total_points: int, tiers: Sequence[TierConfig]) -> Tuple[Optional[TierConfig], int]:
    """
    Highest tier whose min_points is met, and its 1-based level.

    Levels count tiers in ascending min_points order. When no tier is
    met the lowest tier is returned at level 1.
    """
    if not tiers:
        return None, 1
    ascending = sorted(tiers, key=lambda t: t.min_points)
    for index in range(len(ascending) - 1, -1, -1):
        if ascending[index].min_points <= total_points:
            return ascending[index], index + 1
    return ascending[0], 1


def compute_client_points(
    client: Client,
    entries: Iterable[PointsEntry],
    redemptions: Iterable[Redemption],
    program: LoyaltyProgram,
) -> ClientPoints:
    history = tuple(e for e in entries if e.client_id == client.id)
    spent = sum(r.points_cost for r in redemptions if r.client_id == client.id)
    raw_total = (
        earned_points(client.ltv, program.points_multiplier)
        + sum(e.points for e in history)
        - spent
    )
    total = max(0, raw_total)
    tier, level = resolve_tier(total, program.tiers)
    return ClientPoints(
        client_id=client.id,
        total_points=total,
        current_level=level,
        tier=tier.id if tier else "bronze",
        last_service_date=client.last_visit,
        services_completed=client.visit_count,
        points_history=history,
    )


# ── Redemption guards ─────────────────────────────────────────

def reward_must_be_claimable_policy(reward: Optional[Reward], reward_id: str) -> Optional[ActionResult]:
    if reward is None:
        return ActionResult.fail(
            ReasonCode.REWARD_NOT_FOUND, f"Recompensa '{reward_id}' não encontrada."
        )
    if not reward.active:
        return ActionResult.fail(
            ReasonCode.REWARD_INACTIVE, f"Recompensa '{reward.name}' está inativa."
        )
    return None


def sufficient_points_policy(points: ClientPoints, reward: Reward) -> Optional[ActionResult]:
    """Balance must cover the reward. Tier level is not checked."""
    if points.total_points < reward.required_points:
        return ActionResult.fail(
            ReasonCode.INSUFFICIENT_POINTS,
            f"Pontos insuficientes: {points.total_points} de {reward.required_points}.",
        )
    return None
