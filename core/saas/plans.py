"""
CRISTAL SaaS — Subscription Plans
===================================
Static plan catalogue. A plan change credits the plan's included
tokens to the tenant's wallet.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class PlanDefinition:
    plan_id: str
    name: str
    monthly_price: float
    included_tokens: int
    features: Tuple[str, ...] = ()
    billing_cycle_days: int = 30


TRIAL_PLAN_ID = "trial"

PLANS: Dict[str, PlanDefinition] = {
    plan.plan_id: plan
    for plan in (
        PlanDefinition(
            "starter", "Básico", 62.00, 50,
            ("Agenda & OS Digital", "Gestão de Clientes", "Controle de Estoque Básico"),
        ),
        PlanDefinition(
            "pro", "Intermediário", 107.00, 500,
            ("Financeiro Completo", "Gamificação & Fidelidade", "Comissões Automáticas"),
        ),
        PlanDefinition(
            "enterprise", "Avançado", 206.00, 2000,
            ("Automação de Marketing", "Múltiplas Unidades", "Suporte Prioritário"),
        ),
    )
}


def get_plan(plan_id: str) -> Optional[PlanDefinition]:
    return PLANS.get(plan_id)
