"""
CRISTAL Core Config — Tenant Document Defaults
================================================
Defaults merged under every tenant's `settings` and `subscription`
documents on load. Stored documents only need to carry overrides.
"""

from __future__ import annotations

import copy
from datetime import timedelta
from typing import Any, Dict, Mapping

from core.time.clock import Clock


DEFAULT_TIERS = (
    {"id": "bronze", "name": "Bronze", "min_points": 0,
     "benefits": ["5% desconto em serviços"]},
    {"id": "silver", "name": "Prata", "min_points": 500,
     "benefits": ["10% desconto", "Frete grátis"]},
    {"id": "gold", "name": "Ouro", "min_points": 1500,
     "benefits": ["15% desconto", "Atendimento VIP"]},
    {"id": "platinum", "name": "Platina", "min_points": 3000,
     "benefits": ["20% desconto", "Brinde exclusivo", "Suporte 24h"]},
)

DEFAULT_COMPANY_SETTINGS: Dict[str, Any] = {
    "name": "Minha Oficina",
    "slug": "minha-oficina",
    "responsible_name": "",
    "cnpj": "",
    "email": "",
    "phone": "",
    "address": "",
    "initial_balance": 0,
    "hourly_rate": None,
    "preferences": {
        "theme": "dark",
        "language": "pt-BR",
        "notifications": {
            "low_stock": True,
            "os_updates": True,
            "marketing": False,
            "financial": True,
            "security": True,
        },
    },
    "gamification": {
        "enabled": True,
        "level_system": True,
        "points_multiplier": 1,
        "tiers": [dict(t) for t in DEFAULT_TIERS],
    },
}

TRIAL_DAYS = 7
TRIAL_TOKENS = 10


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge; override wins, lists are replaced whole."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def company_settings(stored: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    return deep_merge(DEFAULT_COMPANY_SETTINGS, stored or {})


def initial_subscription(clock: Clock) -> Dict[str, Any]:
    return {
        "plan_id": "trial",
        "status": "trial",
        "next_billing_date": (clock.now_utc() + timedelta(days=TRIAL_DAYS)).isoformat(),
        "payment_method": "Nenhum",
        "token_balance": TRIAL_TOKENS,
        "token_history": [],
        "invoices": [],
    }
