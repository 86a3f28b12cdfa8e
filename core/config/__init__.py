"""
CRISTAL Core Config — Public API
==================================
Tunable session rules and tenant document defaults.
"""

from core.config.defaults import (
    DEFAULT_COMPANY_SETTINGS,
    DEFAULT_TIERS,
    company_settings,
    deep_merge,
    initial_subscription,
)
from core.config.rules import IntelligenceRules, SyncConfig, load_sync_config

__all__ = [
    "IntelligenceRules",
    "SyncConfig",
    "load_sync_config",
    "DEFAULT_COMPANY_SETTINGS",
    "DEFAULT_TIERS",
    "company_settings",
    "deep_merge",
    "initial_subscription",
]
