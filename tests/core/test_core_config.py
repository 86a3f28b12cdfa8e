"""
Tests for core.config — session rules and tenant document defaults.
"""

import pytest

from core.config.defaults import (
    DEFAULT_COMPANY_SETTINGS,
    company_settings,
    deep_merge,
    initial_subscription,
)
from core.config.rules import IntelligenceRules, SyncConfig, load_sync_config


# ── IntelligenceRules Tests ──────────────────────────────────

class TestIntelligenceRules:
    def test_capacity(self):
        assert IntelligenceRules().capacity_minutes == 2 * 8 * 6 * 60

    def test_invalid_occupancy(self):
        with pytest.raises(ValueError, match="between 0 and 1"):
            IntelligenceRules(min_occupancy=1.5)

    def test_frozen_immutability(self):
        rules = IntelligenceRules()
        with pytest.raises(AttributeError):
            rules.staff_count = 5


# ── SyncConfig Tests ─────────────────────────────────────────

class TestSyncConfig:
    def test_defaults(self):
        config = SyncConfig()
        assert config.attempt_timeouts == (10.0, 30.0, None)
        assert config.retry_backoff_seconds == 2.0
        assert config.price_debounce_seconds == 1.0

    def test_from_mapping_builds_nested_rules(self):
        config = SyncConfig.from_mapping({
            "attempt_timeouts": [5, None],
            "intelligence": {"staff_count": 4},
        })
        assert config.attempt_timeouts == (5, None)
        assert config.intelligence.staff_count == 4

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="Unknown sync settings"):
            SyncConfig.from_mapping({"retries": 9})

    def test_empty_attempts_rejected(self):
        with pytest.raises(ValueError):
            SyncConfig(attempt_timeouts=())

    def test_load_reads_django_settings(self, settings):
        settings.CRISTAL_SYNC = {"price_debounce_seconds": 0.5}
        config = load_sync_config({"scan_delay_seconds": 1.0})
        assert config.price_debounce_seconds == 0.5
        assert config.scan_delay_seconds == 1.0


# ── Defaults Tests ───────────────────────────────────────────

class TestDefaults:
    def test_deep_merge_overrides_leaves(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 9}})
        assert merged == {"a": {"b": 9, "c": 2}}

    def test_company_settings_keeps_defaults(self):
        settings = company_settings({"name": "Loja X"})
        assert settings["name"] == "Loja X"
        assert settings["gamification"]["tiers"][1]["min_points"] == 500
        assert DEFAULT_COMPANY_SETTINGS["name"] == "Minha Oficina"

    def test_initial_subscription_is_trial(self, clock):
        subscription = initial_subscription(clock)
        assert subscription["status"] == "trial"
        assert subscription["next_billing_date"].startswith("2026-03-09")
