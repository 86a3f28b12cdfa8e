"""
CRISTAL Core Config — Tunable Session Rules
=============================================
Doctrine: thresholds and timings are configuration, not literals
buried in engine logic.

Defaults reproduce the production behaviour. Deployments override
them through the CRISTAL_SYNC dict in Django settings; tests build
SyncConfig directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional, Tuple


# ══════════════════════════════════════════════════════════════
# INTELLIGENCE RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class IntelligenceRules:
    """Heuristic constants for the advisory scan."""

    # Occupancy
    horizon_days: int = 7
    staff_count: int = 2
    hours_per_day: int = 8
    working_days: int = 6
    min_occupancy: float = 0.5
    hourly_slot_rate: float = 150.0
    default_service_minutes: int = 60

    # Inactive clients
    inactive_days: int = 60
    inactive_client_threshold: int = 5
    average_ticket: float = 250.0
    recovery_rate: float = 0.10

    # Revenue per hour
    revenue_window_days: int = 30
    min_revenue_per_hour: float = 80.0

    def __post_init__(self) -> None:
        if not 0 <= self.min_occupancy <= 1:
            raise ValueError(
                f"min_occupancy must be between 0 and 1, got {self.min_occupancy}."
            )
        if not 0 <= self.recovery_rate <= 1:
            raise ValueError(
                f"recovery_rate must be between 0 and 1, got {self.recovery_rate}."
            )

    @property
    def capacity_minutes(self) -> int:
        return self.staff_count * self.hours_per_day * self.working_days * 60


# ══════════════════════════════════════════════════════════════
# SYNC CONFIG
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SyncConfig:
    """
    Session synchronization settings.

    attempt_timeouts: per-attempt client-side timeout in seconds for
        tenant resolution; None lets the remote call finish naturally.
        Its length is the number of attempts.
    retry_backoff_seconds: wait after failed attempt N is N * this.
    """

    attempt_timeouts: Tuple[Optional[float], ...] = (10.0, 30.0, None)
    retry_backoff_seconds: float = 2.0
    price_debounce_seconds: float = 1.0
    scan_delay_seconds: float = 5.0
    scan_interval_seconds: Optional[float] = 1800.0
    intelligence: IntelligenceRules = field(default_factory=IntelligenceRules)

    def __post_init__(self) -> None:
        if not self.attempt_timeouts:
            raise ValueError("attempt_timeouts must define at least one attempt.")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0.")
        if self.price_debounce_seconds <= 0:
            raise ValueError("price_debounce_seconds must be > 0.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> SyncConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown sync settings: {sorted(unknown)}.")
        kwargs = dict(values)
        if "attempt_timeouts" in kwargs:
            kwargs["attempt_timeouts"] = tuple(kwargs["attempt_timeouts"])
        rules = kwargs.get("intelligence")
        if isinstance(rules, Mapping):
            kwargs["intelligence"] = IntelligenceRules(**rules)
        return cls(**kwargs)


def load_sync_config(overrides: Optional[Mapping[str, Any]] = None) -> SyncConfig:
    """
    Build SyncConfig from Django settings (CRISTAL_SYNC) plus overrides.

    Works without Django settings: defaults apply.
    """
    values: dict = {}
    from django.conf import settings

    if settings.configured or os.environ.get("DJANGO_SETTINGS_MODULE"):
        values.update(getattr(settings, "CRISTAL_SYNC", None) or {})
    values.update(overrides or {})
    return SyncConfig.from_mapping(values)
