"""
CRISTAL Core Actions — Structured Results
===========================================
Outcome structure returned by user-initiated actions.

Validation failures (e.g. insufficient points) are NOT exceptions.
They are returned as ActionResult(success=False, ...), carrying:
- a machine-readable reason_code
- a human-readable message (pt-BR, shown as-is by the UI)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


# ══════════════════════════════════════════════════════════════
# ACTION RESULT (frozen outcome structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ActionResult:
    """
    Structured outcome of an action.

    Fields:
        success:     Whether the action was applied and persisted.
        message:     Human-readable explanation.
        reason_code: Machine-readable failure code (None on success).
        data:        Extra values produced by the action (e.g. voucher code).
    """

    success: bool
    message: str
    reason_code: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")
        if not self.success and not self.reason_code:
            raise ValueError("failed results require a reason_code.")

    @classmethod
    def ok(cls, message: str, **data: Any) -> ActionResult:
        return cls(success=True, message=message, data=dict(data))

    @classmethod
    def fail(cls, reason_code: str, message: str) -> ActionResult:
        return cls(success=False, message=message, reason_code=reason_code)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "reason_code": self.reason_code,
            "data": dict(self.data),
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REASON CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known failure codes. Extensible by engines.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Session ───────────────────────────────────────────────
    NO_ACTIVE_TENANT = "NO_ACTIVE_TENANT"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_CONFIRMED = "EMAIL_NOT_CONFIRMED"

    # ── Lookups ───────────────────────────────────────────────
    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    REWARD_NOT_FOUND = "REWARD_NOT_FOUND"
    REWARD_INACTIVE = "REWARD_INACTIVE"

    # ── Domain ────────────────────────────────────────────────
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    INSUFFICIENT_TOKENS = "INSUFFICIENT_TOKENS"
    UNKNOWN_PLAN = "UNKNOWN_PLAN"
    TENANT_ALREADY_EXISTS = "TENANT_ALREADY_EXISTS"
    INVALID_INPUT = "INVALID_INPUT"

    # ── Persistence ───────────────────────────────────────────
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
