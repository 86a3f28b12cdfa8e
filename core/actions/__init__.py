"""
CRISTAL Core Actions — Public API
===================================
Structured action results and the error taxonomy.
Doctrine: no exception crosses the session boundary.
"""

from core.actions.errors import (
    AuthError,
    AuthErrorCode,
    CristalError,
    DocumentSchemaError,
    PersistenceError,
    TransientNetworkError,
    ValidationError,
)
from core.actions.result import ActionResult, ReasonCode

__all__ = [
    "ActionResult",
    "ReasonCode",
    "CristalError",
    "TransientNetworkError",
    "AuthError",
    "AuthErrorCode",
    "PersistenceError",
    "ValidationError",
    "DocumentSchemaError",
]
