"""
CRISTAL Identity - Public API
=============================
Authenticated identity and the session provider contract.
"""

from core.identity.provider import (
    AuthEvent,
    AuthSession,
    Identity,
    IdentityProvider,
)

__all__ = [
    "AuthEvent",
    "AuthSession",
    "Identity",
    "IdentityProvider",
]
