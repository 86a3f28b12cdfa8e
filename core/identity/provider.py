"""
CRISTAL Identity — Session Provider Contract
==============================================
The identity/session provider is an external collaborator.
The core only consumes authenticated identities from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class AuthEvent(Enum):
    """Session change notifications delivered by the provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"


@dataclass(frozen=True)
class Identity:
    """Authenticated user, as resolved by the provider."""

    user_id: str
    email: str

    def __post_init__(self):
        if not self.user_id or not isinstance(self.user_id, str):
            raise ValueError("user_id must be a non-empty string.")


@dataclass(frozen=True)
class AuthSession:
    identity: Identity
    access_token: str = ""
    expires_at: Optional[int] = None


class IdentityProvider(Protocol):
    """
    getCurrentSession / signInWithPassword / signOut.

    sign_in_with_password raises core.actions.AuthError on rejection.
    """

    async def get_current_session(self) -> Optional[AuthSession]:
        ...  # pragma: no cover

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...  # pragma: no cover

    async def sign_out(self) -> None:
        ...  # pragma: no cover
