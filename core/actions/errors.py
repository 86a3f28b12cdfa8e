"""
CRISTAL Core Actions — Error Taxonomy
=======================================
Exceptions used INSIDE the core. None of them crosses the
session boundary: bootstrap converts them into the FAILED state,
the mutation pipeline into rollback + False, and user actions
into ActionResult failures.
"""


class CristalError(Exception):
    """Base class for core errors."""


class TransientNetworkError(CristalError):
    """
    Remote store unreachable or query failed in a retryable way.

    Retried only by the session bootstrapper.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation}: {detail}")


class AuthErrorCode:
    """Identity provider failure codes."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_NOT_CONFIRMED = "EMAIL_NOT_CONFIRMED"
    REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"


class AuthError(CristalError):
    """
    Identity provider rejection.

    REFRESH_TOKEN_EXPIRED forces a local sign-out so a corrupted
    session cannot keep the app in a half-authenticated state.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    @property
    def forces_sign_out(self) -> bool:
        return self.code == AuthErrorCode.REFRESH_TOKEN_EXPIRED


class PersistenceError(CristalError):
    """Remote write failed; the optimistic change must be rolled back."""

    def __init__(self, table: str, operation: str, detail: str):
        self.table = table
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} on {table} failed: {detail}")


class ValidationError(CristalError):
    """Domain rule violated. Surfaced as ActionResult, never raised out."""

    def __init__(self, reason_code: str, message: str):
        self.reason_code = reason_code
        self.message = message
        super().__init__(message)


class DocumentSchemaError(CristalError):
    """A nested record document has an unsupported schema_version."""

    def __init__(self, table: str, version: object, supported: int):
        self.table = table
        self.version = version
        self.supported = supported
        super().__init__(
            f"{table} document schema_version {version!r} is not supported "
            f"(max {supported})."
        )
