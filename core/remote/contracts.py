"""
CRISTAL Core Remote — Store Contract
======================================
The remote relational store is an external collaborator.

Contract:
- Every call is async and returns QueryResult(data, error).
- Expected query failures are reported through `error`, never raised.
- Tenant-owned tables are filtered by tenant_id on every call.
- insert returns the stored row (with its server-assigned id).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol


# ══════════════════════════════════════════════════════════════
# RESULT PAIR
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RemoteError:
    """Error half of a {data, error} pair."""

    message: str
    code: Optional[str] = None


@dataclass(frozen=True)
class QueryResult:
    """
    {data, error} pair returned by every store call.

    data is a list of rows for select, a single row for insert/update,
    and None for delete.
    """

    data: Any = None
    error: Optional[RemoteError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> QueryResult:
        return cls(data=data)

    @classmethod
    def failure(cls, message: str, code: Optional[str] = None) -> QueryResult:
        return cls(error=RemoteError(message=message, code=code))

    def rows(self) -> List[Dict[str, Any]]:
        """select data as a list (empty when missing)."""
        if not self.ok or self.data is None:
            return []
        return list(self.data)


# ══════════════════════════════════════════════════════════════
# STORE PROTOCOL
# ══════════════════════════════════════════════════════════════

class RemoteStore(Protocol):
    """Tenant-scoped select/insert/update/delete."""

    async def select(
        self,
        table: str,
        *,
        tenant_id: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> QueryResult:
        ...  # pragma: no cover

    async def insert(self, table: str, row: Mapping[str, Any]) -> QueryResult:
        ...  # pragma: no cover

    async def update(
        self,
        table: str,
        record_id: Any,
        changes: Mapping[str, Any],
        *,
        tenant_id: Optional[str] = None,
    ) -> QueryResult:
        ...  # pragma: no cover

    async def delete(
        self,
        table: str,
        record_id: Any,
        *,
        tenant_id: Optional[str] = None,
    ) -> QueryResult:
        ...  # pragma: no cover
