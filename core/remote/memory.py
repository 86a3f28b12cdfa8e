"""
CRISTAL Core Remote — In-Memory Store
=======================================
Dict-backed RemoteStore for development and tests.

Supports failure injection (`fail_next`) and records every call
in `calls` so tests can assert on the exact remote traffic.
"""

from __future__ import annotations

import copy
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.remote.contracts import QueryResult
from core.remote.tables import NUMERIC_ID_TABLES


@dataclass(frozen=True)
class RemoteCall:
    operation: str
    table: str
    record_id: Any = None


class InMemoryRemoteStore:
    """
    In-memory RemoteStore.

    Rows are deep-copied in and out so callers can never mutate
    stored state by accident.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, "OrderedDict[Any, dict]"] = {}
        self._next_numeric_id: Dict[str, int] = {}
        self._failures: Dict[Tuple[str, str], List[str]] = {}
        self.calls: List[RemoteCall] = []

    # ── Test helpers ──────────────────────────────────────────

    def seed(self, table: str, row: Mapping[str, Any]) -> dict:
        """Insert a row directly, bypassing failure injection and call log."""
        stored = self._store_row(table, row)
        return copy.deepcopy(stored)

    def rows(self, table: str) -> List[dict]:
        return [copy.deepcopy(r) for r in self._tables.get(table, {}).values()]

    def fail_next(self, table: str, operation: str, message: str = "remote failure", times: int = 1) -> None:
        """Make the next `times` calls of `operation` on `table` return an error."""
        self._failures.setdefault((table, operation), []).extend([message] * times)

    def count(self, operation: str, table: Optional[str] = None) -> int:
        return sum(
            1 for c in self.calls
            if c.operation == operation and (table is None or c.table == table)
        )

    # ── RemoteStore protocol ──────────────────────────────────

    async def select(self, table, *, tenant_id=None, filters=None) -> QueryResult:
        self.calls.append(RemoteCall("select", table))
        failure = self._take_failure(table, "select")
        if failure is not None:
            return failure
        matches = []
        for row in self._tables.get(table, {}).values():
            if tenant_id is not None and row.get("tenant_id") != tenant_id:
                continue
            if filters and any(row.get(k) != v for k, v in filters.items()):
                continue
            matches.append(copy.deepcopy(row))
        return QueryResult.success(matches)

    async def insert(self, table, row) -> QueryResult:
        self.calls.append(RemoteCall("insert", table))
        failure = self._take_failure(table, "insert")
        if failure is not None:
            return failure
        stored = self._store_row(table, row)
        return QueryResult.success(copy.deepcopy(stored))

    async def update(self, table, record_id, changes, *, tenant_id=None) -> QueryResult:
        self.calls.append(RemoteCall("update", table, record_id))
        failure = self._take_failure(table, "update")
        if failure is not None:
            return failure
        row = self._find(table, record_id, tenant_id)
        if row is None:
            return QueryResult.failure(f"{table} row {record_id} not found", code="PGRST116")
        row.update(copy.deepcopy(dict(changes)))
        row["id"] = record_id
        return QueryResult.success(copy.deepcopy(row))

    async def delete(self, table, record_id, *, tenant_id=None) -> QueryResult:
        self.calls.append(RemoteCall("delete", table, record_id))
        failure = self._take_failure(table, "delete")
        if failure is not None:
            return failure
        if self._find(table, record_id, tenant_id) is None:
            return QueryResult.failure(f"{table} row {record_id} not found", code="PGRST116")
        del self._tables[table][record_id]
        return QueryResult.success(None)

    # ── Internals ─────────────────────────────────────────────

    def _take_failure(self, table: str, operation: str) -> Optional[QueryResult]:
        pending = self._failures.get((table, operation))
        if not pending:
            return None
        return QueryResult.failure(pending.pop(0), code="INJECTED")

    def _find(self, table: str, record_id: Any, tenant_id: Optional[str]) -> Optional[dict]:
        row = self._tables.get(table, {}).get(record_id)
        if row is None:
            return None
        if tenant_id is not None and row.get("tenant_id") != tenant_id:
            return None
        return row

    def _store_row(self, table: str, row: Mapping[str, Any]) -> dict:
        stored = copy.deepcopy(dict(row))
        rows = self._tables.setdefault(table, OrderedDict())
        record_id = stored.get("id")
        if record_id is None:
            record_id = self._new_id(table)
        elif table in NUMERIC_ID_TABLES:
            self._next_numeric_id[table] = max(
                self._next_numeric_id.get(table, 1), int(record_id) + 1
            )
        stored["id"] = record_id
        rows[record_id] = stored
        return stored

    def _new_id(self, table: str) -> Any:
        if table in NUMERIC_ID_TABLES:
            next_id = self._next_numeric_id.get(table, 1)
            self._next_numeric_id[table] = next_id + 1
            return next_id
        return str(uuid.uuid4())
