"""
CRISTAL Remote Store — Django Implementation
==============================================
RemoteStore over the Django ORM.

RULES:
- ORM calls run in a worker thread via asgiref's sync_to_async.
- Database errors are logged and returned as QueryResult failures,
  never raised to the pipeline.
- A missing row on update/delete is reported with code PGRST116, the
  same code the hosted backend uses for "no rows".
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Callable, Mapping, Optional

from asgiref.sync import sync_to_async
from django.db import DatabaseError, transaction
from django.db.models import Max

from adapters.django_store.models import RemoteRecord
from core.remote.contracts import QueryResult
from core.remote.tables import NUMERIC_ID_TABLES

logger = logging.getLogger("cristal.remote.django")

NOT_FOUND = "PGRST116"
DATABASE_ERROR = "DATABASE_ERROR"


class DjangoRemoteStore:

    async def select(self, table, *, tenant_id=None, filters=None) -> QueryResult:
        return await self._run("select", table, self._select, table, tenant_id, filters)

    async def insert(self, table, row) -> QueryResult:
        return await self._run("insert", table, self._insert, table, row)

    async def update(self, table, record_id, changes, *, tenant_id=None) -> QueryResult:
        return await self._run("update", table, self._update, table, record_id, changes, tenant_id)

    async def delete(self, table, record_id, *, tenant_id=None) -> QueryResult:
        return await self._run("delete", table, self._delete, table, record_id, tenant_id)

    # ── Sync side ─────────────────────────────────────────────

    async def _run(self, operation: str, table: str, fn: Callable[..., QueryResult], *args) -> QueryResult:
        try:
            return await sync_to_async(fn, thread_sensitive=True)(*args)
        except DatabaseError as exc:
            logger.exception("%s on %s failed", operation, table)
            return QueryResult.failure(str(exc), code=DATABASE_ERROR)

    def _select(self, table: str, tenant_id: Optional[str], filters: Optional[Mapping[str, Any]]) -> QueryResult:
        records = RemoteRecord.objects.filter(table=table)
        if tenant_id is not None:
            records = records.filter(tenant_id=tenant_id)
        if filters:
            records = records.filter(**{f"data__{key}": value for key, value in filters.items()})
        return QueryResult.success([copy.deepcopy(record.data) for record in records])

    def _insert(self, table: str, row: Mapping[str, Any]) -> QueryResult:
        data = copy.deepcopy(dict(row))
        with transaction.atomic():
            numeric_id = None
            if table in NUMERIC_ID_TABLES:
                numeric_id = data.get("id")
                if numeric_id is None:
                    current = RemoteRecord.objects.filter(table=table).aggregate(top=Max("numeric_id"))["top"]
                    numeric_id = (current or 0) + 1
                numeric_id = int(numeric_id)
                data["id"] = numeric_id
            elif data.get("id") is None:
                data["id"] = str(uuid.uuid4())
            RemoteRecord.objects.create(
                table=table,
                record_id=str(data["id"]),
                numeric_id=numeric_id,
                tenant_id=data.get("tenant_id"),
                data=data,
            )
        return QueryResult.success(copy.deepcopy(data))

    def _update(self, table: str, record_id: Any, changes: Mapping[str, Any], tenant_id: Optional[str]) -> QueryResult:
        with transaction.atomic():
            record = self._find(table, record_id, tenant_id, for_update=True)
            if record is None:
                return QueryResult.failure(f"{table} row {record_id} not found", code=NOT_FOUND)
            data = dict(record.data)
            data.update(copy.deepcopy(dict(changes)))
            data["id"] = record.data.get("id", record_id)
            record.data = data
            if "tenant_id" in changes:
                record.tenant_id = changes["tenant_id"]
            record.save(update_fields=["data", "tenant_id", "updated_at"])
        return QueryResult.success(copy.deepcopy(data))

    def _delete(self, table: str, record_id: Any, tenant_id: Optional[str]) -> QueryResult:
        record = self._find(table, record_id, tenant_id)
        if record is None:
            return QueryResult.failure(f"{table} row {record_id} not found", code=NOT_FOUND)
        record.delete()
        return QueryResult.success(None)

    @staticmethod
    def _find(table: str, record_id: Any, tenant_id: Optional[str], *, for_update: bool = False) -> Optional[RemoteRecord]:
        records = RemoteRecord.objects.filter(table=table, record_id=str(record_id))
        if tenant_id is not None:
            records = records.filter(tenant_id=tenant_id)
        if for_update:
            records = records.select_for_update()
        return records.first()
