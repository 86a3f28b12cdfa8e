"""
CRISTAL Core Sync — Optimistic Mutation Pipeline
==================================================
Every write follows the same four steps:

    1. apply the change to the EntityStore (synchronously)
    2. await the remote write
    3. on failure, roll the local change back
    4. report success (record | None for creates, bool otherwise)

Rollback shapes:
- create → remove the temporary record
- update → restore the pre-mutation snapshot
- delete → re-insert at the original position

Local effects are visible before persistence settles. Nothing here
raises for a failed write: failures are logged and reported.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from core.remote.contracts import QueryResult, RemoteStore
from core.remote.tables import Table
from core.state.codec import CODECS, TENANT_CODEC, RecordCodec
from core.state.store import EntityStore
from core.time.clock import Clock

logger = logging.getLogger("cristal.sync")

TEMP_ID_PREFIX = "tmp-"


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(record_id: Any) -> bool:
    return isinstance(record_id, str) and record_id.startswith(TEMP_ID_PREFIX)


class MutationPipeline:
    """Optimistic apply → persist → rollback over one EntityStore."""

    def __init__(self, store: EntityStore, remote: RemoteStore, clock: Clock) -> None:
        self._store = store
        self._remote = remote
        self._clock = clock

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def remote(self) -> RemoteStore:
        return self._remote

    @property
    def clock(self) -> Clock:
        return self._clock

    # ══════════════════════════════════════════════════════════
    # PRIMITIVE
    # ══════════════════════════════════════════════════════════

    async def run(
        self,
        apply: Callable[[], None],
        rollback: Callable[[], None],
        persist: Callable[[], Awaitable[QueryResult]],
        *,
        label: str = "mutation",
    ) -> QueryResult:
        """
        Apply, persist, roll back on failure.

        Returns the QueryResult; unexpected exceptions from `persist`
        are logged and converted to a failed result.
        """
        apply()
        try:
            result = await persist()
        except Exception as exc:
            logger.exception("%s raised during persistence", label)
            result = QueryResult.failure(str(exc), code="EXCEPTION")

        if not result.ok:
            logger.warning(
                "%s failed, rolling back: %s", label, result.error.message
            )
            rollback()
        return result

    # ══════════════════════════════════════════════════════════
    # COLLECTION OPERATIONS
    # ══════════════════════════════════════════════════════════

    async def create(self, collection: str, record: Any) -> Optional[Any]:
        """
        Insert `record` under a temporary id, then swap in the server row.

        The record's own id is ignored; the remote store assigns it.
        """
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            logger.warning("create on %s skipped: no active tenant", collection)
            return None

        codec = self._codec(collection)
        now = self._clock.now_utc()
        temp = codec.derive(replace(record, id=new_temp_id()), now)
        row = codec.encode(temp, tenant_id)
        row.pop("id", None)

        result = await self.run(
            apply=lambda: self._store.insert_at(collection, 0, temp),
            rollback=lambda: self._store.remove(collection, temp.id),
            persist=lambda: self._remote.insert(codec.table, row),
            label=f"create {collection}",
        )
        if not result.ok:
            return None

        stored = codec.decode(result.data, now)
        if self._store.get(collection, temp.id) is not None:
            self._store.replace_key(collection, temp.id, stored)
        return stored

    async def update(
        self, collection: str, record_id: Any, changes: Mapping[str, Any]
    ) -> bool:
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            logger.warning("update on %s skipped: no active tenant", collection)
            return False
        current = self._store.get(collection, record_id)
        if current is None:
            logger.warning("update on %s skipped: %s not found", collection, record_id)
            return False

        codec = self._codec(collection)
        updated = codec.derive(replace(current, **changes), self._clock.now_utc())
        return await self.replace(collection, current, updated)

    async def replace(self, collection: str, current: Any, updated: Any) -> bool:
        """Persist `updated` in place of `current` (same key)."""
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            return False
        codec = self._codec(collection)
        row = codec.encode(updated, tenant_id)
        row.pop("id", None)

        result = await self.run(
            apply=lambda: self._store.put(collection, updated),
            rollback=lambda: self._store.put(collection, current),
            persist=lambda: self._remote.update(
                codec.table, current.id, row, tenant_id=tenant_id
            ),
            label=f"update {collection}/{current.id}",
        )
        return result.ok

    async def delete(self, collection: str, record_id: Any) -> bool:
        tenant_id = self._store.tenant_id
        if tenant_id is None:
            logger.warning("delete on %s skipped: no active tenant", collection)
            return False
        if self._store.get(collection, record_id) is None:
            return False

        codec = self._codec(collection)
        removed: Dict[str, Any] = {}

        def apply() -> None:
            removed["position"] = self._store.remove(collection, record_id)

        def rollback() -> None:
            index, record = removed["position"]
            self._store.insert_at(collection, index, record)

        result = await self.run(
            apply=apply,
            rollback=rollback,
            persist=lambda: self._remote.delete(codec.table, record_id, tenant_id=tenant_id),
            label=f"delete {collection}/{record_id}",
        )
        return result.ok

    # ══════════════════════════════════════════════════════════
    # TENANT
    # ══════════════════════════════════════════════════════════

    async def update_tenant(self, **changes: Any) -> bool:
        """Replace tenant fields (settings, subscription, plan_id, ...)."""
        current = self._store.tenant
        if current is None:
            logger.warning("tenant update skipped: no active tenant")
            return False
        updated = replace(current, **changes)
        encoded = TENANT_CODEC.encode(updated)
        row = {name: encoded[name] for name in changes}

        result = await self.run(
            apply=lambda: self._store.set_tenant(updated),
            rollback=lambda: self._store.set_tenant(current),
            persist=lambda: self._remote.update(Table.TENANTS, current.id, row),
            label=f"update tenant/{current.id}",
        )
        return result.ok

    def _codec(self, collection: str) -> RecordCodec:
        try:
            return CODECS[collection]
        except KeyError:
            raise KeyError(f"No row codec for collection '{collection}'.") from None
