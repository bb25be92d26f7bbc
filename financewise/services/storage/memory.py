"""
In-Memory Record Store

Dict-backed implementation of the record store interface. Used by the tests
and as the fallback backend when Google Sheets is not configured.

It behaves like the remote store where it matters to the synchronizer:
- every operation yields to the event loop before touching data, so two
  concurrent read-then-write sequences interleave exactly as they would over
  the network
- records are handed out as copies, never as live references
- the budget (owner, category) unique key is enforced on create and update

Nothing is kept per call, so a long session only holds its records.
"""

import asyncio
from typing import Optional
from uuid import UUID, uuid4

from financewise.models.audit import AuditEvent
from financewise.models.records import RecordKind, utcnow
from financewise.services.storage.interface import (
    RECORD_FIELDS,
    UNIQUE_KEYS,
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    Record,
    RecordStoreInterface,
    StorageError,
)


class InMemoryRecordStore(RecordStoreInterface):
    """Record store held in process memory. Not shared between processes."""

    def __init__(self):
        self._records: dict[RecordKind, dict[str, Record]] = {
            kind: {} for kind in RecordKind
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _enter(self, operation: str, kind: RecordKind) -> None:
        """Suspension point shared by every operation."""
        await asyncio.sleep(0)

    def _prepare(self, kind: RecordKind, fields: Record) -> Record:
        allowed = RECORD_FIELDS[kind]
        unknown = set(fields) - set(allowed)
        if unknown:
            raise StorageError(
                f"Unknown {kind.value} fields: {', '.join(sorted(unknown))}"
            )

        record = dict(fields)
        if not record.get("id"):
            record["id"] = str(uuid4())
        if "created_at" in allowed and record.get("created_at") is None:
            record["created_at"] = utcnow()
        return record

    def _check_unique(
        self,
        kind: RecordKind,
        record: Record,
        ignore_id: Optional[str] = None,
    ) -> None:
        key = UNIQUE_KEYS.get(kind)
        if not key:
            return
        wanted = tuple(record.get(field) for field in key)
        for existing in self._records[kind].values():
            if existing["id"] == ignore_id:
                continue
            if tuple(existing.get(field) for field in key) == wanted:
                raise DuplicateError(
                    f"A {kind.value} already exists for "
                    + ", ".join(f"{f}={v}" for f, v in zip(key, wanted))
                )

    @staticmethod
    def _matches(record: Record, filters: Optional[Record]) -> bool:
        if not filters:
            return True
        return all(record.get(field) == value for field, value in filters.items())

    # -------------------------------------------------------------------------
    # RecordStoreInterface
    # -------------------------------------------------------------------------

    async def create(self, kind: RecordKind, fields: Record) -> Record:
        await self._enter("create", kind)
        record = self._prepare(kind, fields)
        if record["id"] in self._records[kind]:
            raise DuplicateError(f"{kind.value} {record['id']} already exists")
        self._check_unique(kind, record)
        self._records[kind][record["id"]] = record
        return dict(record)

    async def read(
        self,
        kind: RecordKind,
        filters: Optional[Record] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Record]:
        await self._enter("read", kind)
        records = [
            dict(record)
            for record in self._records[kind].values()
            if self._matches(record, filters)
        ]
        if order_by:
            records.sort(key=lambda r: r[order_by], reverse=descending)
        return records

    async def read_one(
        self,
        kind: RecordKind,
        filters: Record,
    ) -> Optional[Record]:
        await self._enter("read_one", kind)
        matches = [
            record for record in self._records[kind].values()
            if self._matches(record, filters)
        ]
        if len(matches) > 1:
            raise StorageError(
                f"Expected at most one {kind.value}, found {len(matches)}"
            )
        return dict(matches[0]) if matches else None

    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        fields: Record,
    ) -> Record:
        await self._enter("update", kind)
        existing = self._records[kind].get(record_id)
        if existing is None:
            raise NotFoundError(f"{kind.value} not found: {record_id}")

        if "id" in fields:
            raise StorageError(f"Cannot change the id of a {kind.value}")
        unknown = set(fields) - set(RECORD_FIELDS[kind])
        if unknown:
            raise StorageError(
                f"Unknown {kind.value} fields: {', '.join(sorted(unknown))}"
            )

        updated = {**existing, **fields}
        self._check_unique(kind, updated, ignore_id=record_id)
        self._records[kind][record_id] = updated
        return dict(updated)

    async def delete(self, kind: RecordKind, record_id: str) -> None:
        await self._enter("delete", kind)
        if self._records[kind].pop(record_id, None) is None:
            raise NotFoundError(f"{kind.value} not found: {record_id}")


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
