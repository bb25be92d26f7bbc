"""
Abstract Record Store Interface

DESIGN DECISION: We define an abstract interface for the remote record store.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the synchronizer and coordinator decoupled from the transport

The interface is intentionally simple - we're not building a full ORM.
Five request/response operations over three record kinds, nothing more.
Every operation is a suspension point: callers await the round-trip and
must assume other writers can run in between.

There are no transactions and no atomic increments. The only concurrency
primitive relied upon is that a single record write is atomic.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from financewise.models.audit import AuditEvent
from financewise.models.records import RecordKind


# A record as it travels over the store boundary: field name -> value
Record = dict[str, Any]


# Fields each kind carries, in storage column order
RECORD_FIELDS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.EXPENSE: (
        "id",
        "owner",
        "amount",
        "category",
        "description",
        "date",
        "created_at",
    ),
    RecordKind.BUDGET: (
        "id",
        "owner",
        "category",
        "limit_amount",
        "spent",
        "created_at",
    ),
    RecordKind.PROFILE: (
        "id",
        "monthly_income",
    ),
}

# At most one record per kind may share these field values
UNIQUE_KEYS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.BUDGET: ("owner", "category"),
}


class RecordStoreInterface(ABC):
    """
    Abstract interface for the remote record store.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def create(self, kind: RecordKind, fields: Record) -> Record:
        """
        Create a new record.

        Args:
            kind: Record kind
            fields: Field values. `id` and `created_at` are assigned by the
                    store when absent.

        Returns:
            The stored record, including store-assigned fields

        Raises:
            DuplicateError: If a unique key of the kind is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def read(
        self,
        kind: RecordKind,
        filters: Optional[Record] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Record]:
        """
        Read every record of a kind matching all filters.

        Args:
            kind: Record kind
            filters: Field -> value equality filters (exact match)
            order_by: Field to sort on
            descending: Sort direction

        Returns:
            List of matching records

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def read_one(
        self,
        kind: RecordKind,
        filters: Record,
    ) -> Optional[Record]:
        """
        Read the single record matching all filters.

        Returns:
            The record if found, None otherwise

        Raises:
            StorageError: If the read fails or more than one record matches
        """
        pass

    @abstractmethod
    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        fields: Record,
    ) -> Record:
        """
        Overwrite the given fields of an existing record.

        Returns:
            The record after the update

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, kind: RecordKind, record_id: str) -> None:
        """
        Delete a record by id.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If the delete fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one expense mutation).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for record store operations."""
    pass


class NotFoundError(StorageError):
    """Record not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a record that violates a unique key."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
