"""
Storage Services Package

Provides the abstract record store interface, a typed client over it, and
concrete implementations. Google Sheets is the networked backend; the
in-memory backend serves tests and unconfigured installs.
"""

from financewise.services.storage.interface import (
    RECORD_FIELDS,
    UNIQUE_KEYS,
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    Record,
    RecordStoreInterface,
    StorageError,
    StoreConnectionError,
)
from financewise.services.storage.client import RecordStoreClient
from financewise.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)
from financewise.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStoreInterface",
    "RECORD_FIELDS",
    "UNIQUE_KEYS",
    "Record",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    # Typed client
    "RecordStoreClient",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
]
