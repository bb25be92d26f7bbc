"""Shared fixtures: an in-memory store and the components built on it."""

import pytest
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from financewise.audit import AuditLogger
from financewise.config import get_settings
from financewise.coordinator import ViewStateCoordinator
from financewise.models.records import RecordKind
from financewise.services.storage import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreClient,
    StorageError,
)
from financewise.sync import BudgetSynchronizer


OWNER = "user-1"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached per process; start every test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class RecordingRecordStore(InMemoryRecordStore):
    """
    In-memory store that logs every call and can be told to fail.

    Failures are raised after the event-loop yield, the same point a remote
    call would fail at.
    """

    def __init__(self):
        super().__init__()
        self._failures: dict[tuple[str, RecordKind], list[StorageError]] = defaultdict(list)
        self.calls: list[tuple[str, RecordKind]] = []

    def fail_next(
        self,
        operation: str,
        kind: RecordKind,
        error: Optional[StorageError] = None,
        times: int = 1,
    ) -> None:
        """Make the next `times` calls of operation on kind raise error."""
        error = error or StorageError(f"Simulated {operation} failure on {kind.value}")
        self._failures[(operation, kind)].extend([error] * times)

    def calls_for(self, operation: str, kind: Optional[RecordKind] = None) -> int:
        """Count logged calls of an operation, optionally for one kind."""
        return sum(
            1 for op, k in self.calls
            if op == operation and (kind is None or k == kind)
        )

    def seed(self, kind: RecordKind, record: dict) -> dict:
        """Insert a record directly, bypassing the call log."""
        stored = self._prepare(kind, record)
        self._records[kind][stored["id"]] = stored
        return dict(stored)

    async def _enter(self, operation: str, kind: RecordKind) -> None:
        self.calls.append((operation, kind))
        await super()._enter(operation, kind)
        pending = self._failures.get((operation, kind))
        if pending:
            raise pending.pop(0)


@pytest.fixture
def store() -> RecordingRecordStore:
    return RecordingRecordStore()


@pytest.fixture
def client(store) -> RecordStoreClient:
    return RecordStoreClient(store)


@pytest.fixture
def synchronizer(client) -> BudgetSynchronizer:
    return BudgetSynchronizer(client)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def coordinator(client, synchronizer, audit_storage) -> ViewStateCoordinator:
    return ViewStateCoordinator(
        owner=OWNER,
        client=client,
        synchronizer=synchronizer,
        audit_logger=AuditLogger(audit_storage),
    )


def seed_budget(store, category="Food", limit="500", spent="0", owner=OWNER, **extra):
    return store.seed(RecordKind.BUDGET, {
        "owner": owner,
        "category": category,
        "limit_amount": Decimal(limit),
        "spent": Decimal(spent),
        **extra,
    })


def seed_expense(store, amount="10", category="Food", on=date(2024, 3, 1), owner=OWNER):
    return store.seed(RecordKind.EXPENSE, {
        "owner": owner,
        "amount": Decimal(amount),
        "category": category,
        "description": "seeded",
        "date": on,
    })
