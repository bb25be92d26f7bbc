"""Tests for the record store backends and the typed client."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

from financewise.models.audit import AuditEventBuilder
from financewise.models.records import RecordKind
from financewise.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    NotFoundError,
    RecordStoreClient,
    StorageError,
)
from financewise.services.storage.google_sheets import AUDIT_COLUMNS
from financewise.services.storage.interface import RECORD_FIELDS

from tests.conftest import OWNER, seed_budget, seed_expense


class FakeWorksheet:
    """Just enough of gspread.Worksheet, backed by a list of rows."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


@pytest.fixture
def sheets():
    return {kind: FakeWorksheet(RECORD_FIELDS[kind]) for kind in RecordKind}


@pytest.fixture
def sheets_client(sheets):
    client = MagicMock()
    client.get_record_sheet.side_effect = lambda kind: sheets[kind]
    return client


@pytest.fixture
def sheets_store(sheets_client) -> GoogleSheetsRecordStore:
    return GoogleSheetsRecordStore(sheets_client)


class TestInMemoryRecordStore:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamp(self, store):
        record = await store.create(RecordKind.BUDGET, {
            "owner": OWNER,
            "category": "Food",
            "limit_amount": Decimal("500"),
            "spent": Decimal("0"),
        })
        assert record["id"]
        assert isinstance(record["created_at"], datetime)

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_field(self, store):
        with pytest.raises(StorageError):
            await store.create(RecordKind.PROFILE, {"id": OWNER, "name": "x"})

    @pytest.mark.asyncio
    async def test_budget_unique_per_owner_and_category(self, store):
        seed_budget(store, category="Food")
        with pytest.raises(DuplicateError):
            await store.create(RecordKind.BUDGET, {
                "owner": OWNER,
                "category": "Food",
                "limit_amount": Decimal("1"),
            })

    @pytest.mark.asyncio
    async def test_same_category_other_owner_allowed(self, store):
        seed_budget(store, category="Food", owner="other")
        record = await store.create(RecordKind.BUDGET, {
            "owner": OWNER,
            "category": "Food",
            "limit_amount": Decimal("1"),
        })
        assert record["owner"] == OWNER

    @pytest.mark.asyncio
    async def test_read_filters_and_orders(self, store):
        seed_expense(store, amount="1", on=date(2024, 1, 1))
        seed_expense(store, amount="2", on=date(2024, 3, 1))
        seed_expense(store, amount="3", on=date(2024, 2, 1), owner="other")
        records = await store.read(
            RecordKind.EXPENSE, {"owner": OWNER}, order_by="date", descending=True
        )
        assert [r["amount"] for r in records] == [Decimal("2"), Decimal("1")]

    @pytest.mark.asyncio
    async def test_records_are_copies(self, store):
        budget = seed_budget(store)
        record = await store.read_one(RecordKind.BUDGET, {"id": budget["id"]})
        record["spent"] = Decimal("999")
        again = await store.read_one(RecordKind.BUDGET, {"id": budget["id"]})
        assert again["spent"] == Decimal("0")

    @pytest.mark.asyncio
    async def test_read_one_rejects_ambiguous_match(self, store):
        seed_expense(store)
        seed_expense(store)
        with pytest.raises(StorageError):
            await store.read_one(RecordKind.EXPENSE, {"owner": OWNER})

    @pytest.mark.asyncio
    async def test_update_missing_record(self, store):
        with pytest.raises(NotFoundError):
            await store.update(RecordKind.BUDGET, "nope", {"spent": Decimal("1")})

    @pytest.mark.asyncio
    async def test_update_cannot_change_id(self, store):
        budget = seed_budget(store)
        with pytest.raises(StorageError):
            await store.update(RecordKind.BUDGET, budget["id"], {"id": "new"})

    @pytest.mark.asyncio
    async def test_delete_missing_record(self, store):
        with pytest.raises(NotFoundError):
            await store.delete(RecordKind.EXPENSE, "nope")

    @pytest.mark.asyncio
    async def test_fail_next_and_call_log(self, store):
        store.fail_next("read", RecordKind.EXPENSE, times=2)
        for _ in range(2):
            with pytest.raises(StorageError):
                await store.read(RecordKind.EXPENSE)
        assert await store.read(RecordKind.EXPENSE) == []
        assert store.calls_for("read", RecordKind.EXPENSE) == 3
        assert store.calls_for("read", RecordKind.BUDGET) == 0

    @pytest.mark.asyncio
    async def test_fallback_store_keeps_no_call_state(self):
        """The store used outside tests holds records and nothing else."""
        plain = InMemoryRecordStore()
        for _ in range(50):
            await plain.read(RecordKind.EXPENSE)
        assert vars(plain).keys() == {"_records"}
        assert not hasattr(plain, "fail_next")


class TestRecordStoreClient:
    """Tests for the typed client."""

    @pytest.mark.asyncio
    async def test_create_and_list_expenses(self, client):
        await client.create_expense(OWNER, Decimal("5"), "Food", "a", date(2024, 1, 1))
        await client.create_expense(OWNER, Decimal("7"), "Food", "b", date(2024, 2, 1))
        expenses = await client.list_expenses(OWNER)
        assert [e.description for e in expenses] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_budgets_newest_first(self, store, client):
        seed_budget(store, category="Old", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        seed_budget(store, category="New", created_at=datetime(2024, 2, 1, tzinfo=timezone.utc))
        budgets = await client.list_budgets(OWNER)
        assert [b.category for b in budgets] == ["New", "Old"]

    @pytest.mark.asyncio
    async def test_new_budget_starts_at_zero(self, client):
        budget = await client.create_budget(OWNER, "Food", Decimal("500"))
        assert budget.spent == Decimal("0")

    @pytest.mark.asyncio
    async def test_find_budget(self, store, client):
        seed_budget(store, category="Food")
        assert (await client.find_budget(OWNER, "Food")).category == "Food"
        assert await client.find_budget(OWNER, "Fun") is None

    @pytest.mark.asyncio
    async def test_missing_profile(self, client):
        assert await client.get_profile(OWNER) is None

    @pytest.mark.asyncio
    async def test_set_monthly_income_upserts(self, store, client):
        await client.set_monthly_income(OWNER, Decimal("1000"))
        profile = await client.set_monthly_income(OWNER, Decimal("2000"))
        assert profile.monthly_income == Decimal("2000")
        assert store.calls_for("create", RecordKind.PROFILE) == 1
        assert store.calls_for("update", RecordKind.PROFILE) == 1

    @pytest.mark.asyncio
    async def test_malformed_record_is_storage_error(self, store, client):
        store.seed(RecordKind.BUDGET, {
            "owner": OWNER,
            "category": "Food",
            "limit_amount": "not money",
        })
        with pytest.raises(StorageError):
            await client.list_budgets(OWNER)


class TestGoogleSheetsRecordStore:
    """Tests for the Sheets backend against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_create_writes_exact_strings(self, sheets, sheets_store):
        record = await sheets_store.create(RecordKind.EXPENSE, {
            "owner": OWNER,
            "amount": Decimal("1E+2"),
            "category": "Food",
            "description": "Lunch",
            "date": date(2024, 3, 1),
        })
        row = sheets[RecordKind.EXPENSE].rows[1]
        assert row[2] == "100"
        assert row[5] == "2024-03-01"
        assert record["id"] == row[0]

    @pytest.mark.asyncio
    async def test_round_trip_through_client(self, sheets_store):
        client = RecordStoreClient(sheets_store)
        created = await client.create_budget(OWNER, "Food", Decimal("500.25"))
        found = await client.find_budget(OWNER, "Food")
        assert found.id == created.id
        assert found.limit_amount == Decimal("500.25")
        assert found.spent == Decimal("0")

    @pytest.mark.asyncio
    async def test_duplicate_budget(self, sheets_store):
        client = RecordStoreClient(sheets_store)
        await client.create_budget(OWNER, "Food", Decimal("1"))
        with pytest.raises(DuplicateError):
            await client.create_budget(OWNER, "Food", Decimal("2"))

    @pytest.mark.asyncio
    async def test_update_rewrites_row(self, sheets, sheets_store):
        client = RecordStoreClient(sheets_store)
        budget = await client.create_budget(OWNER, "Food", Decimal("500"))
        updated = await client.set_budget_spent(budget.id, Decimal("12.345"))
        assert updated.spent == Decimal("12.345")
        assert sheets[RecordKind.BUDGET].rows[1][4] == "12.345"

    @pytest.mark.asyncio
    async def test_update_missing(self, sheets_store):
        with pytest.raises(NotFoundError):
            await sheets_store.update(RecordKind.BUDGET, "nope", {"spent": Decimal("1")})

    @pytest.mark.asyncio
    async def test_delete(self, sheets, sheets_store):
        client = RecordStoreClient(sheets_store)
        expense = await client.create_expense(OWNER, Decimal("5"), "Food", "a", date(2024, 1, 1))
        await client.delete_expense(expense.id)
        assert len(sheets[RecordKind.EXPENSE].rows) == 1
        with pytest.raises(NotFoundError):
            await client.delete_expense(expense.id)

    @pytest.mark.asyncio
    async def test_read_orders_by_date(self, sheets_store):
        client = RecordStoreClient(sheets_store)
        await client.create_expense(OWNER, Decimal("5"), "Food", "old", date(2024, 1, 1))
        await client.create_expense(OWNER, Decimal("5"), "Food", "new", date(2024, 5, 1))
        await client.create_expense("other", Decimal("5"), "Food", "x", date(2024, 9, 1))
        expenses = await client.list_expenses(OWNER)
        assert [e.description for e in expenses] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_empty_income_cell_reads_as_zero(self, sheets, sheets_store):
        sheets[RecordKind.PROFILE].rows.append([OWNER, ""])
        profile = await RecordStoreClient(sheets_store).get_profile(OWNER)
        assert profile.monthly_income == Decimal("0")

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, sheets_client, sheets_store):
        sheets_client.get_record_sheet.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(StorageError, match="quota exceeded"):
            await sheets_store.read(RecordKind.EXPENSE)


class TestAuditStorage:
    """Tests for audit storage backends."""

    @pytest.mark.asyncio
    async def test_in_memory_correlation(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        await storage.append_event(AuditEventBuilder.expense_created(
            "e1", OWNER, "Food", "5", correlation_id
        ))
        await storage.append_event(AuditEventBuilder.income_updated(OWNER, "1", uuid4()))
        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert len(await storage.get_recent_events(limit=1)) == 1

    @pytest.mark.asyncio
    async def test_sheets_audit_round_trip(self):
        sheet = FakeWorksheet(AUDIT_COLUMNS)
        client = MagicMock()
        client.get_audit_sheet.return_value = sheet
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()

        event = AuditEventBuilder.budget_synced(
            "b1", OWNER, "Food", "0", "5", correlation_id
        )
        assert await storage.append_event(event)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details["new_spent"] == "5"
