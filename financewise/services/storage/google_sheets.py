"""
Google Sheets Record Store Implementation

DESIGN DECISION: Google Sheets is used as the networked record store because:
1. Users can view their expenses and budgets directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions and no atomic increments. This is the same model the
  budget synchronizer is written against: read, compute, write back.
- Limited query capabilities (we filter and sort in Python)
- The budget unique key is checked by reading before appending, so two
  sessions creating the same budget at the same moment can both succeed.

Every record kind lives in its own worksheet with a header row. Money is
written as the exact Decimal string, dates and timestamps as ISO strings.

Only connection setup and audit appends are retried. Record operations are
never retried automatically: a retried create could duplicate an expense.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from financewise.config import get_settings
from financewise.models.audit import AuditEvent, AuditEventType, AuditSeverity
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
    StoreConnectionError,
)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connection setup.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def sheet_name(self, kind: RecordKind) -> str:
        return {
            RecordKind.EXPENSE: self._settings.expenses_sheet_name,
            RecordKind.BUDGET: self._settings.budgets_sheet_name,
            RecordKind.PROFILE: self._settings.profiles_sheet_name,
        }[kind]

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_record_sheet(self, kind: RecordKind) -> gspread.Worksheet:
        """Get or create the worksheet holding one record kind."""
        return self._get_or_create_sheet(
            self.sheet_name(kind),
            list(RECORD_FIELDS[kind]),
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _to_cell(value: Any) -> str:
    """Serialize one field value for a RAW sheet write."""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        # Plain notation, never exponent form, so the sheet shows real amounts
        return format(value, "f")
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    Records are stored as rows, one worksheet per kind, one record per row.
    Values come back as strings; the typed client parses them into models.
    Empty cells are omitted from the returned record so model defaults apply.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, kind: RecordKind, record: Record) -> list[str]:
        return [_to_cell(record.get(field)) for field in RECORD_FIELDS[kind]]

    def _row_to_record(self, kind: RecordKind, row: list) -> Record:
        # Handle missing trailing columns gracefully
        record = {}
        for index, field in enumerate(RECORD_FIELDS[kind]):
            value = row[index] if index < len(row) else ""
            if value != "":
                record[field] = value
        return record

    @staticmethod
    def _row_matches(kind: RecordKind, row: list, filters: Optional[Record]) -> bool:
        if not filters:
            return True
        columns = RECORD_FIELDS[kind]
        for field, value in filters.items():
            index = columns.index(field)
            cell = row[index] if index < len(row) else ""
            if cell != _to_cell(value):
                return False
        return True

    def _data_rows(self, sheet: gspread.Worksheet) -> list[tuple[int, list]]:
        """All non-empty data rows with their 1-based sheet row number."""
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
            if row and row[0]
        ]

    def _check_fields(self, kind: RecordKind, fields: Record) -> None:
        unknown = set(fields) - set(RECORD_FIELDS[kind])
        if unknown:
            raise StorageError(
                f"Unknown {kind.value} fields: {', '.join(sorted(unknown))}"
            )

    async def create(self, kind: RecordKind, fields: Record) -> Record:
        """Append a new record row."""
        self._check_fields(kind, fields)
        record = dict(fields)
        if not record.get("id"):
            record["id"] = str(uuid4())
        if "created_at" in RECORD_FIELDS[kind] and record.get("created_at") is None:
            record["created_at"] = utcnow()

        try:
            sheet = self._client.get_record_sheet(kind)
            rows = [row for _, row in self._data_rows(sheet)]

            if any(row[0] == record["id"] for row in rows):
                raise DuplicateError(f"{kind.value} {record['id']} already exists")

            key = UNIQUE_KEYS.get(kind)
            if key:
                key_filter = {field: record.get(field) for field in key}
                if any(self._row_matches(kind, row, key_filter) for row in rows):
                    raise DuplicateError(
                        f"A {kind.value} already exists for "
                        + ", ".join(f"{f}={v}" for f, v in key_filter.items())
                    )

            row = self._record_to_row(kind, record)
            sheet.append_row(row, value_input_option="RAW")
            return self._row_to_record(kind, row)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create {kind.value}: {e}")

    async def read(
        self,
        kind: RecordKind,
        filters: Optional[Record] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Record]:
        """Read matching rows, filtered and sorted in Python."""
        try:
            sheet = self._client.get_record_sheet(kind)
            records = [
                self._row_to_record(kind, row)
                for _, row in self._data_rows(sheet)
                if self._row_matches(kind, row, filters)
            ]
        except Exception as e:
            raise StorageError(f"Failed to read {kind.value} records: {e}")

        if order_by:
            # ISO dates and timestamps sort correctly as text
            records.sort(key=lambda r: r.get(order_by, ""), reverse=descending)
        return records

    async def read_one(
        self,
        kind: RecordKind,
        filters: Record,
    ) -> Optional[Record]:
        """Read the single matching row, if any."""
        records = await self.read(kind, filters)
        if len(records) > 1:
            raise StorageError(
                f"Expected at most one {kind.value}, found {len(records)}"
            )
        return records[0] if records else None

    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        fields: Record,
    ) -> Record:
        """Rewrite one row in a single range update."""
        self._check_fields(kind, fields)
        if "id" in fields:
            raise StorageError(f"Cannot change the id of a {kind.value}")

        try:
            sheet = self._client.get_record_sheet(kind)
            for idx, row in self._data_rows(sheet):
                if row[0] == record_id:
                    current = self._row_to_record(kind, row)
                    new_row = self._record_to_row(kind, {**current, **fields})
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[new_row],
                        value_input_option="RAW",
                    )
                    return self._row_to_record(kind, new_row)

            raise NotFoundError(f"{kind.value} not found: {record_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {kind.value}: {e}")

    async def delete(self, kind: RecordKind, record_id: str) -> None:
        """Delete one row by record id."""
        try:
            sheet = self._client.get_record_sheet(kind)
            for idx, row in self._data_rows(sheet):
                if row[0] == record_id:
                    sheet.delete_rows(idx)
                    return

            raise NotFoundError(f"{kind.value} not found: {record_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            owner=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue  # Skip malformed rows
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [
                event for event in self._all_events()
                if event.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
