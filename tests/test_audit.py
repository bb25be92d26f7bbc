"""Tests for the audit logger."""

import logging
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

from structlog.testing import capture_logs

from financewise.audit import AuditLogger, create_correlation_id
from financewise.models.audit import AuditEventType, AuditSeverity
from financewise.services.storage import InMemoryAuditStorage, StorageError


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_local_only_logging_succeeds(self):
        logger = AuditLogger()
        await logger.log_income_updated("u1", Decimal("100"), create_correlation_id())

    @pytest.mark.asyncio
    async def test_persists_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        await logger.log_expense_created(
            expense_id="e1",
            owner="u1",
            category="Food",
            amount=Decimal("12.50"),
            correlation_id=create_correlation_id(),
        )
        event = storage.events[0]
        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.details["amount"] == "12.50"

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        storage = AsyncMock()
        storage.append_event.side_effect = StorageError("sheet unavailable")
        logger = AuditLogger(storage)

        await logger.log_budget_sync_failed(
            owner="u1",
            category="Food",
            amount=Decimal("5"),
            error_message="timeout",
            correlation_id=create_correlation_id(),
        )

        storage.append_event.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_error_event(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        await logger.log_store_error("create_expense", "boom", owner="u1")
        assert storage.events[0].severity == AuditSeverity.ERROR
        assert storage.events[0].details == {"operation": "create_expense"}

    def test_correlation_ids_unique(self):
        assert create_correlation_id() != create_correlation_id()


class TestAuditLoggerSettings:
    """Tests for settings-driven logger behaviour."""

    def test_debug_mode_enables_debug_level(self, monkeypatch):
        monkeypatch.setenv("DEBUG_MODE", "true")
        AuditLogger()
        assert logging.getLogger("financewise.audit.logger").level == logging.DEBUG

    def test_default_level_is_info(self, monkeypatch):
        monkeypatch.delenv("DEBUG_MODE", raising=False)
        AuditLogger()
        assert logging.getLogger("financewise.audit.logger").level == logging.INFO

    @pytest.mark.asyncio
    async def test_environment_bound_to_events(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "staging")
        with capture_logs() as logs:
            logger = AuditLogger()
            await logger.log_income_updated("u1", Decimal("100"), create_correlation_id())
        assert logs[0]["environment"] == "staging"
        assert logs[0]["event_type"] == "income_updated"
