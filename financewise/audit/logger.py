"""
Audit Logger

DESIGN DECISION: Every mutation in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability when a budget total drifts
3. User can see history of their interactions

The audit logger:
- Is async so it slots into the same flows as the store calls
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to tie an expense write to its budget sync
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from financewise.config import get_settings
from financewise.models.audit import AuditEvent, AuditEventBuilder
from financewise.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage

        # Debug-severity events (e.g. skipped syncs) only show in debug mode
        settings = get_settings().app
        logging.getLogger(__name__).setLevel(
            logging.DEBUG if settings.debug_mode else logging.INFO
        )
        self._logger = structlog.get_logger(__name__).bind(
            environment=settings.app_environment,
        )

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        expense_id: str,
        owner: str,
        category: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log expense creation."""
        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            owner=owner,
            category=category,
            amount=str(amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        expense_id: str,
        owner: str,
        category: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log expense deletion."""
        event = AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            owner=owner,
            category=category,
            amount=str(amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_created(
        self,
        budget_id: str,
        owner: str,
        category: str,
        limit_amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log budget creation."""
        event = AuditEventBuilder.budget_created(
            budget_id=budget_id,
            owner=owner,
            category=category,
            limit_amount=str(limit_amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_synced(
        self,
        budget_id: str,
        owner: str,
        category: str,
        previous_spent: Decimal,
        new_spent: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a compensating budget update."""
        event = AuditEventBuilder.budget_synced(
            budget_id=budget_id,
            owner=owner,
            category=category,
            previous_spent=str(previous_spent),
            new_spent=str(new_spent),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_sync_skipped(
        self,
        owner: str,
        category: str,
        correlation_id: UUID,
    ) -> None:
        """Log that an expense had no budget to adjust."""
        event = AuditEventBuilder.budget_sync_skipped(
            owner=owner,
            category=category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_sync_failed(
        self,
        owner: str,
        category: str,
        amount: Decimal,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed compensating update (budget left stale)."""
        event = AuditEventBuilder.budget_sync_failed(
            owner=owner,
            category=category,
            amount=str(amount),
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_income_updated(
        self,
        owner: str,
        monthly_income: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log monthly income change."""
        event = AuditEventBuilder.income_updated(
            owner=owner,
            monthly_income=str(monthly_income),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        owner: str,
        subject: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log rejected user input."""
        event = AuditEventBuilder.validation_failed(
            owner=owner,
            subject=subject,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_data_loaded(
        self,
        owner: str,
        counts: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        """Log a full reload of the dashboard data."""
        event = AuditEventBuilder.data_loaded(
            owner=owner,
            counts=counts,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_load_failed(
        self,
        owner: str,
        failures: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        """Log which record kinds failed to load."""
        event = AuditEventBuilder.load_failed(
            owner=owner,
            failures=failures,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        owner: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed primary write."""
        event = AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            owner=owner,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
