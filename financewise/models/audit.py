"""
Audit Models for FinanceWise

Every mutation of an expense, budget or profile is logged for audit purposes.
This provides:
1. Complete traceability of all operations
2. A record of every budget synchronization, including the failed ones
3. The only place a stale budget total is explained after the fact

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from financewise.models.records import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of an expense mutation has its own event type, so a failed
    budget synchronization can be told apart from a failed expense write.
    """
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_DELETED = "expense_deleted"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_SYNCED = "budget_synced"
    BUDGET_SYNC_SKIPPED = "budget_sync_skipped"
    BUDGET_SYNC_FAILED = "budget_sync_failed"

    # Profile
    INCOME_UPDATED = "income_updated"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Loading
    DATA_LOADED = "data_loaded"
    LOAD_FAILED = "load_failed"

    # System events
    STORE_ERROR = "store_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    owner: Optional[str] = Field(
        default=None,
        description="Owner (user) id the event is scoped to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'budget', 'profile')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., expense write and its budget sync)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner": self.owner,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.owner or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, owner, ...)
        event = AuditEventBuilder.budget_sync_failed(owner, category, ...)
    """

    @staticmethod
    def expense_created(
        expense_id: str,
        owner: str,
        category: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            owner=owner,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: str,
        owner: str,
        category: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            owner=owner,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense deleted: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_created(
        budget_id: str,
        owner: str,
        category: str,
        limit_amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            owner=owner,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget created: {category} with limit {limit_amount}",
            details={
                "category": category,
                "limit_amount": limit_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_synced(
        budget_id: str,
        owner: str,
        category: str,
        previous_spent: str,
        new_spent: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SYNCED,
            owner=owner,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget {category} spent: {previous_spent} -> {new_spent}",
            details={
                "category": category,
                "previous_spent": previous_spent,
                "new_spent": new_spent,
            },
        )

    @staticmethod
    def budget_sync_skipped(
        owner: str,
        category: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SYNC_SKIPPED,
            severity=AuditSeverity.DEBUG,
            owner=owner,
            entity_type="budget",
            correlation_id=correlation_id,
            description=f"No budget for category {category}, nothing to adjust",
            details={
                "category": category,
            },
        )

    @staticmethod
    def budget_sync_failed(
        owner: str,
        category: str,
        amount: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_type="budget",
            correlation_id=correlation_id,
            description=f"Budget {category} was not adjusted by {amount}; its total is now stale",
            error_message=error_message,
            details={
                "category": category,
                "amount": amount,
            },
        )

    @staticmethod
    def income_updated(
        owner: str,
        monthly_income: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_UPDATED,
            owner=owner,
            entity_type="profile",
            entity_id=owner,
            correlation_id=correlation_id,
            description=f"Monthly income set to {monthly_income}",
            details={
                "monthly_income": monthly_income,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        owner: str,
        subject: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_type=subject,
            correlation_id=correlation_id,
            description=f"{subject.capitalize()} input rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def data_loaded(
        owner: str,
        counts: dict[str, int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            owner=owner,
            correlation_id=correlation_id,
            description="Dashboard data loaded",
            details=counts,
        )

    @staticmethod
    def load_failed(
        owner: str,
        failures: dict[str, str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            owner=owner,
            correlation_id=correlation_id,
            description=f"Failed to load: {', '.join(sorted(failures))}",
            details={
                "failures": failures,
            },
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        owner: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            owner=owner,
            description=f"Record store error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
