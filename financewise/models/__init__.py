"""
Data Models Package

This package contains all Pydantic models used in FinanceWise.
All data flowing through the system must conform to these schemas.
"""

from financewise.models.records import (
    DEFAULT_EXPENSE_CATEGORIES,
    Budget,
    BudgetInput,
    BudgetStatus,
    Expense,
    ExpenseInput,
    Profile,
    RecordKind,
    ValidationIssue,
    ValidationResult,
)
from financewise.models.results import (
    BudgetSummary,
    Committed,
    CommittedWithSyncWarning,
    DashboardSummary,
    ExpenseAction,
    ExpenseMutation,
    SyncOutcome,
    SyncResult,
)
from financewise.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "DEFAULT_EXPENSE_CATEGORIES",
    "Budget",
    "BudgetInput",
    "BudgetStatus",
    "Expense",
    "ExpenseInput",
    "Profile",
    "RecordKind",
    "ValidationIssue",
    "ValidationResult",
    # Result models
    "BudgetSummary",
    "Committed",
    "CommittedWithSyncWarning",
    "DashboardSummary",
    "ExpenseAction",
    "ExpenseMutation",
    "SyncOutcome",
    "SyncResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
