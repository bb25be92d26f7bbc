"""
Core Data Models for FinanceWise

These models define the strict schemas for the three record kinds held in the
record store (expense, budget, profile) and for the raw user input that
creates them.

DESIGN DECISION: Money is always Decimal. Amounts are kept at the precision
they were entered with; rounding to two places happens only for display.
This keeps repeated increment/decrement cycles on a budget free of drift.
"""

import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """Record kinds held by the record store."""
    EXPENSE = "expense"
    BUDGET = "budget"
    PROFILE = "profile"


class BudgetStatus(str, Enum):
    """
    Status band of a budget, derived from its percentage of limit.

    Bands are inclusive at their lower bound.
    """
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


# Categories offered by the expense form. Categories are free-form strings,
# this is only the suggested list.
DEFAULT_EXPENSE_CATEGORIES = (
    "Food",
    "Transportation",
    "Entertainment",
    "Healthcare",
    "Utilities",
    "Shopping",
    "Education",
    "Other",
)


# =============================================================================
# STORED RECORDS
# =============================================================================

class Expense(BaseModel):
    """
    A recorded expense.

    Immutable once created; the only mutation is deletion.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque record id assigned by the store"
    )
    owner: str = Field(
        ...,
        min_length=1,
        description="Owner (user) id"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent"
    )
    category: str = Field(
        ...,
        description="Category label, joined to budgets by exact value"
    )
    description: str = Field(
        default="",
        description="What the money was spent on"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the expense"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the record was created"
    )


class Budget(BaseModel):
    """
    A per-category monthly spending limit.

    CRITICAL: `spent` is a derived, persisted running total. Only the budget
    synchronizer writes it. It is never recomputed from the expense set, so
    any drift it picks up is permanent until corrected by hand.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque record id assigned by the store"
    )
    owner: str = Field(
        ...,
        min_length=1,
        description="Owner (user) id"
    )
    category: str = Field(
        ...,
        description="Category label, unique per owner"
    )
    limit_amount: Decimal = Field(
        ...,
        ge=0,
        description="Monthly spending limit"
    )
    spent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Running total of matching expenses"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the budget was created"
    )


class Profile(BaseModel):
    """Per-user profile. The id is the owner id."""

    id: str = Field(
        ...,
        min_length=1,
        description="Owner (user) id"
    )
    monthly_income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Monthly income"
    )

    @field_validator('monthly_income', mode='before')
    @classmethod
    def empty_income_is_zero(cls, v: Any) -> Any:
        """Profiles created without an income read back as zero."""
        if v is None or v == "":
            return Decimal("0")
        return v


# =============================================================================
# RAW USER INPUT
# =============================================================================

# What a form field can hand us, before any parsing
RawAmount = Union[str, Decimal, int, None]


class ExpenseInput(BaseModel):
    """
    Raw expense form input.

    Nothing here is trusted: the validator decides whether it can be stored.
    Text is kept exactly as typed; categories are matched to budgets by
    exact value, so no trimming happens anywhere.
    """

    amount: RawAmount = None
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None


class BudgetInput(BaseModel):
    """Raw budget form input."""

    category: Optional[str] = None
    limit: RawAmount = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (presence, parseability, sign)
    Stage 2: Semantic validation (suspicious but storable values)
    """

    subject: str = Field(
        ...,
        description="What was validated (expense, budget, income)"
    )
    validated_at: datetime = Field(
        default_factory=utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    # Parsed values, present only when valid
    cleaned: dict[str, Any] = Field(
        default_factory=dict,
        description="Validated and parsed field values"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
