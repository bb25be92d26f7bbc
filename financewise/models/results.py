"""
Result Models for FinanceWise

Mutations on expenses are a two-step protocol: the expense write (primary,
authoritative) followed by the budget adjustment (secondary, best-effort).
The outcome types below make the window in which the two can disagree
visible to callers instead of hiding it in exception handling.

Also holds the read-side summaries produced by the aggregation engine.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from financewise.models.records import BudgetStatus, Expense


# =============================================================================
# SYNCHRONIZATION
# =============================================================================

class SyncOutcome(str, Enum):
    """What the budget synchronizer did."""
    APPLIED = "applied"        # Matching budget found and spent written
    NO_BUDGET = "no_budget"    # No budget for (owner, category), nothing to do


class SyncResult(BaseModel):
    """Result of one compensating budget update."""
    model_config = ConfigDict(frozen=True)

    outcome: SyncOutcome
    owner: str
    category: str
    amount: Decimal
    budget_id: Optional[str] = None
    previous_spent: Optional[Decimal] = None
    new_spent: Optional[Decimal] = None

    @property
    def applied(self) -> bool:
        return self.outcome == SyncOutcome.APPLIED


# =============================================================================
# EXPENSE MUTATION OUTCOMES
# =============================================================================

class ExpenseAction(str, Enum):
    CREATED = "created"
    DELETED = "deleted"


class Committed(BaseModel):
    """
    Expense write and budget adjustment both succeeded.

    A NO_BUDGET sync result still counts as committed: there was nothing
    to adjust.
    """
    model_config = ConfigDict(frozen=True)

    action: ExpenseAction
    expense: Expense
    sync: SyncResult

    @property
    def has_warning(self) -> bool:
        return False


class CommittedWithSyncWarning(BaseModel):
    """
    Expense write succeeded, budget adjustment failed.

    CRITICAL: The expense is NOT rolled back. The matching budget's spent is
    now stale and stays that way until corrected by hand.
    """
    model_config = ConfigDict(frozen=True)

    action: ExpenseAction
    expense: Expense
    warning: str = Field(
        ...,
        description="User-visible warning text"
    )
    error_message: str = Field(
        ...,
        description="Underlying store error"
    )

    @property
    def has_warning(self) -> bool:
        return True


ExpenseMutation = Union[Committed, CommittedWithSyncWarning]


# =============================================================================
# DASHBOARD SUMMARIES
# =============================================================================

class BudgetSummary(BaseModel):
    """Display figures for one budget."""
    model_config = ConfigDict(frozen=True)

    budget_id: str
    category: str
    limit_amount: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: Decimal
    status: BudgetStatus


class DashboardSummary(BaseModel):
    """
    Everything the dashboard shows.

    total_spent (from budgets) and total_expenses (from expenses) are computed
    independently and can disagree after a failed synchronization. Both are
    exposed on purpose.
    """
    model_config = ConfigDict(frozen=True)

    monthly_income: Decimal
    total_expenses: Decimal
    remaining_budget: Decimal
    is_over_budget: bool

    total_budget: Decimal
    total_spent: Decimal
    total_remaining: Decimal

    expense_count: int = Field(ge=0)
    budgets: list[BudgetSummary] = Field(default_factory=list)

    # True while the budget mirror may lag behind expense mutations
    budgets_stale: bool = False
