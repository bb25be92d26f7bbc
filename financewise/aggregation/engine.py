"""
Aggregation Engine

DESIGN DECISION: Aggregation is pure and DETERMINISTIC.
Every function here works only on the records it is handed. No store
access, no caching, no side effects. The coordinator decides which
(possibly stale) records to pass in. Formatting reads only the configured
currency symbol.

Two totals look alike and are kept apart on purpose:
- total_spent sums the budgets' persisted `spent`, so it inherits any drift
  left behind by a failed synchronization
- total_expenses sums the expense records themselves
Neither is derived from the other.

All arithmetic is Decimal. Nothing is rounded until it is formatted.
"""

from decimal import Decimal
from typing import Iterable, Optional

from financewise.config import get_settings
from financewise.models.records import Budget, BudgetStatus, Expense
from financewise.models.results import BudgetSummary, DashboardSummary


ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_CRITICAL_THRESHOLD = Decimal("90")
DEFAULT_WARNING_THRESHOLD = Decimal("70")


def percentage_of_limit(spent: Decimal, limit: Decimal) -> Decimal:
    """
    Spent as a percentage of the limit.

    A budget with a zero (or negative) limit has no meaningful percentage.
    It is reported as 0% rather than letting a division error or an
    infinite value reach the display.
    """
    if limit <= ZERO:
        return ZERO
    return spent / limit * HUNDRED


def budget_status(
    percentage: Decimal,
    warning_threshold: Decimal = DEFAULT_WARNING_THRESHOLD,
    critical_threshold: Decimal = DEFAULT_CRITICAL_THRESHOLD,
) -> BudgetStatus:
    """Band a percentage. Each band includes its lower bound."""
    if percentage >= critical_threshold:
        return BudgetStatus.CRITICAL
    if percentage >= warning_threshold:
        return BudgetStatus.WARNING
    return BudgetStatus.NORMAL


def budget_remaining(budget: Budget) -> Decimal:
    """What is left of one budget. Negative once overspent."""
    return budget.limit_amount - budget.spent


def total_budget(budgets: Iterable[Budget]) -> Decimal:
    return sum((b.limit_amount for b in budgets), ZERO)


def total_spent(budgets: Iterable[Budget]) -> Decimal:
    return sum((b.spent for b in budgets), ZERO)


def total_remaining(budgets: Iterable[Budget]) -> Decimal:
    """Sum of limits minus sum of spent, across all budgets."""
    budgets = list(budgets)
    return total_budget(budgets) - total_spent(budgets)


def total_expenses(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), ZERO)


def remaining_budget(monthly_income: Decimal, expenses_total: Decimal) -> Decimal:
    """Income left after expenses. Negative means over budget."""
    return monthly_income - expenses_total


def summarize_budget(
    budget: Budget,
    warning_threshold: Decimal = DEFAULT_WARNING_THRESHOLD,
    critical_threshold: Decimal = DEFAULT_CRITICAL_THRESHOLD,
) -> BudgetSummary:
    percentage = percentage_of_limit(budget.spent, budget.limit_amount)
    return BudgetSummary(
        budget_id=budget.id,
        category=budget.category,
        limit_amount=budget.limit_amount,
        spent=budget.spent,
        remaining=budget_remaining(budget),
        percentage=percentage,
        status=budget_status(percentage, warning_threshold, critical_threshold),
    )


def build_dashboard(
    expenses: Iterable[Expense],
    budgets: Iterable[Budget],
    monthly_income: Decimal,
    budgets_stale: bool = False,
    warning_threshold: Decimal = DEFAULT_WARNING_THRESHOLD,
    critical_threshold: Decimal = DEFAULT_CRITICAL_THRESHOLD,
) -> DashboardSummary:
    """
    Everything the dashboard shows, from one set of records.

    Budget summaries keep the order the budgets were passed in.
    """
    expenses = list(expenses)
    budgets = list(budgets)

    expenses_total = total_expenses(expenses)
    remaining = remaining_budget(monthly_income, expenses_total)

    return DashboardSummary(
        monthly_income=monthly_income,
        total_expenses=expenses_total,
        remaining_budget=remaining,
        is_over_budget=remaining < ZERO,
        total_budget=total_budget(budgets),
        total_spent=total_spent(budgets),
        total_remaining=total_remaining(budgets),
        expense_count=len(expenses),
        budgets=[
            summarize_budget(b, warning_threshold, critical_threshold)
            for b in budgets
        ],
        budgets_stale=budgets_stale,
    )


def format_currency(amount: Decimal, symbol: Optional[str] = None) -> str:
    """
    Two-decimal display form, e.g. ₹1,234.50 or -₹20.00.

    The symbol defaults to the configured currency symbol.
    """
    if symbol is None:
        symbol = get_settings().app.currency_symbol
    sign = "-" if amount < ZERO else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percentage(percentage: Decimal) -> str:
    """Whole-number percentage for display, e.g. 67%."""
    return f"{percentage:.0f}%"
