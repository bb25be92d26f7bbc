"""Dashboard aggregation package."""

from financewise.aggregation.engine import (
    DEFAULT_CRITICAL_THRESHOLD,
    DEFAULT_WARNING_THRESHOLD,
    budget_remaining,
    budget_status,
    build_dashboard,
    format_currency,
    format_percentage,
    percentage_of_limit,
    remaining_budget,
    summarize_budget,
    total_budget,
    total_expenses,
    total_remaining,
    total_spent,
)

__all__ = [
    "DEFAULT_CRITICAL_THRESHOLD",
    "DEFAULT_WARNING_THRESHOLD",
    "budget_remaining",
    "budget_status",
    "build_dashboard",
    "format_currency",
    "format_percentage",
    "percentage_of_limit",
    "remaining_budget",
    "summarize_budget",
    "total_budget",
    "total_expenses",
    "total_remaining",
    "total_spent",
]
