"""
Two-Stage Input Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Amount parseable as an exact decimal
- Sign checks (non-negative amounts, positive limits)
- Failures here block the write

STAGE 2 - SEMANTIC VALIDATION:
- Unusually large expense amounts
- Expense dates far in the future
- Failures here are warnings only; the write still happens

IMPORTANT: Validation runs before any store call and NEVER silently fixes
input. Categories in particular are not trimmed or re-cased: the text the
user typed is the text that gets matched against budgets.
"""

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from financewise.config import get_settings
from financewise.models.records import (
    BudgetInput,
    ExpenseInput,
    RawAmount,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """
    User input was rejected before reaching the store.

    Carries the full ValidationResult so the caller can show every issue.
    """

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(messages) or f"Invalid {result.subject} input")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


def parse_amount(raw: RawAmount) -> Optional[Decimal]:
    """
    Parse a raw amount into an exact Decimal.

    Returns None when the value is missing. Raises ValueError when it is
    present but is not a finite decimal number.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError(f"Not an amount: {raw!r}")
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = Decimal(raw) if isinstance(raw, (Decimal, int)) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not an amount: {raw!r}")
    if not value.is_finite():
        raise ValueError(f"Not an amount: {raw!r}")
    return value


def _missing(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=f"{label} is required",
        severity="error",
        suggested_fix="Please fill in all fields",
    )


def _invalid_amount(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="invalid_format",
        message=f"{label} must be a number",
        severity="error",
        suggested_fix="Please enter a valid amount",
    )


def _is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


class InputValidator:
    """
    Validates raw user input for expenses, budgets and income.

    Stage 1: Schema validation (blocks the write)
    Stage 2: Semantic validation (warnings only)
    """

    def __init__(self):
        self._settings = get_settings().app

    def _finish(
        self,
        subject: str,
        issues: list[ValidationIssue],
        cleaned: dict,
        semantic_issues: Optional[list[ValidationIssue]] = None,
    ) -> ValidationResult:
        schema_valid = not any(issue.severity == "error" for issue in issues)

        semantic_valid = False
        if schema_valid:
            semantic_issues = semantic_issues or []
            issues = issues + semantic_issues
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        warnings = [i.message for i in issues if i.severity == "warning"]
        is_valid = schema_valid and semantic_valid

        return ValidationResult(
            subject=subject,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=is_valid,
            issues=issues,
            warnings=warnings,
            cleaned=cleaned if is_valid else {},
        )

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def _validate_expense_semantic(
        self,
        amount: Decimal,
        expense_date: date,
    ) -> list[ValidationIssue]:
        issues = []

        max_amount = self._settings.max_expense_amount
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future_date = date.today() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if expense_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def validate_expense(self, data: ExpenseInput) -> ValidationResult:
        """
        Validate a new expense.

        Amount must be present and a non-negative number; category and
        description must not be blank. A missing date means today.
        """
        issues = []
        amount = None

        try:
            amount = parse_amount(data.amount)
        except ValueError:
            issues.append(_invalid_amount("amount", "Amount"))
        else:
            if amount is None:
                issues.append(_missing("amount", "Amount"))
            elif amount < 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount cannot be negative",
                    severity="error",
                    suggested_fix="Please enter a valid amount",
                ))

        if _is_blank(data.category):
            issues.append(_missing("category", "Category"))
        if _is_blank(data.description):
            issues.append(_missing("description", "Description"))

        expense_date = data.date or date.today()

        if any(i.severity == "error" for i in issues):
            return self._finish("expense", issues, {})

        return self._finish(
            "expense",
            issues,
            {
                "amount": amount,
                "category": data.category,
                "description": data.description,
                "date": expense_date,
            },
            self._validate_expense_semantic(amount, expense_date),
        )

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def validate_budget(self, data: BudgetInput) -> ValidationResult:
        """Validate a new budget. The limit must be strictly positive."""
        issues = []
        limit = None

        if _is_blank(data.category):
            issues.append(_missing("category", "Category"))

        try:
            limit = parse_amount(data.limit)
        except ValueError:
            issues.append(_invalid_amount("limit", "Limit"))
        else:
            if limit is None:
                issues.append(_missing("limit", "Limit"))
            elif limit <= 0:
                issues.append(ValidationIssue(
                    field="limit",
                    issue_type="invalid_value",
                    message="Limit must be greater than zero",
                    severity="error",
                    suggested_fix="Please enter a positive monthly limit",
                ))

        if any(i.severity == "error" for i in issues):
            return self._finish("budget", issues, {})

        return self._finish(
            "budget",
            issues,
            {"category": data.category, "limit_amount": limit},
        )

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    def validate_income(self, value: RawAmount) -> ValidationResult:
        """Validate a monthly income. Zero is allowed, negative is not."""
        issues = []
        income = None

        try:
            income = parse_amount(value)
        except ValueError:
            issues.append(_invalid_amount("monthly_income", "Monthly income"))
        else:
            if income is None:
                issues.append(_missing("monthly_income", "Monthly income"))
            elif income < 0:
                issues.append(ValidationIssue(
                    field="monthly_income",
                    issue_type="invalid_value",
                    message="Monthly income cannot be negative",
                    severity="error",
                    suggested_fix="Please enter a valid amount",
                ))

        if any(i.severity == "error" for i in issues):
            return self._finish("income", issues, {})

        return self._finish("income", issues, {"monthly_income": income})

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if not result.schema_valid:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
