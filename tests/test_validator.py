"""Tests for two-stage input validation."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from financewise.models.records import BudgetInput, ExpenseInput
from financewise.validation import InputValidator, ValidationError, parse_amount


@pytest.fixture
def validator() -> InputValidator:
    return InputValidator()


def expense_input(**overrides) -> ExpenseInput:
    fields = {
        "amount": "12.50",
        "category": "Food",
        "description": "Lunch",
        "date": date(2024, 3, 1),
    }
    fields.update(overrides)
    return ExpenseInput(**fields)


class TestParseAmount:
    """Tests for parse_amount."""

    def test_parses_string(self):
        assert parse_amount("40.10") == Decimal("40.10")

    def test_keeps_precision(self):
        assert parse_amount("0.125") == Decimal("0.125")

    def test_strips_surrounding_space(self):
        assert parse_amount(" 5 ") == Decimal("5")

    def test_int_and_decimal(self):
        assert parse_amount(7) == Decimal("7")
        assert parse_amount(Decimal("1.5")) == Decimal("1.5")

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        assert parse_amount(raw) is None

    @pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", "1,000", True])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)


class TestExpenseValidation:
    """Tests for validate_expense."""

    def test_valid_expense(self, validator):
        result = validator.validate_expense(expense_input())
        assert result.is_valid
        assert result.cleaned == {
            "amount": Decimal("12.50"),
            "category": "Food",
            "description": "Lunch",
            "date": date(2024, 3, 1),
        }

    def test_zero_amount_allowed(self, validator):
        assert validator.validate_expense(expense_input(amount="0")).is_valid

    def test_missing_date_defaults_to_today(self, validator):
        result = validator.validate_expense(expense_input(date=None))
        assert result.cleaned["date"] == date.today()

    def test_category_kept_verbatim(self, validator):
        result = validator.validate_expense(expense_input(category=" Food"))
        assert result.cleaned["category"] == " Food"

    @pytest.mark.parametrize("field,value", [
        ("amount", None),
        ("amount", ""),
        ("category", None),
        ("category", "   "),
        ("description", ""),
    ])
    def test_missing_fields_rejected(self, validator, field, value):
        result = validator.validate_expense(expense_input(**{field: value}))
        assert not result.is_valid
        assert not result.schema_valid
        assert result.cleaned == {}
        assert any(i.field == field and i.issue_type == "missing" for i in result.issues)

    def test_unparseable_amount(self, validator):
        result = validator.validate_expense(expense_input(amount="twelve"))
        assert not result.is_valid
        assert result.issues[0].issue_type == "invalid_format"

    def test_negative_amount(self, validator):
        result = validator.validate_expense(expense_input(amount="-1"))
        assert not result.is_valid
        assert result.issues[0].issue_type == "invalid_value"

    def test_all_errors_reported(self, validator):
        result = validator.validate_expense(ExpenseInput())
        assert result.error_count == 3

    def test_large_amount_is_warning_only(self, validator):
        result = validator.validate_expense(expense_input(amount="5000000"))
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_far_future_date_is_warning_only(self, validator):
        future = date.today() + timedelta(days=30)
        result = validator.validate_expense(expense_input(date=future))
        assert result.is_valid
        assert any("future" in w for w in result.warnings)

    def test_threshold_from_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_EXPENSE_AMOUNT", "100")
        result = InputValidator().validate_expense(expense_input(amount="150"))
        assert result.is_valid
        assert result.warnings


class TestBudgetValidation:
    """Tests for validate_budget."""

    def test_valid_budget(self, validator):
        result = validator.validate_budget(BudgetInput(category="Food", limit="500"))
        assert result.is_valid
        assert result.cleaned == {"category": "Food", "limit_amount": Decimal("500")}

    @pytest.mark.parametrize("limit", ["0", "-5"])
    def test_limit_must_be_positive(self, validator, limit):
        result = validator.validate_budget(BudgetInput(category="Food", limit=limit))
        assert not result.is_valid

    def test_missing_category(self, validator):
        result = validator.validate_budget(BudgetInput(category="", limit="5"))
        assert not result.is_valid
        assert result.issues[0].field == "category"


class TestIncomeValidation:
    """Tests for validate_income."""

    def test_valid_income(self, validator):
        result = validator.validate_income("50000")
        assert result.cleaned == {"monthly_income": Decimal("50000")}

    def test_zero_income_allowed(self, validator):
        assert validator.validate_income(0).is_valid

    @pytest.mark.parametrize("value", ["-1", "NaN", "abc", None])
    def test_rejected(self, validator, value):
        assert not validator.validate_income(value).is_valid


class TestValidationError:
    """Tests for ValidationError and summaries."""

    def test_error_carries_result(self, validator):
        result = validator.validate_expense(expense_input(amount=None))
        error = ValidationError(result)
        assert error.result is result
        assert "Amount is required" in str(error)
        assert error.issues == result.issues

    def test_summary_lists_errors(self, validator):
        result = validator.validate_expense(expense_input(amount=None))
        summary = validator.get_user_friendly_summary(result)
        assert "Amount is required" in summary

    def test_summary_all_passed(self, validator):
        result = validator.validate_expense(expense_input())
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed."
